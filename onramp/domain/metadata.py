"""
Tagged metadata variants recorded on a transaction.

Each variant carries only the fields relevant to one payment provider or
failure kind. Variants are grouped into slots so a payment record is not
overwritten by a later transfer outcome.
"""

from dataclasses import asdict, dataclass, fields
from typing import ClassVar, Dict, Optional, Type

PAYMENT_SLOT = "payment"
TRANSFER_SLOT = "transfer"
FAILURE_SLOT = "failure"


@dataclass(frozen=True)
class MetadataVariant:
    kind: ClassVar[str]
    slot: ClassVar[str]


@dataclass(frozen=True)
class PaystackPayment(MetadataVariant):
    kind: ClassVar[str] = "paystack_payment"
    slot: ClassVar[str] = PAYMENT_SLOT

    reference: str
    amount_minor: int
    channel: Optional[str] = None
    paid_at: Optional[str] = None


@dataclass(frozen=True)
class FlutterwavePayment(MetadataVariant):
    kind: ClassVar[str] = "flutterwave_payment"
    slot: ClassVar[str] = PAYMENT_SLOT

    tx_ref: str
    flw_ref: Optional[str]
    amount_minor: int


@dataclass(frozen=True)
class MockPayment(MetadataVariant):
    kind: ClassVar[str] = "mock_payment"
    slot: ClassVar[str] = PAYMENT_SLOT

    reference: str
    amount_minor: int


@dataclass(frozen=True)
class ManualConfirmation(MetadataVariant):
    kind: ClassVar[str] = "manual_confirmation"
    slot: ClassVar[str] = PAYMENT_SLOT

    confirmed_at: str
    requested_by: Optional[str] = None


@dataclass(frozen=True)
class TransferReceipt(MetadataVariant):
    kind: ClassVar[str] = "transfer_receipt"
    slot: ClassVar[str] = TRANSFER_SLOT

    network: str
    gateway: str
    amount_base_units: str


@dataclass(frozen=True)
class TransferFailure(MetadataVariant):
    kind: ClassVar[str] = "transfer_failure"
    slot: ClassVar[str] = TRANSFER_SLOT

    reason: str
    error_type: str
    gateway: str


@dataclass(frozen=True)
class SessionExpired(MetadataVariant):
    kind: ClassVar[str] = "session_expired"
    slot: ClassVar[str] = FAILURE_SLOT

    expired_at: Optional[str]


@dataclass(frozen=True)
class Underpayment(MetadataVariant):
    kind: ClassVar[str] = "underpayment"
    slot: ClassVar[str] = FAILURE_SLOT

    expected_minor: int
    received_minor: int


@dataclass(frozen=True)
class PaymentDeclined(MetadataVariant):
    kind: ClassVar[str] = "payment_declined"
    slot: ClassVar[str] = FAILURE_SLOT

    provider: str
    provider_status: str


@dataclass(frozen=True)
class ProviderFailure(MetadataVariant):
    kind: ClassVar[str] = "provider_failure"
    slot: ClassVar[str] = FAILURE_SLOT

    provider: str
    reason: str


VARIANTS: Dict[str, Type[MetadataVariant]] = {
    cls.kind: cls
    for cls in (
        PaystackPayment,
        FlutterwavePayment,
        MockPayment,
        ManualConfirmation,
        TransferReceipt,
        TransferFailure,
        SessionExpired,
        Underpayment,
        PaymentDeclined,
        ProviderFailure,
    )
}


def dump_variant(variant: MetadataVariant) -> dict:
    return {"kind": variant.kind, **asdict(variant)}


def load_variant(data: dict) -> MetadataVariant:
    kind = data.get("kind")
    try:
        cls = VARIANTS[kind]
    except KeyError:
        raise ValueError(f"Unknown metadata kind: {kind!r}") from None

    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


def attach(metadata: Optional[dict], variant: MetadataVariant) -> dict:
    """Return a new metadata mapping with ``variant`` stored in its slot."""
    updated = dict(metadata or {})
    updated[variant.slot] = dump_variant(variant)
    return updated


def load_metadata(metadata: Optional[dict]) -> Dict[str, MetadataVariant]:
    return {slot: load_variant(data) for slot, data in (metadata or {}).items()}
