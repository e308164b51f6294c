"""
Payment providers.

A provider issues a virtual bank account for a transaction and turns a
verified webhook body into a ``PaymentNotification``. Provider HTTP failures
raise ``UpstreamError``.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

import requests

from onramp.config import ConfigurationError
from onramp.domain.metadata import (
    FlutterwavePayment,
    MetadataVariant,
    MockPayment,
    PaystackPayment,
)
from onramp.errors import UpstreamError
from onramp.payments.signatures import verify_signature
from onramp.utils.money import KOBO_PER_NAIRA, kobo_to_naira, parse_minor_units

logger = logging.getLogger(__name__)

ACCOUNT_NAME = "EaseCrypt Payments"


@dataclass(frozen=True)
class VirtualAccount:
    account_number: str
    bank_name: str
    account_name: str
    provider: str
    reference: Optional[str] = None

    def to_snapshot(self, amount_minor: int) -> dict:
        return {
            "provider": self.provider,
            "virtualAccount": self.account_number,
            "bankName": self.bank_name,
            "accountName": self.account_name,
            "reference": self.reference,
            "amount": amount_minor,
            "currency": "NGN",
        }


@dataclass(frozen=True)
class PaymentNotification:
    successful: bool
    provider_status: str
    amount_minor: Optional[int]  # None when the gateway sent no usable amount
    reference: Optional[str] = None
    account_number: Optional[str] = None
    variant: Optional[MetadataVariant] = None


class PaymentProvider:
    name = "base"
    signature_header = None
    digestmod = hashlib.sha256

    def __init__(self, secret, timeout=15, session=None):
        self.secret = secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, payload: bytes, headers) -> bool:
        return verify_signature(self.secret, payload, headers.get(self.signature_header), self.digestmod)

    def create_virtual_account(self, transaction, customer_email) -> VirtualAccount:
        raise NotImplementedError

    def parse_notification(self, body) -> Optional[PaymentNotification]:
        """``None`` for events that are not about a payment."""
        raise NotImplementedError

    def _request(self, method, url, **kwargs):
        headers = kwargs.pop("headers", {})
        headers.setdefault("Authorization", f"Bearer {self.secret}")
        headers.setdefault("Content-Type", "application/json")
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamError(f"{self.name} request failed: {e}", service=self.name) from e
        except ValueError as e:
            raise UpstreamError(f"{self.name} returned malformed JSON", service=self.name) from e


class MockPaymentProvider(PaymentProvider):
    """Local provider for development and tests. Webhooks are signed with ``WEBHOOK_SECRET``."""

    name = "mock"
    signature_header = "X-Webhook-Signature"

    def create_virtual_account(self, transaction, customer_email):
        account_number = str(1_000_000_000 + secrets.randbelow(9_000_000_000))
        return VirtualAccount(
            account_number=account_number,
            bank_name="Providus Bank",
            account_name=ACCOUNT_NAME,
            provider=self.name,
            reference=f"MOCK-{secrets.token_hex(8).upper()}",
        )

    def parse_notification(self, body):
        if not isinstance(body, dict) or body.get("event", "payment") != "payment":
            return None
        status = str(body.get("status", "")).lower()
        amount = parse_minor_units(body.get("amount"))
        reference = body.get("reference")
        return PaymentNotification(
            successful=status in ("success", "successful"),
            provider_status=status or "unknown",
            amount_minor=amount,
            reference=reference,
            account_number=body.get("accountNumber"),
            variant=MockPayment(reference=reference or "", amount_minor=amount),
        )


class PaystackPaymentProvider(PaymentProvider):
    name = "paystack"
    signature_header = "X-Paystack-Signature"
    digestmod = hashlib.sha512

    def __init__(self, secret, base_url="https://api.paystack.co", preferred_bank="wema-bank", **kwargs):
        super().__init__(secret, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.preferred_bank = preferred_bank

    def create_virtual_account(self, transaction, customer_email):
        customer = self._request(
            "POST",
            f"{self.base_url}/customer",
            json={"email": customer_email, "metadata": {"transaction_id": transaction.id}},
        )
        customer_code = (customer.get("data") or {}).get("customer_code")
        if not customer.get("status") or not customer_code:
            raise UpstreamError(customer.get("message") or "Failed to create customer", service=self.name)

        result = self._request(
            "POST",
            f"{self.base_url}/dedicated_account",
            json={"customer": customer_code, "preferred_bank": self.preferred_bank},
        )
        data = result.get("data") or {}
        if not result.get("status") or not data.get("account_number"):
            raise UpstreamError(result.get("message") or "Failed to create dedicated account", service=self.name)

        return VirtualAccount(
            account_number=str(data["account_number"]),
            bank_name=(data.get("bank") or {}).get("name", "Wema Bank"),
            account_name=data.get("account_name") or ACCOUNT_NAME,
            provider=self.name,
            reference=None,
        )

    def parse_notification(self, body):
        event = body.get("event") if isinstance(body, dict) else None
        if event not in ("charge.success", "charge.failed"):
            return None

        data = body.get("data") or {}
        amount = parse_minor_units(data.get("amount"))
        reference = data.get("reference")
        account_number = (
            (data.get("metadata") or {}).get("receiver_account_number")
            or (data.get("authorization") or {}).get("receiver_bank_account_number")
        )
        return PaymentNotification(
            successful=event == "charge.success" and data.get("status") == "success",
            provider_status=str(data.get("status") or event),
            amount_minor=amount,
            reference=reference,
            account_number=account_number,
            variant=PaystackPayment(
                reference=reference or "",
                amount_minor=amount,
                channel=data.get("channel"),
                paid_at=data.get("paid_at"),
            ),
        )


class FlutterwavePaymentProvider(PaymentProvider):
    name = "flutterwave"
    signature_header = "verif-hash"

    def __init__(self, secret, base_url="https://api.flutterwave.com/v3", session_minutes=10, **kwargs):
        super().__init__(secret, **kwargs)
        self.base_url = base_url.rstrip("/")
        self.session_minutes = session_minutes

    def create_virtual_account(self, transaction, customer_email):
        result = self._request(
            "POST",
            f"{self.base_url}/virtual-account-numbers",
            json={
                "email": customer_email,
                "is_permanent": False,
                "tx_ref": transaction.id,
                "amount": kobo_to_naira(transaction.total_cost),
                "frequency": 1,
                "duration": self.session_minutes,
                "narration": f"Crypto purchase - {transaction.id}",
            },
        )
        data = result.get("data") or {}
        if result.get("status") != "success" or not data.get("account_number"):
            raise UpstreamError(result.get("message") or "Failed to create virtual account", service=self.name)

        return VirtualAccount(
            account_number=str(data["account_number"]),
            bank_name=data.get("bank_name") or "Flutterwave",
            account_name=data.get("account_name") or ACCOUNT_NAME,
            provider=self.name,
            reference=transaction.id,
        )

    def parse_notification(self, body):
        if not isinstance(body, dict) or body.get("event") != "charge.completed":
            return None

        data = body.get("data") or {}
        status = str(data.get("status") or "unknown").lower()
        amount = parse_minor_units(data.get("amount"), scale=KOBO_PER_NAIRA)
        tx_ref = data.get("tx_ref")
        return PaymentNotification(
            successful=status == "successful",
            provider_status=status,
            amount_minor=amount,
            reference=tx_ref,
            account_number=data.get("account_number"),
            variant=FlutterwavePayment(tx_ref=tx_ref or "", flw_ref=data.get("flw_ref"), amount_minor=amount),
        )


def build_provider(config):
    provider = (config.get("PAYMENT_PROVIDER") or "mock").lower()
    timeout = config.get("PAYMENT_TIMEOUT", 15)

    if provider == "mock":
        return MockPaymentProvider(config.get("WEBHOOK_SECRET"), timeout=timeout)
    if provider == "paystack":
        return PaystackPaymentProvider(
            config.get("PAYSTACK_SECRET_KEY"),
            base_url=config.get("PAYSTACK_BASE_URL", "https://api.paystack.co"),
            preferred_bank=config.get("PAYSTACK_PREFERRED_BANK", "wema-bank"),
            timeout=timeout,
        )
    if provider == "flutterwave":
        return FlutterwavePaymentProvider(
            config.get("FLUTTERWAVE_SECRET_KEY"),
            base_url=config.get("FLUTTERWAVE_BASE_URL", "https://api.flutterwave.com/v3"),
            session_minutes=max(1, config.get("PAYMENT_SESSION_TTL_SECONDS", 600) // 60),
            timeout=timeout,
        )
    raise ConfigurationError(f"Unknown PAYMENT_PROVIDER: {provider}")
