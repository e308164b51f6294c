from datetime import datetime

import pytest

from conftest import FakeUtcClock, fake, make_wallet
from onramp.domain.metadata import MockPayment, TransferReceipt, load_metadata
from onramp.domain.states import PaymentStatus
from onramp.errors import InvalidStateTransition, NotFoundError, ValidationError
from onramp.services.transaction_ledger import AmountLimits, TransactionLedger


def _fields(wallet, amount=1_000_000, **overrides):
    service_fee = amount // 100
    fields = {
        "token_symbol": "BTC",
        "amount_fiat_minor": amount,
        "crypto_amount": "10479",
        "wallet_address": wallet,
        "exchange_rate": 9_542_000_000,
        "service_fee": service_fee,
        "network_fee": 5_000,
        "total_cost": amount + service_fee + 5_000,
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def ledger(services):
    return services.ledger


def test_create_starts_pending(ledger, wallet):
    email = fake.free_email()
    tx = ledger.create(**_fields(wallet), email=email)

    assert tx.id
    assert tx.payment_status == PaymentStatus.PENDING.value
    assert tx.email == email
    assert tx.created_at == tx.updated_at
    assert tx.total_cost == tx.amount_fiat_minor + tx.service_fee + tx.network_fee
    assert ledger.get(tx.id) is tx


def test_create_reports_every_violation(ledger):
    with pytest.raises(ValidationError) as exc:
        ledger.create(**_fields("0x1234", amount=99_999, token_symbol="DOGE"), email="not-an-email")

    fields = {v["field"] for v in exc.value.violations}
    assert {"tokenSymbol", "amountFiatMinorUnits", "walletAddress", "email"} <= fields
    assert exc.value.status_code == 400


@pytest.mark.parametrize("amount", [100_000, 50_000_000])
def test_amount_bounds_are_inclusive(ledger, wallet, amount):
    assert ledger.create(**_fields(wallet, amount=amount)).amount_fiat_minor == amount


@pytest.mark.parametrize("amount", [99_999, 50_000_001])
def test_amount_outside_bounds_rejected(ledger, wallet, amount):
    with pytest.raises(ValidationError) as exc:
        ledger.create(**_fields(wallet, amount=amount))

    assert exc.value.violations[0]["field"] == "amountFiatMinorUnits"


def test_float_amounts_rejected(ledger, wallet):
    with pytest.raises(ValidationError):
        ledger.create(**_fields(wallet, amount_fiat_minor=100_000.5))


def test_total_cost_invariant_enforced(ledger, wallet):
    with pytest.raises(ValidationError) as exc:
        ledger.create(**_fields(wallet, total_cost=1))

    assert exc.value.violations == [
        {"field": "totalCost", "message": "Must equal amount plus service and network fees"}
    ]


def test_crypto_amount_must_be_decimal_string(ledger, wallet):
    with pytest.raises(ValidationError) as exc:
        ledger.create(**_fields(wallet, crypto_amount="lots"))

    assert exc.value.violations[0]["field"] == "cryptoAmount"


def test_forward_transitions(ledger, wallet):
    tx = ledger.create(**_fields(wallet))

    ledger.transition(tx.id, PaymentStatus.PAID, payment_reference="REF-1")
    ledger.transition(tx.id, PaymentStatus.CONFIRMED, transaction_hash="0xabc")

    tx = ledger.get(tx.id)
    assert tx.payment_status == "confirmed"
    assert tx.payment_reference == "REF-1"
    assert tx.transaction_hash == "0xabc"


@pytest.mark.parametrize("terminal", [PaymentStatus.CONFIRMED, PaymentStatus.FAILED])
def test_terminal_states_are_final(ledger, wallet, terminal):
    tx = ledger.create(**_fields(wallet))
    ledger.transition(tx.id, PaymentStatus.PAID)
    ledger.transition(tx.id, terminal)

    for target in PaymentStatus:
        if target == terminal:
            continue
        with pytest.raises(InvalidStateTransition):
            ledger.transition(tx.id, target)

    assert ledger.get(tx.id).payment_status == terminal.value


def test_cannot_skip_paid(ledger, wallet):
    tx = ledger.create(**_fields(wallet))

    with pytest.raises(InvalidStateTransition) as exc:
        ledger.transition(tx.id, PaymentStatus.CONFIRMED)

    assert exc.value.status_code == 409
    assert ledger.get(tx.id).payment_status == "pending"


def test_same_status_merges_other_fields(ledger, wallet):
    tx = ledger.create(**_fields(wallet))

    ledger.update(tx.id, payment_status="pending", virtual_account_number="1234567890")

    tx = ledger.get(tx.id)
    assert tx.payment_status == "pending"
    assert tx.virtual_account_number == "1234567890"


def test_pricing_fields_are_immutable(ledger, wallet):
    tx = ledger.create(**_fields(wallet))

    with pytest.raises(ValidationError) as exc:
        ledger.update(tx.id, total_cost=1, crypto_amount="1")

    assert [v["field"] for v in exc.value.violations] == ["crypto_amount", "total_cost"]


def test_update_unknown_transaction(ledger):
    with pytest.raises(NotFoundError):
        ledger.update("missing", transaction_hash="0x1")
    assert ledger.get("missing") is None


def test_update_refreshes_updated_at(app, wallet):
    clock = FakeUtcClock(datetime(2026, 3, 1, 9, 0, 0))
    ledger = TransactionLedger(AmountLimits(100_000, 50_000_000), clock=clock)
    tx = ledger.create(**_fields(wallet))

    clock.advance(42)
    ledger.update(tx.id, virtual_account_number="0011223344")

    tx = ledger.get(tx.id)
    assert tx.created_at == datetime(2026, 3, 1, 9, 0, 0)
    assert tx.updated_at == datetime(2026, 3, 1, 9, 0, 42)


def test_variants_are_stored_per_slot(ledger, wallet):
    tx = ledger.create(**_fields(wallet))

    ledger.transition(tx.id, "paid", variant=MockPayment(reference="MOCK-1", amount_minor=1_015_000))
    ledger.transition(
        tx.id,
        "confirmed",
        variant=TransferReceipt(network="sepolia", gateway="simulated", amount_base_units="10479"),
    )

    metadata = load_metadata(ledger.get(tx.id).provider_metadata)
    assert metadata["payment"] == MockPayment(reference="MOCK-1", amount_minor=1_015_000)
    assert metadata["transfer"].gateway == "simulated"


def test_list_by_wallet_newest_first(app):
    clock = FakeUtcClock(datetime(2026, 3, 1, 9, 0, 0))
    ledger = TransactionLedger(AmountLimits(100_000, 50_000_000), clock=clock)
    wallet, other = make_wallet(), make_wallet()

    created = []
    for amount in (100_000, 200_000, 300_000):
        created.append(ledger.create(**_fields(wallet, amount=amount)).id)
        clock.advance(60)
    ledger.create(**_fields(other))

    history = ledger.list_by_wallet(wallet)

    assert [tx.id for tx in history] == list(reversed(created))
    assert ledger.list_by_wallet(make_wallet()) == []


def test_find_for_payment(ledger, wallet):
    tx = ledger.create(**_fields(wallet), payment_reference="MOCK-ABC", virtual_account_number="9988776655")

    assert ledger.find_for_payment(reference="MOCK-ABC").id == tx.id
    assert ledger.find_for_payment(reference="unknown", account_number="9988776655").id == tx.id
    assert ledger.find_for_payment(reference="unknown") is None
    assert ledger.find_for_payment() is None


def test_duplicate_payment_reference_rejected(ledger, wallet):
    ledger.create(**_fields(wallet), payment_reference="MOCK-DUP")

    with pytest.raises(ValidationError):
        ledger.create(**_fields(wallet), payment_reference="MOCK-DUP")
