import hashlib
import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import requests

from onramp.config import ConfigurationError
from onramp.errors import UpstreamError
from onramp.payments.providers import (
    FlutterwavePaymentProvider,
    MockPaymentProvider,
    PaystackPaymentProvider,
    build_provider,
)
from onramp.payments.signatures import compute_signature, verify_signature

pytestmark = pytest.mark.payment

TRANSACTION = SimpleNamespace(id="0b7c6a1e-4f7e-4f43-9d59-4f0c1d2d3e4f", total_cost=1_015_000, email=None)


def _response(body, status=200):
    response = Mock()
    response.status_code = status
    response.json.return_value = body
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        response.raise_for_status.return_value = None
    return response


def _session(*responses):
    session = Mock()
    session.request.side_effect = list(responses)
    return session


class TestSignatures:
    def test_valid_signature(self):
        payload = b'{"status": "successful"}'
        signature = compute_signature("secret", payload)

        assert verify_signature("secret", payload, signature)
        assert verify_signature("secret", payload, signature.upper())

    def test_tampered_payload(self):
        signature = compute_signature("secret", b"original")

        assert not verify_signature("secret", b"tampered", signature)

    @pytest.mark.parametrize("secret,signature", [(None, "abc"), ("secret", None), ("secret", "")])
    def test_missing_parts_never_verify(self, secret, signature):
        assert not verify_signature(secret, b"payload", signature)


class TestMockProvider:
    def test_issues_ten_digit_account(self):
        account = MockPaymentProvider("secret").create_virtual_account(TRANSACTION, "buyer@gmail.com")

        assert len(account.account_number) == 10
        assert account.account_number.isdigit()
        assert account.bank_name == "Providus Bank"
        assert account.account_name == "EaseCrypt Payments"
        assert account.reference.startswith("MOCK-")

    def test_verifies_sha256_header(self):
        provider = MockPaymentProvider("secret")
        payload = b"{}"

        assert provider.verify(payload, {"X-Webhook-Signature": compute_signature("secret", payload)})
        assert not provider.verify(payload, {})

    def test_parses_successful_payment(self):
        notification = MockPaymentProvider("secret").parse_notification(
            {"reference": "MOCK-1", "accountNumber": "1234567890", "status": "successful", "amount": 1_015_000}
        )

        assert notification.successful
        assert notification.amount_minor == 1_015_000
        assert notification.variant.kind == "mock_payment"

    @pytest.mark.parametrize("amount,expected", [
        ("1015000", 1_015_000),
        ("10151.5", 10_151),
        ("abc", None),
        ("NaN", None),
        (None, None),
    ])
    def test_amount_parsing(self, amount, expected):
        notification = MockPaymentProvider("secret").parse_notification(
            {"reference": "MOCK-1", "status": "successful", "amount": amount}
        )

        assert notification.amount_minor == expected

    def test_other_events_ignored(self):
        assert MockPaymentProvider("secret").parse_notification({"event": "refund"}) is None


class TestPaystackProvider:
    def test_creates_customer_then_dedicated_account(self):
        session = _session(
            _response({"status": True, "data": {"customer_code": "CUS_abc"}}),
            _response({
                "status": True,
                "data": {"account_number": "9930000000", "account_name": "EASECRYPT/BUYER", "bank": {"name": "Wema Bank"}},
            }),
        )
        provider = PaystackPaymentProvider("sk_test", session=session)

        account = provider.create_virtual_account(TRANSACTION, "buyer@gmail.com")

        assert account.account_number == "9930000000"
        assert account.bank_name == "Wema Bank"
        assert account.reference is None
        first, second = session.request.call_args_list
        assert first.args == ("POST", "https://api.paystack.co/customer")
        assert second.args == ("POST", "https://api.paystack.co/dedicated_account")
        assert second.kwargs["json"] == {"customer": "CUS_abc", "preferred_bank": "wema-bank"}
        assert second.kwargs["headers"]["Authorization"] == "Bearer sk_test"

    def test_rejected_account_raises_upstream_error(self):
        session = _session(
            _response({"status": True, "data": {"customer_code": "CUS_abc"}}),
            _response({"status": False, "message": "Dedicated NUBAN not available"}),
        )

        with pytest.raises(UpstreamError) as exc:
            PaystackPaymentProvider("sk_test", session=session).create_virtual_account(TRANSACTION, "a@gmail.com")

        assert exc.value.service == "paystack"
        assert "Dedicated NUBAN" in exc.value.message

    def test_transport_error_raises_upstream_error(self):
        session = Mock()
        session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(UpstreamError):
            PaystackPaymentProvider("sk_test", session=session).create_virtual_account(TRANSACTION, "a@gmail.com")

    def test_signature_is_sha512(self):
        provider = PaystackPaymentProvider("sk_test")
        payload = json.dumps({"event": "charge.success"}).encode()

        assert provider.verify(payload, {"X-Paystack-Signature": compute_signature("sk_test", payload, hashlib.sha512)})
        assert not provider.verify(payload, {"X-Paystack-Signature": compute_signature("sk_test", payload)})

    def test_parses_charge_success(self):
        notification = PaystackPaymentProvider("sk_test").parse_notification({
            "event": "charge.success",
            "data": {
                "reference": "T123",
                "amount": 1_015_000,
                "status": "success",
                "channel": "dedicated_nuban",
                "paid_at": "2026-01-01T10:00:00.000Z",
                "metadata": {"receiver_account_number": "9930000000"},
            },
        })

        assert notification.successful
        assert notification.account_number == "9930000000"
        assert notification.variant.channel == "dedicated_nuban"

    def test_unrelated_event_ignored(self):
        assert PaystackPaymentProvider("sk_test").parse_notification({"event": "transfer.success"}) is None


class TestFlutterwaveProvider:
    def test_creates_virtual_account_in_naira(self):
        session = _session(_response({
            "status": "success",
            "data": {"account_number": "7824822527", "bank_name": "WEMA BANK", "order_ref": "URF_1"},
        }))
        provider = FlutterwavePaymentProvider("FLWSECK_TEST", session=session)

        account = provider.create_virtual_account(TRANSACTION, "buyer@gmail.com")

        assert account.account_number == "7824822527"
        assert account.reference == TRANSACTION.id
        body = session.request.call_args.kwargs["json"]
        assert body["amount"] == "10150.00"
        assert body["tx_ref"] == TRANSACTION.id
        assert body["is_permanent"] is False

    def test_converts_naira_amount_to_kobo(self):
        notification = FlutterwavePaymentProvider("FLWSECK_TEST").parse_notification({
            "event": "charge.completed",
            "data": {"tx_ref": TRANSACTION.id, "flw_ref": "FLW-1", "amount": 10150.5, "status": "successful"},
        })

        assert notification.successful
        assert notification.amount_minor == 1_015_050
        assert notification.reference == TRANSACTION.id

    def test_failed_charge_not_successful(self):
        notification = FlutterwavePaymentProvider("FLWSECK_TEST").parse_notification({
            "event": "charge.completed",
            "data": {"tx_ref": "x", "amount": 100, "status": "failed"},
        })

        assert not notification.successful
        assert notification.provider_status == "failed"


def test_build_provider_by_name():
    assert build_provider({"PAYMENT_PROVIDER": "mock", "WEBHOOK_SECRET": "s"}).name == "mock"
    assert build_provider({"PAYMENT_PROVIDER": "paystack", "PAYSTACK_SECRET_KEY": "sk"}).name == "paystack"
    assert build_provider({"PAYMENT_PROVIDER": "Flutterwave"}).name == "flutterwave"

    with pytest.raises(ConfigurationError):
        build_provider({"PAYMENT_PROVIDER": "stripe"})
