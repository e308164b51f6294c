"""
Payment gateway callbacks.

The signature is checked against the raw body before anything in the payload
is trusted. Once it verifies, every outcome is acknowledged so the gateway
stops retrying; only a bad signature is rejected.
"""

import logging

from onramp.domain.metadata import PaymentDeclined, Underpayment
from onramp.domain.states import PaymentStatus
from onramp.errors import InvalidStateTransition, SessionExpiredError, WebhookSignatureError

logger = logging.getLogger(__name__)

ACCEPTED = "accepted"
DUPLICATE = "duplicate"
IGNORED = "ignored"
DECLINED = "declined"
UNDERPAID = "underpaid"
EXPIRED = "expired"


class WebhookProcessor:
    def __init__(self, provider, ledger, trigger):
        self.provider = provider
        self.ledger = ledger
        self.trigger = trigger

    def handle(self, payload: bytes, headers, body):
        if not self.provider.verify(payload, headers):
            logger.warning("Rejected webhook with invalid signature", extra={"provider": self.provider.name})
            raise WebhookSignatureError("Invalid webhook signature", payload={"provider": self.provider.name})

        notification = self.provider.parse_notification(body)
        if notification is None:
            return self._outcome(IGNORED, reason="not a payment event")

        tx = self.ledger.find_for_payment(notification.reference, notification.account_number)
        if tx is None:
            logger.warning(
                "Webhook for unknown transaction",
                extra={"reference": notification.reference, "account_number": notification.account_number},
            )
            return self._outcome(IGNORED, reason="no matching transaction")

        transaction_id = tx.id
        if tx.payment_status != PaymentStatus.PENDING.value:
            return self._outcome(DUPLICATE, transaction_id, status=tx.payment_status)

        if not notification.successful:
            self.ledger.transition(
                transaction_id,
                PaymentStatus.FAILED,
                variant=PaymentDeclined(provider=self.provider.name, provider_status=notification.provider_status),
            )
            return self._outcome(DECLINED, transaction_id, status=PaymentStatus.FAILED.value)

        if notification.amount_minor is None:
            logger.warning(
                "Webhook carried no usable amount",
                extra={"transaction_id": transaction_id, "provider": self.provider.name},
            )
            return self._outcome(IGNORED, transaction_id, status=tx.payment_status, reason="unreadable amount")

        if notification.amount_minor < tx.total_cost:
            self.ledger.transition(
                transaction_id,
                PaymentStatus.FAILED,
                variant=Underpayment(expected_minor=tx.total_cost, received_minor=notification.amount_minor),
            )
            logger.warning(
                "Underpayment received",
                extra={
                    "transaction_id": transaction_id,
                    "expected_minor": tx.total_cost,
                    "received_minor": notification.amount_minor,
                },
            )
            return self._outcome(UNDERPAID, transaction_id, status=PaymentStatus.FAILED.value)

        try:
            self.trigger.on_payment_confirmed(transaction_id, notification.variant, reference=notification.reference)
        except SessionExpiredError:
            return self._outcome(EXPIRED, transaction_id, status=PaymentStatus.FAILED.value)
        except InvalidStateTransition:
            return self._outcome(DUPLICATE, transaction_id)

        return self._outcome(ACCEPTED, transaction_id, status=PaymentStatus.PAID.value)

    def _outcome(self, outcome, transaction_id=None, **extra):
        logger.info("Webhook processed", extra={"outcome": outcome, "transaction_id": transaction_id})
        body = {"status": outcome}
        if transaction_id:
            body["transactionId"] = transaction_id
        if "status" in extra:
            body["paymentStatus"] = extra.pop("status")
        body.update(extra)
        return body
