"""
Payment confirmation and on-chain settlement.

``on_payment_confirmed`` runs inside the request that reported the payment and
returns as soon as the transaction is ``paid`` and the transfer job has been
handed to the dispatcher. A job that cannot be queued fails the
transaction. ``execute_transfer`` is the job body; its outcome is only
visible by reading the transaction back.
"""

import logging
import secrets
import time

from onramp.domain.metadata import SessionExpired, TransferFailure, TransferReceipt
from onramp.domain.states import PaymentStatus
from onramp.errors import InvalidStateTransition, SessionExpiredError, TransferError
from onramp.observability.metrics import record_transfer

logger = logging.getLogger(__name__)


def generate_payment_reference():
    return f"REF-{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


class TransferTrigger:
    def __init__(self, ledger, sessions, gateway, dispatch=None):
        self.ledger = ledger
        self.sessions = sessions
        self.gateway = gateway
        # callable(transaction_id); runs the transfer inline when unset
        self.dispatch = dispatch or self.execute_transfer

    def on_payment_confirmed(self, transaction_id, payment, reference=None):
        """
        Move a pending transaction to ``paid`` and queue its transfer.

        Raises ``SessionExpiredError`` (after failing the transaction) when the
        payment window has closed, and ``InvalidStateTransition`` when the
        transaction is no longer pending.
        """
        tx = self.ledger.require(transaction_id)
        if tx.payment_status != PaymentStatus.PENDING.value:
            raise InvalidStateTransition(
                f"Transaction {transaction_id} is already {tx.payment_status}",
                payload={"transactionId": transaction_id, "from": tx.payment_status, "to": PaymentStatus.PAID.value},
            )

        try:
            self.sessions.ensure_active(transaction_id)
        except SessionExpiredError as e:
            self.ledger.transition(
                transaction_id,
                PaymentStatus.FAILED,
                variant=SessionExpired(expired_at=e.payload.get("expiresAt")),
            )
            logger.warning("Payment arrived after session expiry", extra={"transaction_id": transaction_id})
            raise

        reference = reference or tx.payment_reference or generate_payment_reference()
        self.ledger.transition(transaction_id, PaymentStatus.PAID, variant=payment, payment_reference=reference)
        self.sessions.complete(transaction_id)

        logger.info(
            "Payment confirmed, dispatching transfer",
            extra={"transaction_id": transaction_id, "payment_reference": reference, "kind": payment.kind},
        )
        try:
            self.dispatch(transaction_id)
        except Exception as e:
            # the payment stands, only the transfer is marked failed
            logger.error(
                "Could not dispatch transfer",
                exc_info=True,
                extra={"transaction_id": transaction_id, "error": str(e)},
            )
            record_transfer(tx.token_symbol, "failed")
            self._record(
                transaction_id,
                PaymentStatus.FAILED,
                TransferFailure(
                    reason=f"Transfer could not be queued: {e}",
                    error_type=e.__class__.__name__,
                    gateway="dispatch",
                ),
            )
        return reference

    def execute_transfer(self, transaction_id):
        """Send the purchased tokens. Failures are recorded on the transaction, never raised."""
        tx = self.ledger.get(transaction_id)
        if tx is None:
            logger.error("Transfer requested for unknown transaction", extra={"transaction_id": transaction_id})
            return None
        if tx.payment_status != PaymentStatus.PAID.value:
            logger.info(
                "Skipping transfer, transaction not paid",
                extra={"transaction_id": transaction_id, "status": tx.payment_status},
            )
            return tx.payment_status

        token_symbol = tx.token_symbol
        gateway_name = getattr(self.gateway, "name", self.gateway.__class__.__name__)
        try:
            result = self.gateway.send(
                token_symbol=token_symbol,
                wallet_address=tx.wallet_address,
                amount_base_units=tx.crypto_amount,
                reference=tx.payment_reference,
            )
        except Exception as e:
            reason = e.message if isinstance(e, TransferError) else str(e)
            logger.error(
                "Transfer failed",
                exc_info=not isinstance(e, TransferError),
                extra={
                    "transaction_id": transaction_id,
                    "token_symbol": token_symbol,
                    "crypto_amount": tx.crypto_amount,
                    "error": reason,
                },
            )
            record_transfer(token_symbol, "failed")
            return self._record(
                transaction_id,
                PaymentStatus.FAILED,
                TransferFailure(reason=reason, error_type=e.__class__.__name__, gateway=gateway_name),
            )

        record_transfer(token_symbol, "confirmed")
        logger.info(
            "Transfer accepted",
            extra={"transaction_id": transaction_id, "transaction_hash": result.transaction_hash},
        )
        return self._record(
            transaction_id,
            PaymentStatus.CONFIRMED,
            TransferReceipt(network=result.network, gateway=result.gateway, amount_base_units=tx.crypto_amount),
            transaction_hash=result.transaction_hash,
        )

    def _record(self, transaction_id, status, variant, **fields):
        try:
            tx = self.ledger.transition(transaction_id, status, variant=variant, **fields)
        except InvalidStateTransition as e:
            logger.warning("Transfer outcome not recorded", extra={"transaction_id": transaction_id, "error": e.message})
            return None
        return tx.payment_status

