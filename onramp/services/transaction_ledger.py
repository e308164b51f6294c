"""
Transaction ledger.

The only place transactions are created or change state. Status changes follow
``pending -> paid -> confirmed`` with ``failed`` reachable from ``pending`` and
``paid``; ``confirmed`` and ``failed`` are terminal. Rows are locked with
``with_for_update()`` while a change is applied so two writers cannot both
move the same transaction out of a given status.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from onramp.domain.metadata import attach
from onramp.domain.states import PaymentStatus, can_transition
from onramp.errors import InvalidStateTransition, NotFoundError, ValidationError
from onramp.extensions import db
from onramp.models import Transaction
from onramp.schemas import PurchaseRequest, parse_request
from onramp.utils.clock import utcnow

logger = logging.getLogger(__name__)

PRICING_FIELDS = frozenset({
    "token_symbol",
    "amount_fiat_minor",
    "crypto_amount",
    "wallet_address",
    "exchange_rate",
    "service_fee",
    "network_fee",
    "total_cost",
})

MUTABLE_FIELDS = frozenset({
    "payment_status",
    "payment_reference",
    "virtual_account_number",
    "transaction_hash",
})


@dataclass(frozen=True)
class AmountLimits:
    minimum: int
    maximum: int


def _pricing_violations(crypto_amount, exchange_rate, service_fee, network_fee, amount, total_cost):
    violations = []
    try:
        units = Decimal(str(crypto_amount))
        if not units.is_finite() or units < 0:
            raise InvalidOperation
    except InvalidOperation:
        violations.append({"field": "cryptoAmount", "message": "Must be a non-negative decimal string"})

    for name, value in (("exchangeRate", exchange_rate), ("serviceFee", service_fee), ("networkFee", network_fee)):
        if not isinstance(value, int) or value < 0:
            violations.append({"field": name, "message": "Must be a non-negative integer"})
    if isinstance(exchange_rate, int) and exchange_rate == 0:
        violations.append({"field": "exchangeRate", "message": "Must be positive"})

    if not violations and isinstance(amount, int) and total_cost != amount + service_fee + network_fee:
        violations.append({"field": "totalCost", "message": "Must equal amount plus service and network fees"})
    return violations


class TransactionLedger:
    def __init__(self, limits: AmountLimits, clock=utcnow):
        self.limits = limits
        self._clock = clock

    def create(self, *, token_symbol, amount_fiat_minor, crypto_amount, wallet_address,
               exchange_rate, service_fee, network_fee, total_cost, email=None,
               virtual_account_number=None, payment_reference=None):
        """Validate and store a new ``pending`` transaction. Every violation is reported at once."""
        violations = []
        request = None
        try:
            request = parse_request(
                PurchaseRequest,
                {
                    "tokenSymbol": token_symbol,
                    "amountFiatMinorUnits": amount_fiat_minor,
                    "walletAddress": wallet_address,
                    "email": email,
                },
                limits=self.limits,
            )
        except ValidationError as e:
            violations.extend(e.violations)

        violations.extend(_pricing_violations(
            crypto_amount, exchange_rate, service_fee, network_fee, amount_fiat_minor, total_cost,
        ))
        if violations:
            raise ValidationError(violations)

        now = self._clock()
        tx = Transaction(
            token_symbol=request.token_symbol,
            amount_fiat_minor=request.amount_fiat_minor,
            crypto_amount=str(crypto_amount),
            wallet_address=request.wallet_address,
            email=request.email,
            exchange_rate=exchange_rate,
            service_fee=service_fee,
            network_fee=network_fee,
            total_cost=total_cost,
            payment_status=PaymentStatus.PENDING.value,
            payment_reference=payment_reference,
            virtual_account_number=virtual_account_number,
            created_at=now,
            updated_at=now,
            provider_metadata={},
        )
        self._commit(tx)

        logger.info(
            "Transaction created",
            extra={
                "transaction_id": tx.id,
                "token_symbol": tx.token_symbol,
                "amount_minor": tx.amount_fiat_minor,
                "total_cost": tx.total_cost,
            },
        )
        return tx

    def create_from_quote(self, quote, wallet_address, email=None, **fields):
        return self.create(
            token_symbol=quote.token_symbol,
            amount_fiat_minor=quote.amount_fiat_minor,
            crypto_amount=quote.crypto_amount,
            wallet_address=wallet_address,
            exchange_rate=quote.exchange_rate,
            service_fee=quote.service_fee,
            network_fee=quote.network_fee,
            total_cost=quote.total_cost,
            email=email,
            **fields,
        )

    def get(self, transaction_id):
        return db.session.get(Transaction, transaction_id)

    def require(self, transaction_id):
        tx = self.get(transaction_id)
        if tx is None:
            raise NotFoundError(f"Transaction {transaction_id} not found", payload={"transactionId": transaction_id})
        return tx

    def update(self, transaction_id, variant=None, **fields):
        """
        Merge ``fields`` into the transaction and refresh ``updated_at``.

        A status change must be legal from the current status; asking for the
        current status again only merges the other fields. ``variant`` is a
        metadata variant stored in its slot.
        """
        frozen = sorted(PRICING_FIELDS.intersection(fields))
        unknown = sorted(set(fields) - MUTABLE_FIELDS - PRICING_FIELDS)
        if frozen or unknown:
            raise ValidationError(
                [{"field": name, "message": "Field is immutable after creation"} for name in frozen]
                + [{"field": name, "message": "Unknown field"} for name in unknown]
            )

        try:
            tx = (
                Transaction.query
                .filter_by(id=transaction_id)
                .with_for_update()
                .first()
            )
            if tx is None:
                raise NotFoundError(
                    f"Transaction {transaction_id} not found", payload={"transactionId": transaction_id}
                )

            previous = tx.payment_status
            target = fields.pop("payment_status", None)
            if target is not None:
                target = PaymentStatus(target).value
                if target != previous and not can_transition(previous, target):
                    db.session.rollback()
                    raise InvalidStateTransition(
                        f"Cannot move transaction from {previous} to {target}",
                        payload={"transactionId": transaction_id, "from": previous, "to": target},
                    )
                tx.payment_status = target

            for name, value in fields.items():
                setattr(tx, name, value)
            if variant is not None:
                tx.provider_metadata = attach(tx.provider_metadata, variant)
            tx.updated_at = self._clock()

            self._commit(tx)
        except SQLAlchemyError:
            db.session.rollback()
            raise

        if target is not None and target != previous:
            logger.info(
                "Transaction status changed",
                extra={"transaction_id": tx.id, "from": previous, "to": target, "token_symbol": tx.token_symbol},
            )
        return tx

    def transition(self, transaction_id, status, variant=None, **fields):
        return self.update(transaction_id, variant=variant, payment_status=status, **fields)

    def find_for_payment(self, reference=None, account_number=None):
        """Locate a transaction by payment reference, falling back to its virtual account number."""
        if reference:
            tx = Transaction.query.filter_by(payment_reference=reference).first()
            if tx is not None:
                return tx
        if account_number:
            return (
                Transaction.query
                .filter_by(virtual_account_number=str(account_number))
                .order_by(Transaction.created_at.desc())
                .first()
            )
        return None

    def list_by_wallet(self, wallet_address):
        return (
            Transaction.query
            .filter_by(wallet_address=wallet_address)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .all()
        )

    def _commit(self, tx):
        db.session.add(tx)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.warning("Transaction write rejected", extra={"transaction_id": tx.id, "error": str(e.orig)})
            raise ValidationError([{"field": "paymentReference", "message": "Payment reference already in use"}]) from e
