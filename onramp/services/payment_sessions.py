import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from onramp.errors import SessionExpiredError
from onramp.extensions import db
from onramp.models import PaymentSession
from onramp.utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)


class PaymentSessionManager:
    """Time-boxed virtual account sessions. There is no renewal: an expired session needs a new quote."""

    def __init__(self, default_ttl: int = 600, clock=utcnow):
        self.default_ttl = default_ttl
        self._clock = clock

    def create(self, transaction_id, snapshot, ttl=None):
        now = self._clock()
        session = PaymentSession(
            transaction_id=transaction_id,
            session_data=dict(snapshot),
            expires_at=now + timedelta(seconds=ttl if ttl is not None else self.default_ttl),
            is_active=True,
            created_at=now,
        )
        db.session.add(session)
        db.session.commit()

        logger.info(
            "Payment session opened",
            extra={"transaction_id": transaction_id, "session_id": session.id, "expires_at": isoformat(session.expires_at)},
        )
        return session

    def get_for_transaction(self, transaction_id):
        return (
            PaymentSession.query
            .filter_by(transaction_id=transaction_id)
            .order_by(PaymentSession.created_at.desc())
            .first()
        )

    def is_expired(self, session) -> bool:
        return self._clock() >= session.expires_at

    def ensure_active(self, transaction_id):
        """Return the live session for a transaction or raise ``SessionExpiredError``."""
        session = self.get_for_transaction(transaction_id)
        if session is None or not session.is_active or self.is_expired(session):
            raise SessionExpiredError(
                "Payment session has expired. Request a new quote to continue.",
                payload={
                    "transactionId": transaction_id,
                    "expiresAt": isoformat(session.expires_at) if session else None,
                },
            )
        return session

    def complete(self, transaction_id):
        """Deactivate every session of a transaction once its payment has landed."""
        updated = (
            PaymentSession.query
            .filter_by(transaction_id=transaction_id, is_active=True)
            .update({"is_active": False}, synchronize_session=False)
        )
        db.session.commit()
        return updated

    def cleanup_expired(self):
        """Delete sessions whose ``expires_at`` has passed. Returns the number removed."""
        try:
            removed = (
                PaymentSession.query
                .filter(PaymentSession.expires_at <= self._clock())
                .delete(synchronize_session=False)
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        if removed:
            logger.info("Expired payment sessions removed", extra={"count": removed})
        return removed
