import uuid

from onramp.extensions import db
from onramp.utils.clock import isoformat, utcnow


class PaymentSession(db.Model):
    __tablename__ = "payment_sessions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # lookup only; a session never owns its transaction
    transaction_id = db.Column(db.String(36), nullable=False, index=True)
    session_data = db.Column(db.JSON, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "transactionId": self.transaction_id,
            "sessionData": self.session_data,
            "expiresAt": isoformat(self.expires_at),
            "isActive": self.is_active,
            "createdAt": isoformat(self.created_at),
        }
