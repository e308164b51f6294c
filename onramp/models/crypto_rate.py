import uuid

from onramp.extensions import db
from onramp.utils.clock import isoformat, utcnow


class CryptoRate(db.Model):
    """Last price fetched for a symbol. One row per symbol, overwritten on refresh."""

    __tablename__ = "crypto_rates"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    symbol = db.Column(db.String(10), unique=True, nullable=False)
    price_minor = db.Column(db.BigInteger, nullable=False)  # kobo per whole token
    last_updated = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint("price_minor > 0", name="ck_crypto_rates_positive_price"),
    )

    def to_dict(self):
        return {
            "symbol": self.symbol,
            "priceFiatMinorUnits": self.price_minor,
            "lastUpdated": isoformat(self.last_updated),
        }
