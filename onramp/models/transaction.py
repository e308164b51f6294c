import uuid

from onramp.domain.states import PaymentStatus
from onramp.extensions import db
from onramp.utils.clock import isoformat, utcnow


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    token_symbol = db.Column(db.String(10), nullable=False)
    amount_fiat_minor = db.Column(db.BigInteger, nullable=False)
    crypto_amount = db.Column(db.String(80), nullable=False)  # base units, decimal string
    wallet_address = db.Column(db.String(66), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    exchange_rate = db.Column(db.BigInteger, nullable=False)
    service_fee = db.Column(db.BigInteger, nullable=False)
    network_fee = db.Column(db.BigInteger, nullable=False)
    total_cost = db.Column(db.BigInteger, nullable=False)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    payment_reference = db.Column(db.String(120), unique=True, nullable=True)
    virtual_account_number = db.Column(db.String(20), nullable=True, index=True)
    transaction_hash = db.Column(db.String(80), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    # "metadata" is reserved on declarative models
    provider_metadata = db.Column("metadata", db.JSON, nullable=True)

    __table_args__ = (
        db.Index("idx_transactions_wallet_created", "wallet_address", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tokenSymbol": self.token_symbol,
            "amountFiatMinorUnits": self.amount_fiat_minor,
            "cryptoAmount": self.crypto_amount,
            "walletAddress": self.wallet_address,
            "email": self.email,
            "exchangeRate": self.exchange_rate,
            "serviceFee": self.service_fee,
            "networkFee": self.network_fee,
            "totalCost": self.total_cost,
            "paymentStatus": self.payment_status,
            "paymentReference": self.payment_reference,
            "virtualAccountNumber": self.virtual_account_number,
            "transactionHash": self.transaction_hash,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
            "metadata": self.provider_metadata or {},
        }

    def __repr__(self):
        return f"<Transaction {self.id} {self.token_symbol} {self.payment_status}>"
