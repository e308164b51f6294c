from .crypto_rate import CryptoRate
from .payment_session import PaymentSession
from .transaction import Transaction

__all__ = ["CryptoRate", "PaymentSession", "Transaction"]
