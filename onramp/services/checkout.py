import logging

from onramp.domain.metadata import ProviderFailure
from onramp.domain.states import PaymentStatus
from onramp.errors import UpstreamError
from onramp.utils.clock import isoformat
from onramp.utils.money import kobo_to_naira

logger = logging.getLogger(__name__)


class Checkout:
    """Quote, record and open a payment window for a purchase in one step."""

    def __init__(self, quotes, ledger, sessions, provider, customer_email_domain, session_ttl=600):
        self.quotes = quotes
        self.ledger = ledger
        self.sessions = sessions
        self.provider = provider
        self.customer_email_domain = customer_email_domain
        self.session_ttl = session_ttl

    def open_purchase(self, request):
        quote = self.quotes.compute_quote(request.token_symbol, request.amount_fiat_minor)
        tx = self.ledger.create_from_quote(quote, request.wallet_address, email=request.email)
        transaction_id = tx.id

        try:
            account = self.provider.create_virtual_account(tx, self._customer_email(tx))
        except Exception as e:
            reason = e.message if isinstance(e, UpstreamError) else f"{e.__class__.__name__}: {e}"
            self.ledger.transition(
                transaction_id,
                PaymentStatus.FAILED,
                variant=ProviderFailure(provider=self.provider.name, reason=reason),
            )
            logger.error(
                "Virtual account issuance failed",
                extra={
                    "transaction_id": transaction_id,
                    "provider": self.provider.name,
                    "token_symbol": quote.token_symbol,
                    "amount_minor": quote.amount_fiat_minor,
                },
            )
            raise

        fields = {"virtual_account_number": account.account_number}
        if account.reference:
            fields["payment_reference"] = account.reference
        self.ledger.update(transaction_id, **fields)

        session = self.sessions.create(transaction_id, account.to_snapshot(quote.total_cost), ttl=self.session_ttl)

        return {
            "transactionId": transaction_id,
            "sessionId": session.id,
            "paymentStatus": PaymentStatus.PENDING.value,
            "virtualAccountNumber": account.account_number,
            "bankName": account.bank_name,
            "accountName": account.account_name,
            "paymentReference": account.reference,
            "amount": quote.total_cost,
            "amountNaira": kobo_to_naira(quote.total_cost),
            "expiresAt": isoformat(session.expires_at),
            "quote": quote.to_dict(),
        }

    def _customer_email(self, tx):
        return tx.email or f"{tx.id}@{self.customer_email_domain}"
