"""
Quote computation.

All money is integer kobo. The crypto amount is expressed in the token's
smallest on-chain unit and computed with ``Decimal`` so large scaling factors
(10**18 for ETH) never go through a float.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_FLOOR, localcontext
from typing import Callable

from onramp.domain.tokens import get_token
from onramp.errors import RateUnavailableError, ValidationError
from onramp.utils.clock import isoformat, utcnow
from onramp.utils.money import kobo_to_naira

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    token_symbol: str
    amount_fiat_minor: int
    crypto_amount: str
    exchange_rate: int
    service_fee: int
    network_fee: int
    total_cost: int
    rate_source: str
    rate_valid_until: datetime

    def to_dict(self):
        return {
            "tokenSymbol": self.token_symbol,
            "amountFiatMinorUnits": self.amount_fiat_minor,
            "cryptoAmount": self.crypto_amount,
            "exchangeRate": self.exchange_rate,
            "serviceFee": self.service_fee,
            "networkFee": self.network_fee,
            "totalCost": self.total_cost,
            "totalCostNaira": kobo_to_naira(self.total_cost),
            "rateSource": self.rate_source,
            "rateValidUntil": isoformat(self.rate_valid_until),
        }


def service_fee_for(amount_minor: int, fee_rate: Decimal) -> int:
    return int((Decimal(amount_minor) * fee_rate).to_integral_value(rounding=ROUND_FLOOR))


def crypto_amount_for(amount_minor: int, rate_minor: int, decimals: int) -> str:
    """Base units of the token bought by ``amount_minor`` kobo at ``rate_minor`` kobo per token."""
    with localcontext() as ctx:
        ctx.prec = 80
        units = Decimal(amount_minor) * (Decimal(10) ** decimals) / Decimal(rate_minor)
        return format(units.to_integral_value(rounding=ROUND_FLOOR), "f")


class QuoteEngine:
    def __init__(self, rate_cache, network_fee: int = 5_000, service_fee_rate="0.01",
                 validity_seconds: int = 600, clock: Callable[[], datetime] = utcnow):
        self.rate_cache = rate_cache
        self.network_fee = int(network_fee)
        self.service_fee_rate = Decimal(str(service_fee_rate))
        self.validity = timedelta(seconds=validity_seconds)
        self._clock = clock

    def price(self, symbol: str, amount_minor: int, rate_minor: int, rate_source: str = "current") -> Quote:
        """Pure pricing against an explicit rate."""
        token = get_token(symbol)
        if token is None:
            raise ValidationError([{"field": "tokenSymbol", "message": f"Unsupported token {symbol}"}])
        if rate_minor <= 0:
            raise RateUnavailableError(symbol)

        service_fee = service_fee_for(amount_minor, self.service_fee_rate)
        return Quote(
            token_symbol=token.symbol,
            amount_fiat_minor=amount_minor,
            crypto_amount=crypto_amount_for(amount_minor, rate_minor, token.decimals),
            exchange_rate=rate_minor,
            service_fee=service_fee,
            network_fee=self.network_fee,
            total_cost=amount_minor + service_fee + self.network_fee,
            rate_source=rate_source,
            rate_valid_until=self._clock() + self.validity,
        )

    def compute_quote(self, symbol: str, amount_minor: int) -> Quote:
        rate, source = self.rate_cache.resolve(symbol)
        if rate is None:
            logger.warning(
                "No rate available for quote",
                extra={"token_symbol": symbol, "amount_minor": amount_minor},
            )
            raise RateUnavailableError(symbol)

        if source != "current":
            logger.info("Quoting from fallback rate", extra={"token_symbol": symbol})

        return self.price(symbol, amount_minor, rate.price_minor, rate_source=source)
