import logging

from sqlalchemy.exc import SQLAlchemyError

from onramp.domain.tokens import SUPPORTED_TOKENS
from onramp.errors import UpstreamError
from onramp.extensions import db
from onramp.models import CryptoRate
from onramp.observability.metrics import record_rate_refresh
from onramp.services.rate_cache import CachedRate
from onramp.utils.clock import isoformat, utcnow
from onramp.utils.money import kobo_to_naira

logger = logging.getLogger(__name__)


class RateService:
    """Keeps the rate cache and the persisted ``CryptoRate`` rows in step with the price feed."""

    def __init__(self, rate_cache, feed):
        self.rate_cache = rate_cache
        self.feed = feed

    def refresh(self):
        """
        Pull fresh prices into the cache and the database.

        Feed failures are logged and swallowed; callers keep serving whatever
        the cache still holds. Returns the symbols that were updated.
        """
        try:
            prices = self.feed.fetch()
        except UpstreamError as e:
            logger.warning("Rate refresh failed, serving cached rates", extra={"error": e.message})
            record_rate_refresh("failed")
            return []

        now = utcnow()
        for symbol, price_minor in prices.items():
            self.rate_cache.set_current(CachedRate(symbol, price_minor, now))

        try:
            self._persist(prices, now)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to persist refreshed rates")

        record_rate_refresh("ok" if prices else "empty")
        logger.info("Rates refreshed", extra={"symbols": sorted(prices)})
        return sorted(prices)

    def snapshot(self):
        """Per-symbol view of what a quote would use right now."""
        rates = {}
        for symbol in SUPPORTED_TOKENS:
            rate, source = self.rate_cache.resolve(symbol)
            if rate is None:
                continue
            rates[symbol] = {
                "priceFiatMinorUnits": rate.price_minor,
                "priceNaira": kobo_to_naira(rate.price_minor),
                "lastUpdated": isoformat(rate.last_updated),
                "source": source,
            }
        return rates

    def warm(self):
        """Load persisted rows into the fallback slot so quotes work before the first refresh."""
        rows = CryptoRate.query.all()
        for row in rows:
            if row.price_minor > 0:
                self.rate_cache.set_fallback(CachedRate(row.symbol, row.price_minor, row.last_updated))
        logger.info("Rate cache warmed", extra={"symbols": [r.symbol for r in rows]})
        return len(rows)

    def seed(self):
        """Write development seed prices for every supported token and load them into the cache."""
        prices = {symbol: token.seed_price_minor for symbol, token in SUPPORTED_TOKENS.items()}
        now = utcnow()
        self._persist(prices, now)
        for symbol, price_minor in prices.items():
            self.rate_cache.set_current(CachedRate(symbol, price_minor, now))
        return sorted(prices)

    def _persist(self, prices, now):
        existing = {
            row.symbol: row
            for row in CryptoRate.query.filter(CryptoRate.symbol.in_(list(prices))).all()
        } if prices else {}

        for symbol, price_minor in prices.items():
            row = existing.get(symbol)
            if row is None:
                db.session.add(CryptoRate(symbol=symbol, price_minor=price_minor, last_updated=now))
            else:
                row.price_minor = price_minor
                row.last_updated = now
        db.session.commit()
