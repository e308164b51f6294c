import logging
from decimal import Decimal, InvalidOperation

import requests

from onramp.domain.tokens import SUPPORTED_TOKENS
from onramp.errors import UpstreamError
from onramp.utils.money import naira_to_kobo

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoRateFeed:
    """Fetches NGN prices for every supported token in one call."""

    service = "coingecko"

    def __init__(self, base_url=COINGECKO_BASE_URL, api_key=None, timeout=10, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self):
        """
        Return a ``{symbol: price_in_kobo}`` mapping.

        Symbols with a missing or non-positive price are left out. Transport
        errors, non-2xx responses and malformed bodies raise ``UpstreamError``.
        """
        params = {
            "ids": ",".join(t.coingecko_id for t in SUPPORTED_TOKENS.values()),
            "vs_currencies": "ngn",
        }
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key

        try:
            response = self.session.get(
                f"{self.base_url}/simple/price",
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise UpstreamError(f"Price feed request failed: {e}", service=self.service) from e
        except ValueError as e:
            raise UpstreamError("Price feed returned malformed JSON", service=self.service) from e

        if not isinstance(data, dict):
            raise UpstreamError("Price feed returned an unexpected payload", service=self.service)

        prices = {}
        for symbol, token in SUPPORTED_TOKENS.items():
            entry = data.get(token.coingecko_id)
            if entry is None:
                continue
            if not isinstance(entry, dict):
                logger.warning("Ignoring malformed price entry", extra={"token_symbol": symbol, "raw": repr(entry)})
                continue
            raw = entry.get("ngn")
            if raw is None:
                continue
            try:
                kobo = naira_to_kobo(Decimal(str(raw)))
            except (InvalidOperation, ValueError, OverflowError):
                logger.warning("Ignoring unparseable price", extra={"token_symbol": symbol, "raw": str(raw)})
                continue
            if kobo > 0:
                prices[symbol] = kobo

        return prices
