from datetime import datetime, timedelta

import pytest

from onramp.errors import RateUnavailableError, ValidationError
from onramp.services.quote_engine import QuoteEngine, crypto_amount_for
from onramp.services.rate_cache import CachedRate, RateCache

NOW = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture
def cache(clock):
    return RateCache(current_ttl=30, fallback_ttl=3600, clock=clock)


@pytest.fixture
def engine(cache):
    return QuoteEngine(cache, network_fee=5_000, service_fee_rate="0.01", validity_seconds=600, clock=lambda: NOW)


def test_btc_quote_breakdown(engine, cache):
    cache.set_current(CachedRate("BTC", 95_420_000, NOW))

    quote = engine.compute_quote("BTC", 10_000)

    assert quote.service_fee == 100
    assert quote.network_fee == 5_000
    assert quote.total_cost == 15_100
    assert quote.exchange_rate == 95_420_000
    assert quote.crypto_amount == "10479"
    assert quote.rate_source == "current"
    assert quote.rate_valid_until == NOW + timedelta(minutes=10)


@pytest.mark.parametrize("amount", [100_000, 123_457, 999_999, 1_000_000, 50_000_000])
def test_total_cost_is_amount_plus_fees(engine, cache, amount):
    cache.set_current(CachedRate("USDC", 165_000, NOW))

    quote = engine.compute_quote("USDC", amount)

    assert quote.total_cost == amount + amount // 100 + 5_000


def test_quote_is_deterministic(engine, cache):
    cache.set_current(CachedRate("ETH", 528_000_000, NOW))

    first = engine.compute_quote("ETH", 1_000_000)
    second = engine.compute_quote("ETH", 1_000_000)

    assert first == second


def test_eighteen_decimal_tokens_keep_full_precision(engine, cache):
    cache.set_current(CachedRate("ETH", 528_000_000, NOW))

    quote = engine.compute_quote("ETH", 1_000_000)

    assert quote.crypto_amount == "1893939393939393"
    assert "." not in quote.crypto_amount
    assert "e" not in quote.crypto_amount.lower()


def test_crypto_amount_rounds_down():
    assert crypto_amount_for(1, 3, 0) == "0"
    assert crypto_amount_for(2, 3, 1) == "6"


def test_falls_back_when_current_expired(engine, cache, clock):
    cache.set_current(CachedRate("STRK", 120_000, NOW))
    clock.advance(45)

    quote = engine.compute_quote("STRK", 200_000)

    assert quote.rate_source == "fallback"
    assert quote.exchange_rate == 120_000


def test_rate_unavailable_without_any_cached_rate(engine):
    with pytest.raises(RateUnavailableError) as exc:
        engine.compute_quote("BTC", 100_000)

    assert exc.value.status_code == 404
    assert exc.value.payload == {"tokenSymbol": "BTC"}


def test_rate_unavailable_after_fallback_expires(engine, cache, clock):
    cache.set_current(CachedRate("BTC", 95_420_000, NOW))
    clock.advance(3601)

    with pytest.raises(RateUnavailableError):
        engine.compute_quote("BTC", 100_000)


def test_price_rejects_unknown_token(engine):
    with pytest.raises(ValidationError):
        engine.price("DOGE", 100_000, 50)


def test_to_dict_uses_camel_case(engine, cache):
    cache.set_current(CachedRate("BTC", 95_420_000, NOW))

    body = engine.compute_quote("BTC", 1_000_000).to_dict()

    assert body["tokenSymbol"] == "BTC"
    assert body["amountFiatMinorUnits"] == 1_000_000
    assert body["totalCost"] == 1_015_000
    assert body["totalCostNaira"] == "10150.00"
    assert body["rateValidUntil"] == "2026-01-15T12:10:00Z"
