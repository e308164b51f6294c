import pytest

from onramp.services.rate_cache import CURRENT, FALLBACK, CachedRate, RateCache
from onramp.utils.clock import utcnow


def _rate(symbol="BTC", price=9_542_000_000):
    return CachedRate(symbol, price, utcnow())


@pytest.fixture
def cache(clock):
    return RateCache(current_ttl=30, fallback_ttl=3600, clock=clock)


def test_current_is_readable_immediately(cache):
    rate = _rate()
    cache.set_current(rate)

    assert cache.get_current("BTC") == rate
    assert cache.get_fallback("BTC") == rate


def test_current_expires_before_fallback(cache, clock):
    rate = _rate()
    cache.set_current(rate)

    clock.advance(30)
    assert cache.get_current("BTC") is None
    assert cache.get_fallback("BTC") == rate

    clock.advance(3570)
    assert cache.get_fallback("BTC") is None


def test_setting_current_refreshes_fallback(cache, clock):
    cache.set_current(_rate(price=100))
    clock.advance(3000)
    cache.set_current(_rate(price=200))
    clock.advance(1000)

    assert cache.get_fallback("BTC").price_minor == 200


def test_resolve_prefers_current_then_fallback(cache, clock):
    cache.set_current(_rate())
    assert cache.resolve("BTC")[1] == CURRENT

    clock.advance(31)
    rate, source = cache.resolve("BTC")
    assert source == FALLBACK
    assert rate.price_minor == 9_542_000_000

    assert cache.resolve("ETH") == (None, None)


def test_set_fallback_only_seeds_long_entry(cache):
    cache.set_fallback(_rate("ETH", 528_000_000))

    assert cache.get_current("ETH") is None
    assert cache.get_fallback("ETH").price_minor == 528_000_000


@pytest.mark.parametrize("price", [0, -1])
def test_rejects_non_positive_rates(cache, price):
    with pytest.raises(ValueError):
        cache.set_current(_rate(price=price))
    with pytest.raises(ValueError):
        cache.set_fallback(_rate(price=price))
    assert len(cache) == 0


def test_sweep_drops_only_expired_entries(cache, clock):
    cache.set_current(_rate("BTC"))
    cache.set_current(_rate("ETH", 528_000_000))

    clock.advance(31)
    assert cache.sweep() == 2  # both current entries
    assert len(cache) == 2
    assert cache.symbols() == ["BTC", "ETH"]

    clock.advance(3600)
    assert cache.sweep() == 2
    assert len(cache) == 0


def test_clear_single_symbol(cache):
    cache.set_current(_rate("BTC"))
    cache.set_current(_rate("USDC", 165_000))

    cache.clear("BTC")

    assert cache.get_fallback("BTC") is None
    assert cache.get_current("USDC") is not None
