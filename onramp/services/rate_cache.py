"""
In-process rate cache with a short-lived current entry and a long-lived fallback.

Expiry is checked on read and by ``sweep()``, which the periodic sweeper calls.
No locks are taken: entries are replaced whole and the sweep only removes an
entry if it is still the one it found expired.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

CURRENT = "current"
FALLBACK = "fallback"


@dataclass(frozen=True)
class CachedRate:
    symbol: str
    price_minor: int
    last_updated: datetime


@dataclass(frozen=True)
class _Entry:
    rate: CachedRate
    expires_at: float


class RateCache:
    def __init__(self, current_ttl: float = 30, fallback_ttl: float = 3600,
                 clock: Callable[[], float] = time.monotonic):
        self.current_ttl = current_ttl
        self.fallback_ttl = fallback_ttl
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _Entry] = {}

    def set_current(self, rate: CachedRate) -> None:
        """Store ``rate`` as current and refresh the fallback entry for the same symbol."""
        if rate.price_minor <= 0:
            raise ValueError(f"Rate for {rate.symbol} must be positive, got {rate.price_minor}")

        now = self._clock()
        self._entries[(CURRENT, rate.symbol)] = _Entry(rate, now + self.current_ttl)
        self._entries[(FALLBACK, rate.symbol)] = _Entry(rate, now + self.fallback_ttl)

    def set_fallback(self, rate: CachedRate) -> None:
        """Seed only the fallback entry, e.g. from persisted rows at boot."""
        if rate.price_minor <= 0:
            raise ValueError(f"Rate for {rate.symbol} must be positive, got {rate.price_minor}")
        self._entries[(FALLBACK, rate.symbol)] = _Entry(rate, self._clock() + self.fallback_ttl)

    def get_current(self, symbol: str) -> Optional[CachedRate]:
        return self._read(CURRENT, symbol)

    def get_fallback(self, symbol: str) -> Optional[CachedRate]:
        return self._read(FALLBACK, symbol)

    def resolve(self, symbol: str) -> Tuple[Optional[CachedRate], Optional[str]]:
        """Current entry, else fallback entry, with the name of the slot it came from."""
        rate = self.get_current(symbol)
        if rate is not None:
            return rate, CURRENT
        rate = self.get_fallback(symbol)
        if rate is not None:
            return rate, FALLBACK
        return None, None

    def sweep(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        removed = 0
        for key, entry in list(self._entries.items()):
            if now >= entry.expires_at and self._entries.get(key) is entry:
                self._entries.pop(key, None)
                removed += 1
        return removed

    def clear(self, symbol: Optional[str] = None) -> None:
        if symbol is None:
            self._entries.clear()
            return
        self._entries.pop((CURRENT, symbol), None)
        self._entries.pop((FALLBACK, symbol), None)

    def symbols(self):
        return sorted({symbol for _, symbol in list(self._entries)})

    def __len__(self):
        return len(self._entries)

    def _read(self, slot: str, symbol: str) -> Optional[CachedRate]:
        key = (slot, symbol)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            if self._entries.get(key) is entry:
                self._entries.pop(key, None)
            return None
        return entry.rate
