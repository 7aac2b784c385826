"""Time-boxed cache gates for status reads.

Each cacheable property (power status, outlet-in-use status) owns one
:class:`CacheEntry`. The entry only records *when* the last successful fetch
happened; the value itself lives in the state store.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pyoutlet._constants import ms_to_seconds

INFINITE_TTL = math.inf


def parse_cache_ttl(value: Any) -> float:
    """Convert a config cache duration (milliseconds) to a ttl in seconds.

    * ``None`` or ``0`` -> ``0.0`` (always refetch)
    * positive numbers -> seconds
    * any other number (negative) -> :data:`INFINITE_TTL`

    Raises :class:`ValueError` for non-numeric values; callers fall back
    to ``0.0``.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"cache duration must be a number, got {type(value).__name__}")
    if math.isnan(value):
        raise ValueError("cache duration must not be NaN")
    if value == 0:
        return 0.0
    if value > 0:
        return ms_to_seconds(value)
    return INFINITE_TTL


@dataclass
class CacheEntry:
    """Freshness gate for a single property."""

    ttl: float = 0.0
    last_fetched_at: float | None = None

    @property
    def is_infinite(self) -> bool:
        return math.isinf(self.ttl)

    def should_query(self, now: float) -> bool:
        """Return True when a fresh fetch is required."""
        if self.ttl == 0:
            return True
        if self.last_fetched_at is None:
            return True
        if self.is_infinite:
            return False
        return (now - self.last_fetched_at) >= self.ttl

    def mark_queried(self, now: float) -> None:
        """Record a successful fetch. Never call this for failed fetches."""
        self.last_fetched_at = now

    def age(self, now: float) -> float | None:
        if self.last_fetched_at is None:
            return None
        return now - self.last_fetched_at


class CacheGate:
    """Pairs a :class:`CacheEntry` with a clock."""

    def __init__(self, ttl: float = 0.0, *, clock: Callable[[], float]) -> None:
        self.entry = CacheEntry(ttl=ttl)
        self._clock = clock

    @property
    def is_infinite(self) -> bool:
        return self.entry.is_infinite

    def should_query(self) -> bool:
        return self.entry.should_query(self._clock())

    def mark_queried(self) -> None:
        self.entry.mark_queried(self._clock())
