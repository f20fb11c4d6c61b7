"""Time-bounded cache with an injectable clock.

Entries are valid while their age is at most the TTL and expire strictly after
it. The cache is bounded: when an insert pushes it over ``max_size``, stale
entries are swept first and, if that is not enough, the oldest entries are
evicted in insertion order.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

import structlog

logger = structlog.get_logger()

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class Cache(Protocol[K, V]):
    """Interface used by components that memoize results."""

    def get(self, key: K) -> V | None: ...

    def set(self, key: K, value: V) -> None: ...

    def clear(self) -> None: ...

    def __len__(self) -> int: ...


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[K, V]):
    """Bounded mapping whose entries expire after ``ttl_seconds``.

    Args:
        ttl_seconds: Maximum age of a readable entry
        max_size: Entry count that triggers a sweep on insert
        clock: Monotonic time source; inject a fake for deterministic tests
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_size: int = 1000,
        clock: Clock = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[K, _Entry[V]] = OrderedDict()

    def _is_expired(self, entry: _Entry[V], now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def get(self, key: K) -> V | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: K, value: V) -> None:
        """Store a value, sweeping and evicting when over capacity."""
        self._entries.pop(key, None)
        self._entries[key] = _Entry(value=value, stored_at=self._clock())
        if len(self._entries) > self.max_size:
            swept = self.sweep()
            evicted = 0
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
                evicted += 1
            logger.debug("cache_over_capacity", swept=swept, evicted=evicted)

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        stale = [k for k, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


__all__ = ["Cache", "Clock", "TTLCache"]
