"""In-memory TTL cache with an in-flight request registry.

Two independent maps:

- values: key -> ``CacheEntry`` (value + fetch timestamp), checked lazily on read
- in-flight: key -> pending ``asyncio`` task, so concurrent callers for the
  same key share one remote round trip

Entries are never mutated; :meth:`QueryCache.set` replaces the whole entry.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float  # epoch ms


class QueryCache:
    """TTL value cache plus in-flight fetch registry.

    Example:
        >>> cache = QueryCache()
        >>> cache.set("tv:0xabc", 3)
        >>> cache.get("tv:0xabc", ttl_ms=60_000)
        3
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        """Initialize an empty cache.

        Args:
            clock: Returns the current time in epoch milliseconds. Defaults to
                wall-clock time; tests pass a fake to control expiry.
        """
        self._clock = clock or _now_ms
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    def now(self) -> float:
        return self._clock()

    def get(self, key: str, ttl_ms: float) -> Any | None:
        """Return the cached value, or ``None`` when absent or stale.

        A ``ttl_ms`` <= 0 never expires.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if ttl_ms > 0 and self._clock() - entry.fetched_at > ttl_ms:
            return None
        return entry.value

    def get_entry(self, key: str) -> CacheEntry[Any] | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def get_inflight(self, key: str) -> asyncio.Future[Any] | None:
        return self._inflight.get(key)

    def set_inflight(self, key: str, future: asyncio.Future[Any]) -> None:
        self._inflight[key] = future

    def delete_inflight(self, key: str) -> None:
        self._inflight.pop(key, None)

    def inflight_count(self) -> int:
        return len(self._inflight)

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def clear(self, prefix: str | None = None) -> None:
        """Drop entries.

        With no prefix both maps are emptied. With a prefix only keys starting
        with it are removed, from both maps.
        """
        if not prefix:
            self._entries.clear()
            self._inflight.clear()
            return
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]
        for key in [k for k in self._inflight if k.startswith(prefix)]:
            del self._inflight[key]
