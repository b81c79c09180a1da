"""In-memory TTL cache with timestamp-based LRU eviction.

Entries expire a fixed window after insertion (reads never extend it).
When the cache is full, inserting a new key evicts the entry with the
oldest last-access time. An optional background task sweeps expired
entries every ``ttl / 2`` seconds; it belongs to the cache instance and
is cancelled by ``close()`` / ``aclose()``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

from core.errors import ValidationError
from core.models import CacheStats

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    # Timestamps come from the cache clock (time.monotonic by default)
    value: T
    inserted_at: float
    last_accessed_at: float
    access_count: int = 0


class TTLCache(Generic[T]):
    def __init__(
        self,
        *,
        ttl_seconds: float = 300.0,
        maxsize: int = 100,
        auto_cleanup: bool = True,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        ttl = float(ttl_seconds)
        if ttl <= 0:
            raise ValidationError("ttl_seconds must be positive")
        if int(maxsize) < 1:
            raise ValidationError("maxsize must be >= 1")

        self._ttl = ttl
        self._maxsize = int(maxsize)
        self._auto_cleanup = bool(auto_cleanup)
        self._clock = clock or time.monotonic
        self._store: Dict[str, CacheEntry[T]] = {}

        self._sweeper: Optional[asyncio.Task[None]] = None
        self._closed = False
        self._ensure_sweeper()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def get(self, key: str) -> Optional[T]:
        entry = self._store.get(key)
        if entry is None:
            return None

        now = self._clock()
        if self._is_expired(entry, now):
            del self._store[key]
            return None

        entry.last_accessed_at = now
        entry.access_count += 1
        return entry.value

    def set(self, key: str, value: T) -> None:
        now = self._clock()
        existing = self._store.get(key)

        # Overwrites never grow the store, so only new keys can evict
        if existing is None and len(self._store) >= self._maxsize:
            self._evict_lru()

        self._store[key] = CacheEntry(
            value=value,
            inserted_at=now,
            last_accessed_at=now,
            access_count=existing.access_count if existing is not None else 0,
        )
        self._ensure_sweeper()

    def set_many(self, items: Iterable[Tuple[str, T]]) -> None:
        for key, value in items:
            self.set(key, value)

    def remove(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def has(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and not self._is_expired(entry, self._clock())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self._store)

    def stats(self) -> CacheStats:
        entries = list(self._store.values())
        now = self._clock()
        if not entries:
            return CacheStats(size=0, maxsize=self._maxsize)

        total_accesses = sum(e.access_count for e in entries)
        return CacheStats(
            size=len(entries),
            maxsize=self._maxsize,
            valid_entries=sum(1 for e in entries if not self._is_expired(e, now)),
            total_accesses=total_accesses,
            average_age=sum(now - e.inserted_at for e in entries) / len(entries),
            hit_rate=total_accesses / len(entries),
        )

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._store.items() if self._is_expired(e, now)]
        for key in expired:
            del self._store[key]
        return len(expired)

    # --- Policy ---

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        # Fixed window measured from insertion; access does not slide it
        return now - entry.inserted_at > self._ttl

    def _evict_lru(self) -> None:
        if not self._store:
            return
        lru_key = min(self._store, key=lambda k: self._store[k].last_accessed_at)
        del self._store[lru_key]
        logger.debug("Evicted least recently used cache key %r", lru_key)

    # --- Background sweep lifecycle ---

    def _ensure_sweeper(self) -> None:
        if not self._auto_cleanup or self._closed or self.sweeping:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the first set() inside a loop starts the sweep
            return
        self._sweeper = loop.create_task(self._sweep_forever())

    async def _sweep_forever(self) -> None:
        interval = self._ttl / 2
        while True:
            await asyncio.sleep(interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Swept %d expired cache entries", removed)

    def close(self) -> None:
        self._closed = True
        if self._sweeper is not None:
            self._sweeper.cancel()

    async def aclose(self) -> None:
        self.close()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is None:
            return
        try:
            await sweeper
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "TTLCache[T]":
        self._ensure_sweeper()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
