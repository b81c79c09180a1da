"""Cache-aware access layer over a RemoteEntitySource.

Reads go through a TTL/LRU entity cache; misses are fetched remotely with
concurrent requests for the same id collapsed into one call. Mutations go
to the remote source first and only the authoritative response is written
back into the cache. This is the only component that talks to the remote
source.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from core.cache import TTLCache
from core.inflight import InflightRegistry
from core.interfaces import RemoteEntitySource
from core.models import CacheStats, Entity, Page, SearchResult, entity_key

logger = logging.getLogger(__name__)

PRELOAD_BATCH_SIZE = 10


def search_cache_key(filters: Mapping[str, Any]) -> str:
    # Canonical JSON so equal filter sets share one entry regardless of order
    return "search:" + json.dumps(dict(filters), sort_keys=True, default=str, separators=(",", ":"))


class CachedEntitySource:
    """Read-through / write-through wrapper around a remote entity source.

    Purpose:
      - get / get_batch / get_page_with_prefetch / search: cache-aware reads
      - create / update / remove: remote first, then refresh the cache
      - invalidate_all / cache_stats / aclose: cache management

    Key behavior:
      - Remote errors propagate unchanged; nothing is retried.
      - Next-page prefetch runs as a detached task whose errors are dropped.
      - Search results live in their own cache and are not touched by
        per-entity mutations; only invalidate_all clears them.
    """

    def __init__(
        self,
        remote: RemoteEntitySource,
        *,
        ttl_seconds: float = 600.0,
        maxsize: int = 200,
        auto_cleanup: bool = True,
        search_ttl_seconds: float = 300.0,
        fetch_timeout: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
        cache: Optional[TTLCache[Entity]] = None,
        search_cache: Optional[TTLCache[SearchResult]] = None,
    ) -> None:
        self._remote = remote
        self._cache: TTLCache[Entity] = cache if cache is not None else TTLCache(
            ttl_seconds=ttl_seconds,
            maxsize=maxsize,
            auto_cleanup=auto_cleanup,
            clock=clock,
        )
        self._search_cache: TTLCache[SearchResult] = search_cache if search_cache is not None else TTLCache(
            ttl_seconds=search_ttl_seconds,
            maxsize=maxsize,
            auto_cleanup=auto_cleanup,
            clock=clock,
        )
        self._inflight: InflightRegistry[Entity] = InflightRegistry(timeout=fetch_timeout)
        self._background: Set["asyncio.Task[None]"] = set()

    @property
    def cache(self) -> TTLCache[Entity]:
        return self._cache

    @property
    def background_tasks(self) -> frozenset:
        return frozenset(self._background)

    # --- Reads ---

    async def get(self, entity_id: str) -> Entity:
        """Return one entity, from cache when fresh, else via a shared remote fetch."""
        cached = self._cache.get(entity_id)
        if cached is not None:
            return cached

        return await self._inflight.begin_or_join(entity_id, lambda: self._fetch_one(entity_id))

    async def get_batch(self, entity_ids: Sequence[str]) -> List[Entity]:
        """Return entities in `entity_ids` order, silently omitting failed fetches."""
        found: Dict[str, Entity] = {}
        uncached: List[str] = []

        for eid in entity_ids:
            cached = self._cache.get(eid)
            if cached is not None:
                found[eid] = cached
            elif eid not in uncached:
                uncached.append(eid)

        if uncached:
            outcomes = await asyncio.gather(*(self.get(eid) for eid in uncached), return_exceptions=True)
            for eid, outcome in zip(uncached, outcomes):
                if isinstance(outcome, BaseException):
                    logger.debug("Batch fetch for %r failed: %s", eid, outcome)
                    continue
                found[eid] = outcome

        return [found[eid] for eid in entity_ids if eid in found]

    async def get_page_with_prefetch(
        self,
        page: int = 1,
        page_size: int = 20,
        prefetch_next: bool = True,
    ) -> Page:
        """Fetch one page, cache its entities and optionally warm the next page."""
        result = await self._remote.get_page(page, page_size)
        self._store_all(result.items)

        if prefetch_next and result.has_more:
            self.spawn_prefetch(page + 1, page_size)

        return result

    def spawn_prefetch(self, page: int, page_size: int) -> "asyncio.Task[None]":
        """Start a detached best-effort fetch of `page`; failures are discarded."""
        task = asyncio.get_running_loop().create_task(self._prefetch(page, page_size))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def search(self, filters: Mapping[str, Any]) -> SearchResult:
        key = search_cache_key(filters)
        cached = self._search_cache.get(key)
        if cached is not None:
            return cached

        result = await self._remote.search(filters)
        self._store_all(result.items)
        self._search_cache.set(key, result)
        return result

    async def preload(self, entity_ids: Iterable[str], *, batch_size: int = PRELOAD_BATCH_SIZE) -> int:
        """Warm the cache for `entity_ids` in small batches; returns how many loaded."""
        uncached = [eid for eid in dict.fromkeys(entity_ids) if not self._cache.has(eid)]
        size = max(1, int(batch_size))

        loaded = 0
        for start in range(0, len(uncached), size):
            batch = uncached[start : start + size]
            outcomes = await asyncio.gather(*(self.get(eid) for eid in batch), return_exceptions=True)
            loaded += sum(1 for o in outcomes if not isinstance(o, BaseException))
        return loaded

    # --- Mutations ---

    async def create(self, payload: Mapping[str, Any]) -> Entity:
        created = await self._remote.create_one(payload)
        self._cache.set(entity_key(created), created)
        return created

    async def update(self, entity_id: str, patch: Mapping[str, Any]) -> Entity:
        # Cache the server's version; the patch is never merged locally
        updated = await self._remote.update_one(entity_id, patch)
        self._inflight.discard(entity_id)
        self._cache.set(entity_id, updated)
        return updated

    async def remove(self, entity_id: str) -> None:
        await self._remote.delete_one(entity_id)
        self._cache.remove(entity_id)
        self._inflight.discard(entity_id)

    # --- Cache management ---

    def invalidate_all(self) -> None:
        self._cache.clear()
        self._search_cache.clear()
        self._inflight.clear()

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    async def aclose(self) -> None:
        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        await self._cache.aclose()
        await self._search_cache.aclose()

    async def __aenter__(self) -> "CachedEntitySource":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- Internals ---

    async def _fetch_one(self, entity_id: str) -> Entity:
        entity = await self._remote.get_one(entity_id)
        # A remove/invalidate during the fetch released our slot: don't resurrect
        if self._inflight.owns_current(entity_id):
            self._cache.set(entity_id, entity)
        else:
            logger.debug("Dropping stale fetch result for %r", entity_id)
        return entity

    async def _prefetch(self, page: int, page_size: int) -> None:
        try:
            result = await self._remote.get_page(page, page_size)
            self._store_all(result.items)
        except Exception as e:
            logger.debug("Prefetch of page %d failed: %s", page, e)

    def _store_all(self, items: Iterable[Entity]) -> None:
        self._cache.set_many((entity_key(e), e) for e in items)
