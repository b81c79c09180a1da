"""Request deduplication for concurrent fetches.

Concurrent callers asking for the same key share one in-flight task.
The registry entry is dropped inside the task itself, before its result
reaches any waiter, so a call made right after completion always starts
fresh work.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

from core.errors import FetchTimeoutError

T = TypeVar("T")

logger = logging.getLogger(__name__)

Producer = Callable[[], Awaitable[T]]


class InflightRegistry(Generic[T]):
    def __init__(self, *, timeout: Optional[float] = None) -> None:
        # None disables the timeout: a hung fetch then holds its key forever
        self._timeout = timeout if timeout and timeout > 0 else None
        self._pending: Dict[str, "asyncio.Task[T]"] = {}

    def begin_or_join(self, key: str, producer: Producer[T]) -> Awaitable[T]:
        """Return an awaitable for the shared fetch of `key`, starting it if needed."""
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, producer))
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight fetch for %r", key)

        # Shield so an abandoning caller never cancels the shared fetch
        return asyncio.shield(task)

    def owns_current(self, key: str) -> bool:
        """True when called from the task that currently holds `key`."""
        task = self._pending.get(key)
        return task is not None and task is asyncio.current_task()

    def discard(self, key: str) -> None:
        self._pending.pop(key, None)

    def clear(self) -> None:
        self._pending.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def _run(self, key: str, producer: Producer[T]) -> T:
        try:
            if self._timeout is None:
                return await producer()
            # asyncio.timeout keeps the producer in this task, so owns_current() holds
            try:
                async with asyncio.timeout(self._timeout):
                    return await producer()
            except TimeoutError as e:
                raise FetchTimeoutError(f"Fetch for {key!r} timed out after {self._timeout}s") from e
        finally:
            # Only release the slot if a newer fetch has not replaced us
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]
