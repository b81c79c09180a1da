import asyncio

import pytest

from core.errors import NotFoundError
from core.models import Page, SearchResult


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool registration."""

    def __init__(self) -> None:
        self.tools = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRemote:
    """In-memory RemoteEntitySource that records calls.

    - `fail` holds ids whose get_one raises.
    - `gate`, when set, blocks get_one until the event is set.
    - `page_errors` holds page numbers whose get_page raises.
    """

    def __init__(self, entities=None) -> None:
        self.entities = {e["id"]: dict(e) for e in (entities or [])}
        self.fail = set()
        self.page_errors = set()
        self.gate = None
        self.calls = []
        self._next_id = 1000

    def count(self, name: str, *args) -> int:
        return sum(1 for c in self.calls if c[0] == name and (not args or c[1:] == args))

    async def get_one(self, entity_id: str):
        self.calls.append(("get_one", entity_id))
        # Server reads now, the response arrives once the gate opens
        snapshot = self.entities.get(entity_id)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if entity_id in self.fail or snapshot is None:
            raise NotFoundError(f"Not found: {entity_id}")
        return dict(snapshot)

    async def get_page(self, page: int, page_size: int):
        self.calls.append(("get_page", page, page_size))
        await asyncio.sleep(0)
        if page in self.page_errors:
            raise RuntimeError(f"page {page} exploded")
        ordered = sorted(self.entities.values(), key=lambda e: e["id"])
        offset = (page - 1) * page_size
        items = [dict(e) for e in ordered[offset : offset + page_size]]
        return Page(items=items, total=len(ordered), has_more=offset + page_size < len(ordered))

    async def create_one(self, payload):
        self.calls.append(("create_one",))
        await asyncio.sleep(0)
        self._next_id += 1
        created = {**payload, "id": f"e{self._next_id}"}
        self.entities[created["id"]] = created
        return dict(created)

    async def update_one(self, entity_id: str, patch):
        self.calls.append(("update_one", entity_id))
        await asyncio.sleep(0)
        if entity_id not in self.entities:
            raise NotFoundError(f"Not found: {entity_id}")
        # Server-side normalization the cache must not reproduce locally
        updated = {**self.entities[entity_id], **patch, "version": self.entities[entity_id].get("version", 0) + 1}
        self.entities[entity_id] = updated
        return dict(updated)

    async def delete_one(self, entity_id: str) -> None:
        self.calls.append(("delete_one", entity_id))
        await asyncio.sleep(0)
        if entity_id not in self.entities:
            raise NotFoundError(f"Not found: {entity_id}")
        del self.entities[entity_id]

    async def search(self, filters):
        self.calls.append(("search", tuple(sorted(filters.items()))))
        await asyncio.sleep(0)
        text = str(filters.get("search", "")).lower()
        items = [dict(e) for e in self.entities.values() if text in str(e.get("title", "")).lower()]
        return SearchResult(items=items, total=len(items))


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def remote():
    return FakeRemote(
        entities=[
            {"id": "a", "title": "Jazz Night"},
            {"id": "b", "title": "Farmers Market"},
            {"id": "c", "title": "Jazz Brunch"},
            {"id": "x", "title": "Street Fair"},
        ]
    )
