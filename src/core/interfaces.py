"""Core protocol definitions.

Defines the RemoteEntitySource protocol: the remote collaborator the
cache wraps. The HTTP event source implements it, and tests use
in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from core.models import Entity, Page, SearchResult


class RemoteEntitySource(Protocol):
    """Contract for any remote entity store (HTTP API, fakes, etc.)."""
    async def get_one(self, entity_id: str) -> Entity:
        ...

    async def get_page(self, page: int, page_size: int) -> Page:
        ...

    async def create_one(self, payload: Mapping[str, Any]) -> Entity:
        ...

    async def update_one(self, entity_id: str, patch: Mapping[str, Any]) -> Entity:
        ...

    async def delete_one(self, entity_id: str) -> None:
        ...

    async def search(self, filters: Mapping[str, Any]) -> SearchResult:
        ...
