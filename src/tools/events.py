"""MCP tools exposing the cached event directory.

Registers read tools (get_event, get_events_batch, list_events,
search_events), write tools (create_event, update_event, delete_event)
and cache management tools (cache_stats, clear_cache) on top of one shared
CachedEntitySource.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from sources.cached_source import CachedEntitySource


def _require_id(event_id: str) -> str:
    eid = (event_id or "").strip()
    if not eid:
        raise ValidationError("Missing event_id")
    return eid


def register(mcp: FastMCP, *, events: CachedEntitySource) -> None:
    @mcp.tool(name="get_event")
    async def get_event(event_id: str) -> Dict[str, Any]:
        """Return one event by id, served from cache when fresh.

        Raises:
          ValidationError for an empty id; NotFoundError or other remote
          errors when the event cannot be fetched.
        """
        return dict(await events.get(_require_id(event_id)))

    @mcp.tool(name="get_events_batch")
    async def get_events_batch(event_ids: List[str]) -> List[Dict[str, Any]]:
        """Return several events in the requested order.

        Ids that fail to load are omitted rather than failing the call.
        """
        ids = [i.strip() for i in event_ids or [] if i and i.strip()]
        return [dict(e) for e in await events.get_batch(ids)]

    @mcp.tool(name="list_events")
    async def list_events(page: int = 1, page_size: int = 20, prefetch_next: bool = True) -> Dict[str, Any]:
        """List one page of events (1-based) and warm the cache for the next page.

        Returns:
          {"items": [...], "total": int, "has_more": bool}
        """
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be >= 1")
        result = await events.get_page_with_prefetch(page, page_size, prefetch_next)
        return result.to_dict()

    @mcp.tool(name="search_events")
    async def search_events(
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Search events by text, category and date range (results are cached)."""
        filters = {
            "search": search,
            "categoryId": category_id,
            "startDate": start_date,
            "endDate": end_date,
            "limit": limit,
            "offset": offset,
        }
        clean = {k: v for k, v in filters.items() if v is not None and v != ""}
        result = await events.search(clean)
        return result.to_dict()

    @mcp.tool(name="create_event")
    async def create_event(event: Dict[str, Any]) -> Dict[str, Any]:
        """Create an event and return the server's version, including its new id."""
        if not event:
            raise ValidationError("event must not be empty")
        payload = {k: v for k, v in event.items() if k not in ("id", "createdAt", "updatedAt")}
        return dict(await events.create(payload))

    @mcp.tool(name="update_event")
    async def update_event(event_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update and return the server's version of the event."""
        if not patch:
            raise ValidationError("patch must not be empty")
        return dict(await events.update(_require_id(event_id), patch))

    @mcp.tool(name="delete_event")
    async def delete_event(event_id: str) -> str:
        """Delete an event remotely and drop it from the cache."""
        eid = _require_id(event_id)
        await events.remove(eid)
        return f"Deleted event {eid}"

    @mcp.tool(name="cache_stats")
    async def cache_stats() -> Dict[str, Any]:
        """Return a snapshot of the event cache (size, valid entries, ages, accesses)."""
        return events.cache_stats().to_dict()

    @mcp.tool(name="clear_cache")
    async def clear_cache() -> str:
        """Drop every cached event, cached search and pending fetch."""
        events.invalidate_all()
        return "Cache cleared"
