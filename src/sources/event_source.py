from __future__ import annotations

from typing import Any, Dict, Mapping

from clients.api_client import ApiClient
from core.errors import ExternalServiceError, ValidationError
from core.models import Entity, Page, SearchResult


"""HTTP-backed RemoteEntitySource for directory events.

- Pages are 1-based; the API itself takes `limit` and `offset`.
- Search drops empty filter values before building the query string.
"""


EVENTS_ENDPOINT = "/events"


def _clean_id(entity_id: str) -> str:
    s = str(entity_id or "").strip()
    if not s:
        raise ValidationError("Missing event id")
    return s


def _as_entity(data: Any, *, context: str) -> Entity:
    # Every event payload must be an object carrying its id
    if not isinstance(data, dict) or "id" not in data:
        raise ExternalServiceError(f"Malformed event payload ({context})")
    return data


def _query_params(filters: Mapping[str, Any]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in filters.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = str(value)
    return out


class HttpEventSource:
    def __init__(self, *, client: ApiClient, endpoint: str = EVENTS_ENDPOINT) -> None:
        self._client = client
        self._endpoint = "/" + (endpoint or EVENTS_ENDPOINT).strip("/")

    async def get_one(self, entity_id: str) -> Entity:
        eid = _clean_id(entity_id)
        data = await self._client.get(f"{self._endpoint}/{eid}")
        return _as_entity(data, context=f"get {eid}")

    async def get_page(self, page: int, page_size: int) -> Page:
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be >= 1")

        offset = (page - 1) * page_size
        data = await self._client.get(self._endpoint, params={"limit": page_size, "offset": offset})

        data = data or {}
        items = [_as_entity(e, context="list") for e in data.get("events") or []]
        total = int(data.get("total") or 0)
        return Page(items=items, total=total, has_more=offset + page_size < total)

    async def create_one(self, payload: Mapping[str, Any]) -> Entity:
        data = await self._client.post(self._endpoint, payload)
        return _as_entity(data, context="create")

    async def update_one(self, entity_id: str, patch: Mapping[str, Any]) -> Entity:
        eid = _clean_id(entity_id)
        data = await self._client.patch(f"{self._endpoint}/{eid}", patch)
        return _as_entity(data, context=f"update {eid}")

    async def delete_one(self, entity_id: str) -> None:
        eid = _clean_id(entity_id)
        await self._client.delete(f"{self._endpoint}/{eid}")

    async def search(self, filters: Mapping[str, Any]) -> SearchResult:
        data = await self._client.get(f"{self._endpoint}/search", params=_query_params(filters))

        data = data or {}
        items = [_as_entity(e, context="search") for e in data.get("events") or []]
        return SearchResult(items=items, total=int(data.get("total") or len(items)))
