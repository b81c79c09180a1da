"""Directory API client utilities.

This module provides a lightweight async JSON client around the
directory REST API. Every response is wrapped in a ``{"data": ...}``
envelope which the client unwraps; HTTP failures are mapped onto the
project's error hierarchy.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from core.errors import AuthError, ExternalServiceError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)


class ApiClient:
    JSON_CONTENT_TYPE = "application/json"

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 20.0,
        verify: bool = True,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._headers = self._build_headers(token)

    async def get(self, path: str, *, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._send("GET", path, params=params)

    async def post(self, path: str, payload: Mapping[str, Any]) -> Any:
        return await self._send("POST", path, json=dict(payload))

    async def patch(self, path: str, payload: Mapping[str, Any]) -> Any:
        return await self._send("PATCH", path, json=dict(payload))

    async def delete(self, path: str) -> None:
        await self._send("DELETE", path)

    # --- HTTP helpers ---

    def _build_headers(self, token: Optional[str]) -> dict[str, str]:
        headers = {
            "Accept": self.JSON_CONTENT_TYPE,
            "Content-Type": self.JSON_CONTENT_TYPE,
            "User-Agent": "event-cache-mcp",
        }
        token = (token or "").strip()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            verify=self._verify,
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        context = f"{method} {path}"
        try:
            async with self._create_client() as client:
                resp = await client.request(method, path, params=dict(params or {}), json=json)
        except httpx.HTTPError as e:
            raise NetworkError(f"Directory API request failed ({context}): {e}") from e

        logger.debug("%s -> %d", context, resp.status_code)
        self._raise_for_status(resp, context=context)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"Invalid JSON from directory API ({context})") from e
        return self._unwrap(body)

    def _raise_for_status(self, resp: httpx.Response, *, context: str) -> None:
        if resp.status_code == 404:
            raise NotFoundError(f"Not found ({context})")
        if resp.status_code in (401, 403):
            raise AuthError(f"Not authorized ({context}): HTTP {resp.status_code}")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(f"Directory API returned an error ({context}): {e}") from e

    @staticmethod
    def _unwrap(body: Any) -> Any:
        # Envelope is {"data": ...}; tolerate bare payloads from older endpoints
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body
