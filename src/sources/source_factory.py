"""Factory for wiring the cached event source.

Exposes build_event_source which composes ApiClient -> HttpEventSource ->
CachedEntitySource from configuration values.
"""

from __future__ import annotations

from typing import Optional

from clients.api_client import ApiClient
from core.errors import ValidationError
from core.interfaces import RemoteEntitySource
from sources.cached_source import CachedEntitySource
from sources.event_source import HttpEventSource


def build_event_source(
    *,
    base_url: str,
    token: Optional[str] = None,
    http_timeout: float = 20.0,
    http_verify: bool = True,
    ttl_seconds: float = 600.0,
    maxsize: int = 200,
    auto_cleanup: bool = True,
    search_ttl_seconds: float = 300.0,
    fetch_timeout: float = 0.0,
    remote: Optional[RemoteEntitySource] = None,
) -> CachedEntitySource:
    """
    Build the cache-aware event source used by the tools.

    Priority Logic:
    1. If a remote source is injected -> wrap it directly.
    2. Otherwise -> talk HTTP to `base_url` (required).
    """

    if remote is None:
        if not base_url or not base_url.strip():
            raise ValidationError("Missing base_url for the events API")

        client = ApiClient(base_url=base_url, token=token, timeout=http_timeout, verify=http_verify)
        remote = HttpEventSource(client=client)

    return CachedEntitySource(
        remote,
        ttl_seconds=ttl_seconds,
        maxsize=maxsize,
        auto_cleanup=auto_cleanup,
        search_ttl_seconds=search_ttl_seconds,
        fetch_timeout=fetch_timeout if fetch_timeout > 0 else None,
    )
