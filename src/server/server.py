"""Server bootstrap for the event cache MCP service.

Creates the FastMCP instance, wires one shared cached event source into
the tools, and starts the MCP server (stdio transport). The source is
closed from the server lifespan when the transport shuts down.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from mcp.server.fastmcp import FastMCP

from config import (
    API_TOKEN,
    EVENT_CACHE_AUTO_CLEANUP,
    EVENT_CACHE_MAXSIZE,
    EVENT_CACHE_TTL,
    EVENTS_API_BASE_URL,
    FETCH_TIMEOUT,
    HTTP_TIMEOUT,
    HTTP_VERIFY,
    LOG_LEVEL,
    SEARCH_CACHE_TTL,
)
from sources.source_factory import build_event_source
from tools.events import register as register_events

if TYPE_CHECKING:
    from sources.cached_source import CachedEntitySource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        logger.info("Shutting down; closing event cache")
        await events.aclose()


mcp = FastMCP("event-cache-mcp", lifespan=lifespan)


def register_tools() -> "CachedEntitySource":
    events = build_event_source(
        base_url=EVENTS_API_BASE_URL,
        token=API_TOKEN,
        http_timeout=HTTP_TIMEOUT,
        http_verify=HTTP_VERIFY,
        ttl_seconds=EVENT_CACHE_TTL,
        maxsize=EVENT_CACHE_MAXSIZE,
        auto_cleanup=EVENT_CACHE_AUTO_CLEANUP,
        search_ttl_seconds=SEARCH_CACHE_TTL,
        fetch_timeout=FETCH_TIMEOUT,
    )

    register_events(mcp, events=events)
    return events


events = register_tools()


def configure_logging() -> None:
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    configure_logging()
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
