"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
EVENTS_API_BASE_URL, HTTP_VERIFY, cache sizes and lifetimes).
"""

from __future__ import annotations

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Directory API
EVENTS_API_BASE_URL = os.environ.get("EVENTS_API_BASE_URL", "http://localhost:3000/api").strip()
API_TOKEN = (os.environ.get("API_TOKEN") or "").strip()

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)
HTTP_TIMEOUT = _env_float("HTTP_TIMEOUT", 20.0)

# Entity cache (seconds)
EVENT_CACHE_TTL = _env_float("EVENT_CACHE_TTL", 600.0)
EVENT_CACHE_MAXSIZE = _env_int("EVENT_CACHE_MAXSIZE", 200)
EVENT_CACHE_AUTO_CLEANUP = _env_bool("EVENT_CACHE_AUTO_CLEANUP", True)
SEARCH_CACHE_TTL = _env_float("SEARCH_CACHE_TTL", 300.0)

# 0 disables the in-flight fetch timeout
FETCH_TIMEOUT = _env_float("FETCH_TIMEOUT", 0.0)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
