from __future__ import annotations


class EventCacheError(Exception):
    """Base error for the event cache server."""


class ValidationError(EventCacheError):
    """Raised when user input or configuration is invalid."""


class ExternalServiceError(EventCacheError):
    """Raised when the remote directory API fails."""


class NotFoundError(ExternalServiceError):
    """Raised when a requested entity does not exist remotely."""


class AuthError(ExternalServiceError):
    """Raised when the remote API rejects our credentials."""


class NetworkError(ExternalServiceError):
    """Raised when the remote API cannot be reached."""


class FetchTimeoutError(ExternalServiceError):
    """Raised to every joined caller when a deduplicated fetch times out."""
