"""Exceptions raised by the offline-first client.

Storage exceptions live in ``offline_first.platform.storage.exceptions``.
"""

from typing import Any, Optional


class OfflineFirstException(Exception):
    """Base exception for the client."""

    pass


class UnregisteredTypeError(OfflineFirstException):
    """Raised when an operation names an entity type that was never registered.

    This is a programming error: it is raised before any network, storage or
    queue access and is never retried or queued.
    """

    def __init__(self, entity_type: Any):
        """Initialize the error.

        Args:
            entity_type: The type token that had no registry entry
        """
        self.entity_type = entity_type
        name = getattr(entity_type, "__name__", repr(entity_type))
        super().__init__(f"Type {name} is not registered.")


class TransportError(OfflineFirstException):
    """Raised when a network call does not produce a usable result.

    Covers connection errors, non-2xx responses and undecodable payloads.
    The dispatcher absorbs it: reads fall back to the cache and writes are queued.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        """Initialize the error.

        Args:
            message: Human-readable description
            status_code: HTTP status when a response was received
            method: HTTP method of the failed request
            url: URL of the failed request
        """
        self.status_code = status_code
        self.method = method
        self.url = url
        super().__init__(message)
