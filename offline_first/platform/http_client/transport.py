"""HttpTransport - JSON request primitive over httpx.

Wraps an ``httpx.AsyncClient`` and folds every non-success outcome (network
error, non-2xx status, malformed JSON body) into a single ``TransportError``.
The raw status and reason are preserved on both the success response and the
error so callers can inspect them.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from offline_first.core.exceptions import TransportError
from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger


@dataclass
class TransportResponse:
    """Decoded outcome of a successful request."""

    status_code: int
    reason_phrase: Optional[str] = None
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


class HttpTransport:
    """JSON over HTTP transport.

    The transport owns the wrapped client only when it created it; a client
    passed in by the caller is left open by ``aclose``.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the transport.

        Args:
            client: Existing client to send requests through
            base_url: Base URL for a client created by the transport
            timeout: Timeout in seconds for a client created by the transport
            logger: Optional contextual logger
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url or "", timeout=timeout)
        self.logger = logger or default_logger.with_context(component="transport")

    async def request(
        self,
        method: str,
        url: str,
        payload: Any = None,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse:
        """Send a request and decode its JSON body.

        Args:
            method: HTTP method
            url: Request URL (absolute, or relative to the base URL)
            payload: JSON-compatible request body
            query_params: Query string parameters

        Returns:
            TransportResponse with the decoded body (None when the body is empty)

        Raises:
            TransportError: On any network, status or decoding failure
        """
        kwargs: Dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload
        if query_params:
            kwargs["params"] = query_params

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            self.logger.debug(f"{method} {url} failed: {e!r}")
            raise TransportError(
                f"{type(e).__name__}: {e}", method=method, url=url
            ) from e

        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                method=method,
                url=url,
            )

        return TransportResponse(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            data=self._decode(response, method, url),
            headers=dict(response.headers),
        )

    @staticmethod
    def _decode(response: httpx.Response, method: str, url: str) -> Any:
        """Decode a JSON body, treating an empty body as no payload."""
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransportError(
                f"Malformed JSON payload: {e}",
                status_code=response.status_code,
                method=method,
                url=url,
            ) from e

    # Context manager support
    async def __aenter__(self) -> "HttpTransport":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context manager."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if the transport created it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def is_closed(self) -> bool:
        """Check if the underlying client is closed."""
        return self._client.is_closed
