"""Connectivity sources.

A source answers "is the network reachable right now" and produces a feed of
observed values. Sources may repeat values; de-duplication is the monitor's job.
"""

import asyncio
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

import httpx

from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger


@runtime_checkable
class ConnectivitySource(Protocol):
    """Boolean connectivity signal."""

    async def check(self) -> bool:
        """Return the current connectivity value."""
        ...

    def listen(self) -> AsyncIterator[bool]:
        """Yield connectivity values as they are observed."""
        ...


class ManualConnectivitySource:
    """Connectivity fed by application code.

    Use this when the platform already provides a connectivity signal (or in
    tests): call ``set`` whenever the signal changes.
    """

    def __init__(self, initial: bool = True):
        """Initialize the source.

        Args:
            initial: Value reported before the first ``set`` call
        """
        self._value = initial
        self._listeners: List[asyncio.Queue] = []

    @property
    def value(self) -> bool:
        """Current value."""
        return self._value

    def set(self, connected: bool) -> None:
        """Publish a new connectivity value to every listener."""
        self._value = connected
        for queue in self._listeners:
            queue.put_nowait(connected)

    async def check(self) -> bool:
        """Return the current value."""
        return self._value

    async def listen(self) -> AsyncIterator[bool]:
        """Yield the current value, then every published value."""
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.append(queue)
        try:
            yield self._value
            while True:
                yield await queue.get()
        finally:
            self._listeners.remove(queue)


class HttpProbeConnectivitySource:
    """Connectivity decided by probing a URL with a HEAD request.

    Any transport error or 5xx answer counts as disconnected; any other answer
    (including 4xx) proves the network path works.
    """

    def __init__(
        self,
        probe_url: str,
        interval: float = 10.0,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the probe.

        Args:
            probe_url: URL to probe
            interval: Seconds between probes while listening
            timeout: Timeout in seconds for a single probe
            client: Optional client to probe with (a new one is created otherwise)
            logger: Optional contextual logger
        """
        self.probe_url = probe_url
        self.interval = interval
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self.logger = logger or default_logger.with_context(
            component="connectivity_probe", url=probe_url
        )

    async def check(self) -> bool:
        """Probe the URL once."""
        try:
            response = await self._client.head(self.probe_url)
        except httpx.HTTPError as e:
            self.logger.debug(f"Probe failed: {e!r}")
            return False
        return response.status_code < 500

    async def listen(self) -> AsyncIterator[bool]:
        """Probe forever, yielding each result."""
        while True:
            yield await self.check()
            await asyncio.sleep(self.interval)

    async def aclose(self) -> None:
        """Close the probe client if this source created it."""
        if self._owns_client:
            await self._client.aclose()
