"""Connectivity monitor wrapping a connectivity source."""

from typing import AsyncIterator, Optional

from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger
from offline_first.platform.connectivity.sources import ConnectivitySource


class ConnectivityMonitor:
    """Exposes point-in-time connectivity and a de-duplicated transition stream.

    The transition stream can be consumed once. The first observed value is
    always emitted, even though it is not a change; after that only changes
    are. A client that starts online therefore drains the queue left by a
    previous run right away. Use ``sync_now()`` on the client to replay at
    any other moment.
    """

    def __init__(
        self,
        source: ConnectivitySource,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the monitor.

        Args:
            source: Connectivity source to wrap
            logger: Optional contextual logger
        """
        self._source = source
        self.logger = logger or default_logger.with_context(component="connectivity")
        self._last_known: Optional[bool] = None
        self._subscribed = False

    @property
    def source(self) -> ConnectivitySource:
        """The wrapped source."""
        return self._source

    @property
    def last_known(self) -> Optional[bool]:
        """Last observed value, or None before the first observation."""
        return self._last_known

    async def is_connected_now(self) -> bool:
        """Check connectivity right now."""
        connected = await self._source.check()
        self._last_known = connected
        return connected

    def transitions(self) -> AsyncIterator[bool]:
        """Return the transition stream.

        Raises:
            RuntimeError: If the stream was already requested
        """
        if self._subscribed:
            raise RuntimeError("Connectivity transitions can only be consumed once")
        self._subscribed = True
        return self._transitions()

    async def _transitions(self) -> AsyncIterator[bool]:
        previous: Optional[bool] = None
        async for connected in self._source.listen():
            self._last_known = connected
            if connected == previous:
                continue
            previous = connected
            self.logger.info(f"Connectivity changed: {'online' if connected else 'offline'}")
            yield connected
