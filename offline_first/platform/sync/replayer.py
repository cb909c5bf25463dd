"""Queue replayer - drains pending operations when connectivity returns.

State machine:

    IDLE --(connected edge)--> DRAINING --(queue empty | first failure)--> IDLE

A drain works on a snapshot of the queue taken when it starts, in sequence
order. The first failed operation stops the run and stays at the head of the
queue together with everything after it. Draining never touches the local
cache; the cache already reflects each operation from the moment it was queued.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional

from offline_first.core.exceptions import TransportError
from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger
from offline_first.platform.http_client.transport import HttpTransport
from offline_first.platform.sync.pending_queue import PendingOperationQueue


class ReplayerState(str, Enum):
    """Replayer states."""

    IDLE = "idle"
    DRAINING = "draining"


@dataclass
class ReplayReport:
    """Outcome of one drain run."""

    replayed: int = 0
    remaining: int = 0
    failed_sequence: Optional[int] = None
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        """True when the run emptied its snapshot without failures."""
        return self.failed_sequence is None


class QueueReplayer:
    """Replays queued mutations against the network."""

    def __init__(
        self,
        queue: PendingOperationQueue,
        transport: HttpTransport,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the replayer.

        Args:
            queue: Queue to drain
            transport: Transport used to resend operations
            logger: Optional contextual logger
        """
        self._queue = queue
        self._transport = transport
        self.logger = logger or default_logger.with_context(component="replayer")
        self._state = ReplayerState.IDLE
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ReplayerState:
        """Current state."""
        return self._state

    @property
    def drain_task(self) -> Optional[asyncio.Task]:
        """The in-flight drain task, if any."""
        if self._drain_task is not None and self._drain_task.done():
            return None
        return self._drain_task

    def on_connectivity_change(self, connected: bool) -> Optional[asyncio.Task]:
        """Handle a connectivity transition.

        Returns:
            The drain task started by this call, or None when nothing started
        """
        if not connected:
            return None

        if self._state is ReplayerState.DRAINING:
            self.logger.debug("Drain already in progress, ignoring connectivity edge")
            return None

        return self._start_drain()

    async def drain(self) -> ReplayReport:
        """Drain the queue now, or wait for the drain already in progress."""
        in_flight = self.drain_task
        if in_flight is None:
            in_flight = self._start_drain()
        # A cancelled caller must not abort the replay halfway
        return await asyncio.shield(in_flight)

    def _start_drain(self) -> asyncio.Task:
        # Claim the state before the task runs so a second edge is coalesced
        self._state = ReplayerState.DRAINING
        self._drain_task = asyncio.create_task(self._drain_claimed())
        self._drain_task.add_done_callback(self._log_task_failure)
        return self._drain_task

    def _log_task_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Replay aborted by {type(error).__name__}: {error}")

    async def wait_idle(self) -> Optional[ReplayReport]:
        """Wait for the in-flight drain, if any, and return its report."""
        in_flight = self.drain_task
        if in_flight is None:
            return None
        return await in_flight

    async def run(self, transitions: AsyncIterator[bool]) -> None:
        """Consume a transition stream until it ends or the task is cancelled."""
        async for connected in transitions:
            self.on_connectivity_change(connected)

    async def _drain_claimed(self) -> ReplayReport:
        """Drain a snapshot of the queue. The caller has set DRAINING."""
        report = ReplayReport()
        try:
            snapshot = await self._queue.list()
            self.logger.info(f"Replaying {len(snapshot)} pending operations")

            for index, operation in enumerate(snapshot):
                log = self.logger.with_context(sequence=operation.sequence)
                try:
                    await self._transport.request(
                        operation.method.http_method,
                        operation.url,
                        payload=operation.payload,
                        query_params=operation.query_params,
                    )
                except TransportError as e:
                    log.error(f"Replay of {operation.method.name} {operation.url} failed: {e}")
                    await self._queue.record_failure(operation.sequence, str(e))
                    report.failed_sequence = operation.sequence
                    report.error = str(e)
                    report.remaining = len(snapshot) - index
                    break

                await self._queue.remove(operation.sequence)
                report.replayed += 1
                log.debug(f"Replayed {operation.method.name} {operation.url}")

            if report.completed:
                self.logger.info(f"Replay finished: {report.replayed} operations confirmed")
            else:
                self.logger.info(
                    f"Replay halted after {report.replayed} operations, "
                    f"{report.remaining} left in snapshot"
                )
            return report
        finally:
            self._state = ReplayerState.IDLE
