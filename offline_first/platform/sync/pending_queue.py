"""Persisted FIFO log of mutations awaiting server confirmation.

Each operation is stored as its own document keyed by a zero-padded sequence
number, so listing the collection in key order yields creation order on every
backend. The queue is a log, not a set: repeated operations on the same entity
are kept and replayed in order.
"""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger
from offline_first.platform.storage.backend import StorageBackend
from offline_first.platform.storage.exceptions import (
    StorageCorruptionError,
    StorageNotFoundError,
)
from offline_first.schemas.operation import OperationMethod, PendingOperation

QUEUE_COLLECTION = "queue"
SEQUENCE_WIDTH = 12


def _sequence_key(sequence: int) -> str:
    return str(sequence).zfill(SEQUENCE_WIDTH)


class PendingOperationQueue:
    """Ordered, durable queue of pending operations.

    Sequence numbers are allocated under a lock, so an append that happens while
    a replay is draining always lands after the drain's snapshot.
    """

    def __init__(
        self,
        storage: StorageBackend,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the queue.

        Args:
            storage: Document store persisting the operations
            logger: Optional contextual logger
        """
        self._storage = storage
        self.logger = logger or default_logger.with_context(component="pending_queue")
        self._lock = asyncio.Lock()
        self._next_sequence: Optional[int] = None

    async def _allocate_sequence(self) -> int:
        """Return the next sequence number, resuming after a restart."""
        if self._next_sequence is None:
            keys = await self._storage.list_keys(QUEUE_COLLECTION)
            self._next_sequence = max((int(key) for key in keys), default=0) + 1
        sequence = self._next_sequence
        self._next_sequence += 1
        return sequence

    async def append(
        self,
        *,
        url: str,
        method: OperationMethod,
        entity_type: str,
        payload: Any,
        entity_id: Optional[str] = None,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> PendingOperation:
        """Append an operation at the tail of the queue.

        Returns:
            The persisted operation with its sequence number
        """
        async with self._lock:
            operation = PendingOperation(
                sequence=await self._allocate_sequence(),
                url=url,
                method=method,
                query_params=query_params,
                entity_type=entity_type,
                entity_id=entity_id,
                payload=payload,
            )
            await self._storage.put(
                QUEUE_COLLECTION,
                _sequence_key(operation.sequence),
                operation.model_dump(mode="json"),
            )

        self.logger.with_context(sequence=operation.sequence).debug(
            f"Queued {operation.method.name} {operation.url} for {entity_type}"
        )
        return operation

    async def list(self) -> List[PendingOperation]:
        """Return every queued operation in FIFO order."""
        operations = []
        for key, document in await self._storage.list(QUEUE_COLLECTION):
            try:
                operations.append(PendingOperation.model_validate(document))
            except ValidationError as e:
                raise StorageCorruptionError(QUEUE_COLLECTION, key, str(e)) from e
        operations.sort(key=lambda operation: operation.sequence)
        return operations

    async def peek(self) -> Optional[PendingOperation]:
        """Return the head of the queue without removing it."""
        operations = await self.list()
        return operations[0] if operations else None

    async def remove(self, sequence: int) -> bool:
        """Remove a single operation after it was confirmed.

        Returns:
            True if the operation was present
        """
        removed = await self._storage.delete(QUEUE_COLLECTION, _sequence_key(sequence))
        self.logger.with_context(sequence=sequence).debug(
            f"Removed queued operation (existed={removed})"
        )
        return removed

    async def record_failure(self, sequence: int, error: str) -> None:
        """Store the latest replay error on an operation, keeping its position."""
        key = _sequence_key(sequence)
        try:
            document = await self._storage.get(QUEUE_COLLECTION, key)
        except StorageNotFoundError:
            return
        operation = PendingOperation.model_validate(document)
        operation.last_error = error
        await self._storage.put(QUEUE_COLLECTION, key, operation.model_dump(mode="json"))

    async def count(self) -> int:
        """Return the number of queued operations."""
        return len(await self._storage.list_keys(QUEUE_COLLECTION))

    async def clear(self) -> int:
        """Drop every queued operation."""
        async with self._lock:
            return await self._storage.clear(QUEUE_COLLECTION)
