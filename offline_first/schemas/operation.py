"""Schemas for queued mutating operations."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class OperationMethod(str, Enum):
    """Mutating operation kinds, valued by the HTTP verb used to replay them."""

    CREATE = "POST"
    UPDATE = "PUT"
    DELETE = "DELETE"

    @property
    def http_method(self) -> str:
        """HTTP verb issued for this operation."""
        return self.value


class PendingOperation(BaseModel):
    """A mutation that has not been confirmed by the server yet.

    Entries are persisted in the pending operation queue and replayed in
    ``sequence`` order once connectivity returns.
    """

    sequence: int = Field(..., ge=1, description="Position in the queue (FIFO order)")
    url: str
    method: OperationMethod
    query_params: Optional[Dict[str, Any]] = None
    entity_type: str = Field(..., description="Registry key of the entity type")
    entity_id: Optional[str] = None
    payload: Any = Field(None, description="Serialized entity sent as the request body")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_error: Optional[str] = Field(None, description="Most recent replay failure, if any")
