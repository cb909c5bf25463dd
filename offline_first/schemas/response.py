"""Result objects returned by every client operation."""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

# Served from cache, or accepted locally and queued for replay
DEGRADED_STATUS = HTTPStatus.PARTIAL_CONTENT.value

NO_CONNECTIVITY_MESSAGE = "No connectivity"
NO_DATA_MESSAGE = "No data available"


@dataclass(frozen=True)
class RequestDescriptor:
    """The request an ``OfflineResponse`` answers."""

    method: str
    url: str
    query_params: Optional[Dict[str, Any]] = None


@dataclass
class OfflineResponse(Generic[T]):
    """Outcome of a client operation.

    ``status_code`` mirrors the server status when the network call succeeded.
    It is ``206`` when the answer came from the local cache or when a mutation
    was queued for replay.
    """

    request: RequestDescriptor
    status_code: int
    data: Optional[T] = None
    status_message: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_degraded(self) -> bool:
        """True when the network did not confirm this result."""
        return self.status_code == DEGRADED_STATUS

    @property
    def is_success(self) -> bool:
        """True when the network confirmed this result."""
        return 200 <= self.status_code < 300 and not self.is_degraded

    @classmethod
    def degraded(
        cls,
        request: RequestDescriptor,
        data: Optional[T] = None,
        message: Optional[str] = None,
    ) -> "OfflineResponse[T]":
        """Build a degraded (206) result."""
        return cls(request=request, status_code=DEGRADED_STATUS, data=data, status_message=message)
