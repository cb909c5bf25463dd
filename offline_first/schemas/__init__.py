"""Schemas for the offline-first client."""

from offline_first.schemas.operation import OperationMethod, PendingOperation
from offline_first.schemas.response import (
    DEGRADED_STATUS,
    NO_CONNECTIVITY_MESSAGE,
    NO_DATA_MESSAGE,
    OfflineResponse,
    RequestDescriptor,
)

__all__ = [
    "OperationMethod",
    "PendingOperation",
    "DEGRADED_STATUS",
    "NO_CONNECTIVITY_MESSAGE",
    "NO_DATA_MESSAGE",
    "OfflineResponse",
    "RequestDescriptor",
]
