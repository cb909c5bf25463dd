"""Offline-first data access client.

Typical composition root:

    registry = TypeRegistry()
    registry.register_model(Note)

    async with OfflineFirstClient.from_settings(registry) as client:
        response = await client.get_list(Note, "/notes")
"""

from offline_first.client import OfflineFirstClient
from offline_first.core.exceptions import (
    OfflineFirstException,
    TransportError,
    UnregisteredTypeError,
)
from offline_first.platform.connectivity import (
    ConnectivityMonitor,
    HttpProbeConnectivitySource,
    ManualConnectivitySource,
)
from offline_first.platform.http_client import HttpTransport
from offline_first.platform.registry import RegistryEntry, TypeRegistry
from offline_first.platform.storage import (
    FilesystemBackend,
    MemoryBackend,
    StorageBackend,
    StorageException,
)
from offline_first.platform.sync import ReplayReport
from offline_first.schemas import OfflineResponse, OperationMethod, PendingOperation

__all__ = [
    "OfflineFirstClient",
    "OfflineFirstException",
    "TransportError",
    "UnregisteredTypeError",
    "ConnectivityMonitor",
    "HttpProbeConnectivitySource",
    "ManualConnectivitySource",
    "HttpTransport",
    "RegistryEntry",
    "TypeRegistry",
    "FilesystemBackend",
    "MemoryBackend",
    "StorageBackend",
    "StorageException",
    "ReplayReport",
    "OfflineResponse",
    "OperationMethod",
    "PendingOperation",
]
