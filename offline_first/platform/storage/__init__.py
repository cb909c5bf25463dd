"""Storage integration module for the offline-first client."""

from typing import Optional

from offline_first.core.config import Settings, settings
from offline_first.platform.storage.backend import (
    FilesystemBackend,
    MemoryBackend,
    StorageBackend,
)
from offline_first.platform.storage.exceptions import (
    StorageCorruptionError,
    StorageException,
    StorageNotFoundError,
)
from offline_first.platform.storage.local_cache import LocalCacheStore

__all__ = [
    "StorageBackend",
    "FilesystemBackend",
    "MemoryBackend",
    "LocalCacheStore",
    "get_storage_backend",
    "StorageException",
    "StorageNotFoundError",
    "StorageCorruptionError",
]


def get_storage_backend(config: Optional[Settings] = None) -> StorageBackend:
    """Factory function to get the storage backend named by the settings."""
    config = config or settings
    if config.STORAGE_BACKEND == "filesystem":
        return FilesystemBackend(base_path=config.STORAGE_PATH)
    elif config.STORAGE_BACKEND == "memory":
        return MemoryBackend()
    else:
        raise ValueError(f"Unsupported storage backend: {config.STORAGE_BACKEND}")
