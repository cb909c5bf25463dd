"""Document storage backends for the offline-first client.

Provides a single abstract interface with Filesystem and in-memory
implementations. Documents are JSON-compatible values addressed by a
``(collection, key)`` pair. All methods are async so callers can swap in
backends that really suspend.

Usage:
    from offline_first.platform.storage import get_storage_backend

    backend = get_storage_backend()  # Resolves from STORAGE_BACKEND
    await backend.put("cache/Note", "42", {"id": 42, "title": "hello"})
    note = await backend.get("cache/Note", "42")
"""

import json
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote, unquote

from offline_first.core.logging import logger
from offline_first.platform.storage.exceptions import (
    StorageCorruptionError,
    StorageException,
    StorageNotFoundError,
)

DOCUMENT_SUFFIX = ".json"


class StorageBackend(ABC):
    """Abstract document store interface.

    Collections are slash-separated names (e.g. ``"cache/Note"``, ``"queue"``).
    Keys are arbitrary strings; implementations handle escaping.
    """

    @abstractmethod
    async def put(self, collection: str, key: str, document: Any) -> None:
        """Create or overwrite a document.

        Args:
            collection: Collection name
            key: Document key
            document: JSON-compatible value
        """
        pass

    @abstractmethod
    async def get(self, collection: str, key: str) -> Any:
        """Read a document.

        Raises:
            StorageNotFoundError: If the document doesn't exist
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, key: str) -> bool:
        """Delete a document.

        Returns:
            True if deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def list_keys(self, collection: str) -> List[str]:
        """List document keys in a collection."""
        pass

    @abstractmethod
    async def clear(self, collection: str) -> int:
        """Delete every document in a collection.

        Returns:
            Number of documents removed
        """
        pass

    async def list(self, collection: str) -> List[Tuple[str, Any]]:
        """List ``(key, document)`` pairs in ``list_keys`` order."""
        items = []
        for key in await self.list_keys(collection):
            try:
                items.append((key, await self.get(collection, key)))
            except StorageNotFoundError:
                # Removed between listing and reading
                continue
        return items

    async def exists(self, collection: str, key: str) -> bool:
        """Check if a document exists."""
        try:
            await self.get(collection, key)
        except StorageNotFoundError:
            return False
        return True


class FilesystemBackend(StorageBackend):
    """Filesystem-based document store.

    One JSON file per document under ``<base_path>/<collection>/<key>.json``.
    Writes go through a temporary file and an atomic rename, so a crash never
    leaves a half-written document behind. Keys are listed in sorted order.
    """

    def __init__(self, base_path: Union[str, Path]):
        """Initialize filesystem backend.

        Args:
            base_path: Root directory for all storage operations
        """
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageException(f"Cannot create storage root {self.base_path}: {e}") from e
        logger.debug(f"FilesystemBackend initialized at {self.base_path}")

    def _collection_dir(self, collection: str) -> Path:
        """Resolve a collection name to its directory."""
        parts = [quote(part, safe="") for part in collection.strip("/").split("/") if part]
        if not parts:
            raise StorageException("Collection name must not be empty")
        return self.base_path.joinpath(*parts)

    def _resolve(self, collection: str, key: str) -> Path:
        """Resolve a document address to its file path."""
        return self._collection_dir(collection) / f"{quote(key, safe='')}{DOCUMENT_SUFFIX}"

    async def put(self, collection: str, key: str, document: Any) -> None:
        """Write a document atomically."""
        full_path = self._resolve(collection, key)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, default=str)
                os.replace(tmp_name, full_path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageException(f"Failed to write {collection}/{key}: {e}") from e

    async def get(self, collection: str, key: str) -> Any:
        """Read a document from the filesystem."""
        full_path = self._resolve(collection, key)

        if not full_path.exists():
            raise StorageNotFoundError(f"Document not found: {collection}/{key}")

        try:
            with open(full_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageCorruptionError(collection, key, str(e)) from e
        except OSError as e:
            raise StorageException(f"Failed to read {collection}/{key}: {e}") from e

    async def delete(self, collection: str, key: str) -> bool:
        """Delete a document file."""
        full_path = self._resolve(collection, key)

        if not full_path.exists():
            return False

        try:
            full_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageException(f"Failed to delete {collection}/{key}: {e}") from e

    async def list_keys(self, collection: str) -> List[str]:
        """List document keys in sorted order."""
        base = self._collection_dir(collection)
        if not base.exists():
            return []

        try:
            names = [
                item.name
                for item in base.iterdir()
                if item.is_file() and item.name.endswith(DOCUMENT_SUFFIX)
            ]
        except OSError as e:
            raise StorageException(f"Failed to list {collection}: {e}") from e

        return sorted(unquote(name[: -len(DOCUMENT_SUFFIX)]) for name in names)

    async def clear(self, collection: str) -> int:
        """Remove the collection directory."""
        base = self._collection_dir(collection)
        if not base.exists():
            return 0

        count = len(await self.list_keys(collection))
        try:
            shutil.rmtree(base)
        except OSError as e:
            raise StorageException(f"Failed to clear {collection}: {e}") from e
        return count


class MemoryBackend(StorageBackend):
    """Process-local document store.

    Not durable across restarts. Keys are listed in insertion order; overwriting
    a document keeps its position. Documents are round-tripped through JSON so
    callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._collections: Dict[str, Dict[str, str]] = {}

    async def put(self, collection: str, key: str, document: Any) -> None:
        """Store a serialized copy of the document."""
        try:
            encoded = json.dumps(document, default=str)
        except (TypeError, ValueError) as e:
            raise StorageException(f"Failed to write {collection}/{key}: {e}") from e
        self._collections.setdefault(collection, {})[key] = encoded

    async def get(self, collection: str, key: str) -> Any:
        """Return a fresh copy of the document."""
        encoded: Optional[str] = self._collections.get(collection, {}).get(key)
        if encoded is None:
            raise StorageNotFoundError(f"Document not found: {collection}/{key}")
        return json.loads(encoded)

    async def delete(self, collection: str, key: str) -> bool:
        """Remove the document if present."""
        return self._collections.get(collection, {}).pop(key, None) is not None

    async def list_keys(self, collection: str) -> List[str]:
        """List keys in insertion order."""
        return list(self._collections.get(collection, {}))

    async def clear(self, collection: str) -> int:
        """Drop the collection."""
        return len(self._collections.pop(collection, {}))
