"""Local cache of entities, one collection per registered type.

Records are stored as serialized payloads keyed by entity identifier, so at
most one record exists per ``(type, identifier)``. The cache only talks to the
storage backend; it never needs the network.
"""

from typing import Any, Iterable, List, Optional

from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger
from offline_first.platform.registry import RegistryEntry, TypeRegistry
from offline_first.platform.storage.backend import StorageBackend
from offline_first.platform.storage.exceptions import StorageNotFoundError

CACHE_COLLECTION_PREFIX = "cache"


class LocalCacheStore:
    """Per-type entity cache on top of a document store.

    Storage errors propagate as ``StorageException``.
    """

    def __init__(
        self,
        storage: StorageBackend,
        registry: TypeRegistry,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the cache.

        Args:
            storage: Document store holding the records
            registry: Registry used to (de)serialize cached entities
            logger: Optional contextual logger
        """
        self._storage = storage
        self._registry = registry
        self.logger = logger or default_logger.with_context(component="local_cache")

    @staticmethod
    def collection_for(entry: RegistryEntry) -> str:
        """Return the storage collection for a registry entry."""
        return f"{CACHE_COLLECTION_PREFIX}/{entry.key}"

    async def upsert_one(self, entity_type: type, entity: Any) -> None:
        """Create or overwrite the cached record for an entity."""
        entry = self._registry.require(entity_type)
        entity_id = entry.identifier_of(entity)
        await self._storage.put(self.collection_for(entry), entity_id, entry.to_payload(entity))
        self.logger.debug(f"Cached {entry.key} {entity_id}")

    async def upsert_many(self, entity_type: type, entities: Iterable[Any]) -> None:
        """Replace every cached record of a type with the given entities."""
        entry = self._registry.require(entity_type)
        collection = self.collection_for(entry)

        # Serialize before clearing so a bad entity leaves the old set intact
        records = [(entry.identifier_of(entity), entry.to_payload(entity)) for entity in entities]

        await self._storage.clear(collection)
        for entity_id, payload in records:
            await self._storage.put(collection, entity_id, payload)
        self.logger.debug(f"Replaced cached {entry.key} set with {len(records)} records")

    async def delete(self, entity_type: type, entity_id: Any) -> bool:
        """Remove the cached record for an identifier.

        Returns:
            True if a record was removed
        """
        entry = self._registry.require(entity_type)
        removed = await self._storage.delete(self.collection_for(entry), str(entity_id))
        self.logger.debug(f"Removed cached {entry.key} {entity_id} (existed={removed})")
        return removed

    async def get(self, entity_type: type, entity_id: Any) -> Optional[Any]:
        """Return the cached entity with the given identifier, if any."""
        entry = self._registry.require(entity_type)
        try:
            payload = await self._storage.get(self.collection_for(entry), str(entity_id))
        except StorageNotFoundError:
            return None
        return entry.from_payload(payload)

    async def list_all(self, entity_type: type) -> List[Any]:
        """Return every cached entity of a type in backend order."""
        entry = self._registry.require(entity_type)
        documents = await self._storage.list(self.collection_for(entry))
        return [entry.from_payload(payload) for _, payload in documents]

    async def get_first_or_none(self, entity_type: type) -> Optional[Any]:
        """Return the first cached entity of a type, or None when empty."""
        entities = await self.list_all(entity_type)
        return entities[0] if entities else None

    async def clear(self, entity_type: type) -> int:
        """Drop every cached record of a type."""
        entry = self._registry.require(entity_type)
        return await self._storage.clear(self.collection_for(entry))
