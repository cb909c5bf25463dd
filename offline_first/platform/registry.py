"""Type registry mapping entity types to their payload codecs.

The client handles any entity type generically: callers register a pair of
functions per type, and every operation looks the type up before touching the
network or storage. Lookups are exact; a subclass of a registered type is not
registered by inheritance.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from offline_first.core.exceptions import UnregisteredTypeError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

Payload = Any


@dataclass(frozen=True)
class RegistryEntry(Generic[T]):
    """Codec for one entity type.

    Attributes:
        entity_type: The registered class
        key: Stable storage name for the type (cache collection and queue records)
        to_payload: Serializes an entity into a JSON-compatible payload
        from_payload: Builds an entity from a decoded payload
        id_field: Attribute holding the entity identifier
    """

    entity_type: Type[T]
    key: str
    to_payload: Callable[[T], Payload]
    from_payload: Callable[[Payload], T]
    id_field: str = "id"

    def identifier_of(self, entity: T) -> str:
        """Return the entity identifier as a storage key."""
        value = getattr(entity, self.id_field, None)
        if value is None:
            raise ValueError(
                f"{self.entity_type.__name__} instance has no '{self.id_field}' identifier"
            )
        return str(value)


class TypeRegistry:
    """Registry of entity codecs, keyed by type."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._entries: Dict[type, RegistryEntry] = {}

    def register(
        self,
        entity_type: Type[T],
        to_payload: Callable[[T], Payload],
        from_payload: Callable[[Payload], T],
        *,
        key: Optional[str] = None,
        id_field: str = "id",
    ) -> RegistryEntry[T]:
        """Register (or replace) the codec for an entity type.

        Args:
            entity_type: Class whose instances will be passed to the client
            to_payload: Entity to payload serializer
            from_payload: Payload to entity deserializer
            key: Storage name for the type, defaults to the class name
            id_field: Attribute holding the identifier

        Returns:
            The stored entry
        """
        entry = RegistryEntry(
            entity_type=entity_type,
            key=key or entity_type.__name__,
            to_payload=to_payload,
            from_payload=from_payload,
            id_field=id_field,
        )
        self._entries[entity_type] = entry
        return entry

    def register_model(
        self,
        model_cls: Type[M],
        *,
        key: Optional[str] = None,
        id_field: str = "id",
    ) -> RegistryEntry[M]:
        """Register a pydantic model using its own JSON dump and validation."""
        return self.register(
            model_cls,
            lambda entity: entity.model_dump(mode="json"),
            model_cls.model_validate,
            key=key,
            id_field=id_field,
        )

    def lookup(self, entity_type: type) -> Optional[RegistryEntry]:
        """Return the entry for a type, or None if it was never registered."""
        return self._entries.get(entity_type)

    def require(self, entity_type: type) -> RegistryEntry:
        """Return the entry for a type.

        Raises:
            UnregisteredTypeError: If the type was never registered
        """
        entry = self._entries.get(entity_type)
        if entry is None:
            raise UnregisteredTypeError(entity_type)
        return entry

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)
