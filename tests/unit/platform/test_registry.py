"""Tests for the entity type registry."""

from dataclasses import dataclass

import pytest
from pydantic import BaseModel

from offline_first.core.exceptions import UnregisteredTypeError
from offline_first.platform.registry import TypeRegistry


class Note(BaseModel):
    id: str
    title: str


class PinnedNote(Note):
    pinned: bool = True


@dataclass
class Tag:
    slug: str
    label: str


def test_register_model_round_trips_payloads():
    """Test that pydantic models are registered with their own codecs."""
    registry = TypeRegistry()
    entry = registry.register_model(Note)

    note = Note(id="n1", title="Groceries")
    payload = entry.to_payload(note)

    assert payload == {"id": "n1", "title": "Groceries"}
    assert entry.from_payload(payload) == note
    assert entry.key == "Note"
    assert entry.identifier_of(note) == "n1"


def test_register_custom_codec_with_id_field_and_key():
    """Test registration of a plain class with a custom identifier attribute."""
    registry = TypeRegistry()
    entry = registry.register(
        Tag,
        lambda tag: {"slug": tag.slug, "label": tag.label},
        lambda payload: Tag(**payload),
        key="tags",
        id_field="slug",
    )

    assert registry.lookup(Tag) is entry
    assert entry.key == "tags"
    assert entry.identifier_of(Tag(slug="home", label="Home")) == "home"


def test_re_registering_overwrites_previous_entry():
    """Test that the last registration for a type wins."""
    registry = TypeRegistry()
    registry.register(Tag, lambda tag: {"v": 1}, lambda payload: None)
    second = registry.register(Tag, lambda tag: {"v": 2}, lambda payload: None)

    assert registry.lookup(Tag) is second
    assert registry.lookup(Tag).to_payload(Tag("a", "A")) == {"v": 2}
    assert len(registry) == 1


def test_lookup_does_not_fall_back_to_base_class():
    """Test that a subclass of a registered type is not registered."""
    registry = TypeRegistry()
    registry.register_model(Note)

    assert registry.lookup(PinnedNote) is None
    assert PinnedNote not in registry
    with pytest.raises(UnregisteredTypeError) as exc_info:
        registry.require(PinnedNote)

    assert exc_info.value.entity_type is PinnedNote
    assert "PinnedNote" in str(exc_info.value)


def test_identifier_of_rejects_missing_identifier():
    """Test that entities without an identifier are refused."""
    registry = TypeRegistry()
    entry = registry.register(Tag, lambda tag: {}, lambda payload: None, id_field="missing")

    with pytest.raises(ValueError):
        entry.identifier_of(Tag(slug="a", label="A"))
