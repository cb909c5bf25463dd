"""Tests for OfflineFirstClient mutating operations."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from offline_first.client import OfflineFirstClient
from offline_first.core.exceptions import TransportError, UnregisteredTypeError
from offline_first.platform.http_client.transport import TransportResponse
from offline_first.platform.registry import TypeRegistry
from offline_first.platform.storage.backend import StorageBackend
from offline_first.platform.storage.exceptions import StorageException
from offline_first.schemas.operation import OperationMethod
from offline_first.schemas.response import DEGRADED_STATUS, NO_CONNECTIVITY_MESSAGE


class Note(BaseModel):
    id: str
    title: str


class Draft(BaseModel):
    id: str


@pytest.fixture
def registry():
    """Create a registry with Note registered."""
    registry = TypeRegistry()
    registry.register_model(Note)
    return registry


@pytest.fixture
def client(registry, mock_transport, storage, connectivity):
    """Create a client over mocks and in-memory storage."""
    return OfflineFirstClient(registry, mock_transport, storage, connectivity)


def _created(note_id, title):
    return TransportResponse(
        status_code=201, reason_phrase="Created", data={"id": note_id, "title": title}
    )


@pytest.mark.asyncio
async def test_post_online_caches_submitted_entity(client, mock_transport):
    """Test that the submitted entity, not the server echo, is cached."""
    mock_transport.request.return_value = _created("n1", "server title")
    note = Note(id="n1", title="client title")

    response = await client.post(Note, "/notes", note, query_params={"notify": "1"})

    assert response.status_code == 201
    assert response.data == Note(id="n1", title="server title")
    mock_transport.request.assert_awaited_once_with(
        "POST",
        "/notes",
        payload={"id": "n1", "title": "client title"},
        query_params={"notify": "1"},
    )
    assert await client.cache.get(Note, "n1") == note
    assert await client.pending_count() == 0


@pytest.mark.asyncio
async def test_put_online_updates_cache(client, mock_transport):
    """Test that a confirmed update replaces the cached record."""
    await client.cache.upsert_one(Note, Note(id="n1", title="old"))
    mock_transport.request.return_value = TransportResponse(
        status_code=200, data={"id": "n1", "title": "new"}
    )

    response = await client.put(Note, "/notes/n1", Note(id="n1", title="new"))

    assert response.status_code == 200
    assert await client.cache.get(Note, "n1") == Note(id="n1", title="new")


@pytest.mark.asyncio
async def test_delete_online_removes_cached_record(client, mock_transport):
    """Test that a confirmed delete removes the record, even with an empty body."""
    await client.cache.upsert_one(Note, Note(id="n1", title="doomed"))
    mock_transport.request.return_value = TransportResponse(status_code=204, data=None)

    response = await client.delete(Note, "/notes/n1", Note(id="n1", title="doomed"))

    assert response.status_code == 204
    assert response.data is None
    assert await client.cache.get(Note, "n1") is None
    assert await client.pending_count() == 0


@pytest.mark.parametrize(
    "operation, method",
    [
        ("post", OperationMethod.CREATE),
        ("put", OperationMethod.UPDATE),
        ("delete", OperationMethod.DELETE),
    ],
)
@pytest.mark.asyncio
async def test_offline_mutation_is_queued_once(
    client, mock_transport, connectivity, operation, method
):
    """Test that each offline mutation appends exactly one matching operation."""
    connectivity.set(False)
    note = Note(id="n1", title="offline")

    response = await getattr(client, operation)(Note, "/notes/n1", note, query_params={"a": "b"})

    assert response.status_code == DEGRADED_STATUS
    assert response.status_message == NO_CONNECTIVITY_MESSAGE
    assert response.data is None
    mock_transport.request.assert_not_called()

    pending = await client.pending_operations()
    assert len(pending) == 1
    assert pending[0].method is method
    assert pending[0].url == "/notes/n1"
    assert pending[0].payload == {"id": "n1", "title": "offline"}
    assert pending[0].query_params == {"a": "b"}
    assert pending[0].entity_type == "Note"
    assert pending[0].entity_id == "n1"


@pytest.mark.asyncio
async def test_offline_mutations_update_cache_immediately(client, connectivity):
    """Test that the cache reflects the intended state while offline."""
    connectivity.set(False)
    await client.cache.upsert_one(Note, Note(id="gone", title="remove me"))

    await client.post(Note, "/notes", Note(id="n1", title="created"))
    await client.put(Note, "/notes/n1", Note(id="n1", title="edited"))
    await client.delete(Note, "/notes/gone", Note(id="gone", title="remove me"))

    assert await client.cache.list_all(Note) == [Note(id="n1", title="edited")]
    assert [op.method for op in await client.pending_operations()] == [
        OperationMethod.CREATE,
        OperationMethod.UPDATE,
        OperationMethod.DELETE,
    ]


@pytest.mark.asyncio
async def test_failed_mutation_is_queued_with_error_text(client, mock_transport):
    """Test that a network failure queues the operation and applies the cache effect."""
    mock_transport.request.side_effect = TransportError("HTTP 503 Service Unavailable")

    response = await client.put(Note, "/notes/n1", Note(id="n1", title="pending"))

    assert response.status_code == DEGRADED_STATUS
    assert response.status_message == "HTTP 503 Service Unavailable"
    assert await client.cache.get(Note, "n1") == Note(id="n1", title="pending")
    assert await client.pending_count() == 1


@pytest.mark.asyncio
async def test_undecodable_mutation_response_is_queued(client, mock_transport):
    """Test that a response the codec rejects counts as a failure."""
    mock_transport.request.return_value = TransportResponse(status_code=200, data={"nope": True})

    response = await client.post(Note, "/notes", Note(id="n1", title="x"))

    assert response.status_code == DEGRADED_STATUS
    assert await client.pending_count() == 1


@pytest.mark.asyncio
async def test_failed_delete_removes_cached_record(client, mock_transport):
    """Test that a queued delete still removes the cached record."""
    await client.cache.upsert_one(Note, Note(id="n1", title="doomed"))
    mock_transport.request.side_effect = TransportError("connection reset")

    await client.delete(Note, "/notes/n1", Note(id="n1", title="doomed"))

    assert await client.cache.get(Note, "n1") is None
    assert (await client.pending_operations())[0].method is OperationMethod.DELETE


@pytest.mark.asyncio
async def test_post_list_partial_aggregation(client, mock_transport):
    """Test that one failing element yields 206 with the other payloads."""
    mock_transport.request.side_effect = [
        _created("1", "one"),
        TransportError("HTTP 500 Internal Server Error"),
        _created("3", "three"),
    ]
    notes = [Note(id="1", title="one"), Note(id="2", title="two"), Note(id="3", title="three")]

    response = await client.post_list(Note, "/notes", notes)

    assert response.status_code == DEGRADED_STATUS
    assert response.data == [Note(id="1", title="one"), Note(id="3", title="three")]
    assert mock_transport.request.await_count == 3

    pending = await client.pending_operations()
    assert len(pending) == 1
    assert pending[0].entity_id == "2"
    assert await client.cache.list_all(Note) == notes


@pytest.mark.asyncio
async def test_put_list_all_successful(client, mock_transport):
    """Test that an all-successful list mutation reports 200."""
    mock_transport.request.side_effect = [
        TransportResponse(status_code=200, data={"id": "1", "title": "a"}),
        TransportResponse(status_code=200, data={"id": "2", "title": "b"}),
    ]

    response = await client.put_list(
        Note, "/notes", [Note(id="1", title="a"), Note(id="2", title="b")]
    )

    assert response.status_code == 200
    assert response.data == [Note(id="1", title="a"), Note(id="2", title="b")]
    assert response.request.method == "PUT"


@pytest.mark.asyncio
async def test_list_mutation_flattens_list_payloads(client, mock_transport):
    """Test that a per-element response carrying a list contributes every item."""
    mock_transport.request.return_value = TransportResponse(
        status_code=200, data=[{"id": "1", "title": "a"}, {"id": "1b", "title": "a2"}]
    )

    response = await client.post_list(Note, "/notes", [Note(id="1", title="a")])

    assert response.status_code == 200
    assert response.data == [Note(id="1", title="a"), Note(id="1b", title="a2")]


@pytest.mark.asyncio
async def test_delete_list_offline(client, mock_transport, connectivity):
    """Test that every element is queued and removed from the cache offline."""
    notes = [Note(id="1", title="a"), Note(id="2", title="b")]
    await client.cache.upsert_many(Note, notes)
    connectivity.set(False)

    response = await client.delete_list(Note, "/notes", notes)

    assert response.status_code == DEGRADED_STATUS
    assert response.data == []
    assert await client.cache.list_all(Note) == []
    assert await client.pending_count() == 2


@pytest.mark.asyncio
async def test_empty_list_mutation_is_a_success(client, mock_transport):
    """Test that an empty input list touches nothing."""
    response = await client.post_list(Note, "/notes", [])

    assert response.status_code == 200
    assert response.data == []
    mock_transport.request.assert_not_called()


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.get(Draft, "/drafts/1"),
        lambda c: c.get_list(Draft, "/drafts"),
        lambda c: c.post(Draft, "/drafts", Draft(id="1")),
        lambda c: c.put(Draft, "/drafts/1", Draft(id="1")),
        lambda c: c.delete(Draft, "/drafts/1", Draft(id="1")),
        lambda c: c.post_list(Draft, "/drafts", [Draft(id="1")]),
        lambda c: c.put_list(Draft, "/drafts", [Draft(id="1")]),
        lambda c: c.delete_list(Draft, "/drafts", []),
    ],
)
@pytest.mark.asyncio
async def test_unregistered_type_fails_fast(registry, mock_transport, call):
    """Test that unknown types raise without network, storage or queue activity."""
    storage = AsyncMock(spec=StorageBackend)
    source = MagicMock()
    source.check = AsyncMock(return_value=True)
    client = OfflineFirstClient(registry, mock_transport, storage, source)

    with pytest.raises(UnregisteredTypeError):
        await call(client)

    source.check.assert_not_called()
    mock_transport.request.assert_not_called()
    assert storage.method_calls == []


@pytest.mark.asyncio
async def test_storage_failure_propagates(registry, mock_transport, connectivity):
    """Test that a broken store surfaces to the caller instead of a degraded result."""
    storage = AsyncMock(spec=StorageBackend)
    storage.list_keys.return_value = []
    storage.put.side_effect = StorageException("read-only filesystem")
    client = OfflineFirstClient(registry, mock_transport, storage, connectivity)
    connectivity.set(False)

    with pytest.raises(StorageException):
        await client.post(Note, "/notes", Note(id="n1", title="x"))
