"""OfflineFirstClient - typed data access that keeps working without a network.

Every operation resolves the entity type in the registry first, then picks a
path:

- Reads go to the network when connected and refresh the local cache. When the
  network is unreachable or the call fails, the cached data is returned with a
  degraded (206) status.
- Writes go to the network when connected and update the cache on success.
  When the network is unreachable or the call fails, the operation is queued for
  replay and the cache is updated immediately, so it always reflects the
  client's intended state.

Transport failures never raise out of this class. ``UnregisteredTypeError`` and
storage exceptions do.
"""

import asyncio
import contextlib
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from offline_first.core.config import Settings, settings
from offline_first.core.exceptions import TransportError
from offline_first.core.logging import ContextualLogger
from offline_first.core.logging import logger as default_logger
from offline_first.platform.connectivity.monitor import ConnectivityMonitor
from offline_first.platform.connectivity.sources import (
    ConnectivitySource,
    HttpProbeConnectivitySource,
    ManualConnectivitySource,
)
from offline_first.platform.http_client.transport import HttpTransport, TransportResponse
from offline_first.platform.registry import RegistryEntry, TypeRegistry
from offline_first.platform.storage import get_storage_backend
from offline_first.platform.storage.backend import StorageBackend
from offline_first.platform.storage.local_cache import LocalCacheStore
from offline_first.platform.sync.pending_queue import PendingOperationQueue
from offline_first.platform.sync.replayer import QueueReplayer, ReplayReport
from offline_first.schemas.operation import OperationMethod, PendingOperation
from offline_first.schemas.response import (
    NO_CONNECTIVITY_MESSAGE,
    NO_DATA_MESSAGE,
    OfflineResponse,
    RequestDescriptor,
)

# Errors raised by entity codecs on payloads they cannot handle
DECODE_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


class OfflineFirstClient:
    """Offline-first dispatcher over a transport, a document store and a connectivity source.

    Construct one per application (in its composition root) and share it. The
    connectivity subscription that triggers queue replay is started by
    ``start()`` and released by ``aclose()``; ``async with`` does both.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        transport: HttpTransport,
        storage: StorageBackend,
        connectivity: Union[ConnectivitySource, ConnectivityMonitor],
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the client.

        Args:
            registry: Codecs for every entity type the client will handle
            transport: Network transport
            storage: Document store backing the cache and the pending queue
            connectivity: Connectivity source, or a monitor already wrapping one
            logger: Optional contextual logger
        """
        self.logger = logger or default_logger.with_context(component="offline_client")
        self.registry = registry
        self.transport = transport
        self.storage = storage
        self.cache = LocalCacheStore(storage, registry)
        self.queue = PendingOperationQueue(storage)
        if isinstance(connectivity, ConnectivityMonitor):
            self.monitor = connectivity
        else:
            self.monitor = ConnectivityMonitor(connectivity)
        self.replayer = QueueReplayer(self.queue, transport)
        self._subscription: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        registry: TypeRegistry,
        config: Optional[Settings] = None,
    ) -> "OfflineFirstClient":
        """Build a client with the default collaborators described by the settings.

        Without ``CONNECTIVITY_PROBE_URL`` the client uses a manual source that
        reports connected; the application can feed it via ``monitor.source.set``.
        """
        config = config or settings
        source: ConnectivitySource
        if config.CONNECTIVITY_PROBE_URL:
            source = HttpProbeConnectivitySource(
                config.CONNECTIVITY_PROBE_URL,
                interval=config.CONNECTIVITY_POLL_INTERVAL,
                timeout=config.CONNECTIVITY_PROBE_TIMEOUT,
            )
        else:
            source = ManualConnectivitySource(initial=True)

        return cls(
            registry=registry,
            transport=HttpTransport(base_url=config.API_BASE_URL, timeout=config.HTTP_TIMEOUT),
            storage=get_storage_backend(config),
            connectivity=source,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe the queue replayer to connectivity transitions."""
        if self._subscription is not None:
            return
        self._subscription = asyncio.create_task(
            self.replayer.run(self.monitor.transitions()), name="offline-first-replay"
        )
        self.logger.debug("Subscribed to connectivity transitions")

    async def aclose(self) -> None:
        """Release the connectivity subscription and close the transport.

        An in-flight replay is allowed to finish first.
        """
        if self._subscription is not None:
            self._subscription.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._subscription
            self._subscription = None

        try:
            await self.replayer.wait_idle()
        finally:
            await self.transport.aclose()
            source_close = getattr(self.monitor.source, "aclose", None)
            if source_close is not None:
                await source_close()
            self.logger.debug("Client closed")

    async def __aenter__(self) -> "OfflineFirstClient":
        """Enter async context manager."""
        self.start()
        return self

    async def __aexit__(self, *args) -> None:
        """Exit async context manager."""
        await self.aclose()

    # ------------------------------------------------------------------
    # Queue inspection and manual replay
    # ------------------------------------------------------------------

    async def sync_now(self) -> ReplayReport:
        """Replay the pending queue now, or wait for the replay in progress."""
        return await self.replayer.drain()

    async def pending_operations(self) -> List[PendingOperation]:
        """Return queued operations in replay order."""
        return await self.queue.list()

    async def pending_count(self) -> int:
        """Return the number of queued operations."""
        return await self.queue.count()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(
        self,
        entity_type: type,
        url: str,
        *,
        query_params: Optional[Dict[str, Any]] = None,
        entity_id: Optional[Any] = None,
    ) -> OfflineResponse:
        """Read a single entity.

        Args:
            entity_type: Registered entity type
            url: Resource URL
            query_params: Query string parameters
            entity_id: Identifier to look up in the cache when the network is
                unavailable; the first cached entity is used when omitted

        Returns:
            OfflineResponse with the server status, or 206 with cached data
        """
        entry = self.registry.require(entity_type)
        request = RequestDescriptor("GET", url, query_params)

        if await self.monitor.is_connected_now():
            try:
                response = await self.transport.request("GET", url, query_params=query_params)
                if response.data is None:
                    raise TransportError("Empty payload", status_code=response.status_code)
                result = self._decode_record(entry, response.data)
            except TransportError as e:
                self.logger.warning(f"GET {url} failed, serving {entry.key} from cache: {e}")
            else:
                await self.cache.upsert_one(entity_type, result)
                return self._network_response(request, response, result)

        if entity_id is not None:
            cached = await self.cache.get(entity_type, entity_id)
        else:
            cached = await self.cache.get_first_or_none(entity_type)

        if cached is None:
            self.logger.debug(f"Cache MISS: {entry.key}")
            return OfflineResponse.degraded(request, message=NO_DATA_MESSAGE)
        self.logger.debug(f"Cache HIT: {entry.key}")
        return OfflineResponse.degraded(request, data=cached)

    async def get_list(
        self,
        entity_type: type,
        url: str,
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Read a collection of entities.

        A successful network read replaces the whole cached set for the type.
        """
        entry = self.registry.require(entity_type)
        request = RequestDescriptor("GET", url, query_params)

        if await self.monitor.is_connected_now():
            try:
                response = await self.transport.request("GET", url, query_params=query_params)
                if not isinstance(response.data, list):
                    raise TransportError(
                        f"Expected a list payload, got {type(response.data).__name__}",
                        status_code=response.status_code,
                    )
                results = [self._decode_record(entry, item) for item in response.data]
            except TransportError as e:
                self.logger.warning(f"GET {url} failed, serving {entry.key} list from cache: {e}")
            else:
                await self.cache.upsert_many(entity_type, results)
                return self._network_response(request, response, results)

        cached = await self.cache.list_all(entity_type)
        if not cached:
            self.logger.debug(f"Cache MISS: {entry.key} list")
            return OfflineResponse.degraded(request, data=[], message=NO_DATA_MESSAGE)
        self.logger.debug(f"Cache HIT: {entry.key} list ({len(cached)} records)")
        return OfflineResponse.degraded(request, data=cached)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def post(
        self,
        entity_type: type,
        url: str,
        entity: Any,
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Create an entity; the submitted entity becomes the cached record."""
        entry = self.registry.require(entity_type)
        return await self._mutate(entry, OperationMethod.CREATE, url, entity, query_params)

    async def put(
        self,
        entity_type: type,
        url: str,
        entity: Any,
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Update an entity; the submitted entity replaces the cached record."""
        entry = self.registry.require(entity_type)
        return await self._mutate(entry, OperationMethod.UPDATE, url, entity, query_params)

    async def delete(
        self,
        entity_type: type,
        url: str,
        entity: Any,
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Delete an entity; its cached record is removed."""
        entry = self.registry.require(entity_type)
        return await self._mutate(entry, OperationMethod.DELETE, url, entity, query_params)

    async def post_list(
        self,
        entity_type: type,
        url: str,
        entities: Iterable[Any],
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Create each entity with its own request and aggregate the results."""
        return await self._mutate_list(
            entity_type, OperationMethod.CREATE, url, entities, query_params
        )

    async def put_list(
        self,
        entity_type: type,
        url: str,
        entities: Iterable[Any],
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Update each entity with its own request and aggregate the results."""
        return await self._mutate_list(
            entity_type, OperationMethod.UPDATE, url, entities, query_params
        )

    async def delete_list(
        self,
        entity_type: type,
        url: str,
        entities: Iterable[Any],
        *,
        query_params: Optional[Dict[str, Any]] = None,
    ) -> OfflineResponse:
        """Delete each entity with its own request and aggregate the results."""
        return await self._mutate_list(
            entity_type, OperationMethod.DELETE, url, entities, query_params
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        entry: RegistryEntry,
        method: OperationMethod,
        url: str,
        entity: Any,
        query_params: Optional[Dict[str, Any]],
    ) -> OfflineResponse:
        """Run one mutation through the network, or queue it."""
        request = RequestDescriptor(method.http_method, url, query_params)
        entity_id = entry.identifier_of(entity)
        payload = entry.to_payload(entity)

        if not await self.monitor.is_connected_now():
            message = NO_CONNECTIVITY_MESSAGE
        else:
            try:
                response = await self.transport.request(
                    method.http_method, url, payload=payload, query_params=query_params
                )
                result = self._decode_optional(entry, response.data)
            except TransportError as e:
                self.logger.warning(
                    f"{method.http_method} {url} failed, queueing {entry.key} {entity_id}: {e}"
                )
                message = str(e)
            else:
                await self._apply_local_effect(entry, method, entity, entity_id)
                return self._network_response(request, response, result)

        await self.queue.append(
            url=url,
            method=method,
            entity_type=entry.key,
            entity_id=entity_id,
            payload=payload,
            query_params=query_params,
        )
        await self._apply_local_effect(entry, method, entity, entity_id)
        return OfflineResponse.degraded(request, message=message)

    async def _mutate_list(
        self,
        entity_type: type,
        method: OperationMethod,
        url: str,
        entities: Iterable[Any],
        query_params: Optional[Dict[str, Any]],
    ) -> OfflineResponse:
        """Run a mutation per entity and aggregate successes."""
        entry = self.registry.require(entity_type)
        request = RequestDescriptor(method.http_method, url, query_params)

        responses = [
            await self._mutate(entry, method, url, entity, query_params) for entity in entities
        ]
        return self._aggregate(request, responses)

    @staticmethod
    def _aggregate(
        request: RequestDescriptor,
        responses: Sequence[OfflineResponse],
    ) -> OfflineResponse:
        """Combine per-entity results; only network-confirmed payloads are kept."""
        data: List[Any] = []
        for response in responses:
            if not response.is_success or response.data is None:
                continue
            if isinstance(response.data, list):
                data.extend(response.data)
            else:
                data.append(response.data)

        failed = sum(1 for response in responses if not response.is_success)
        if failed:
            return OfflineResponse.degraded(
                request,
                data=data,
                message=f"{failed} of {len(responses)} operations queued",
            )
        return OfflineResponse(request=request, status_code=200, data=data)

    async def _apply_local_effect(
        self,
        entry: RegistryEntry,
        method: OperationMethod,
        entity: Any,
        entity_id: str,
    ) -> None:
        if method is OperationMethod.DELETE:
            await self.cache.delete(entry.entity_type, entity_id)
        else:
            await self.cache.upsert_one(entry.entity_type, entity)

    @staticmethod
    def _decode_one(entry: RegistryEntry, payload: Any) -> Any:
        try:
            return entry.from_payload(payload)
        except DECODE_ERRORS as e:
            raise TransportError(f"Cannot decode {entry.key} payload: {e}") from e

    @classmethod
    def _decode_record(cls, entry: RegistryEntry, payload: Any) -> Any:
        """Decode a read payload that must carry an identifier to be cached."""
        entity = cls._decode_one(entry, payload)
        try:
            entry.identifier_of(entity)
        except ValueError as e:
            raise TransportError(f"Cannot cache {entry.key} payload: {e}") from e
        return entity

    def _decode_optional(self, entry: RegistryEntry, payload: Any) -> Any:
        """Decode a mutation response body, which may be empty or a list."""
        if payload is None:
            return None
        if isinstance(payload, list):
            return [self._decode_one(entry, item) for item in payload]
        return self._decode_one(entry, payload)

    @staticmethod
    def _network_response(
        request: RequestDescriptor,
        response: TransportResponse,
        data: Any,
    ) -> OfflineResponse:
        return OfflineResponse(
            request=request,
            status_code=response.status_code,
            data=data,
            status_message=response.reason_phrase,
            headers=response.headers,
        )
