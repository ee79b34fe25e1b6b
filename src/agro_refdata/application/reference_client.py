"""Generic reference-data client: cached, retried reads and guarded writes.

Reads probe the cache, fall back to a retried transport call, and store the
result with the resource's TTL. Writes are issued exactly once (a replayed
non-idempotent write after an ambiguous failure could duplicate side
effects), carry the caller's version token when given, and invalidate the
affected cache entries on success.

Usage example:
    import requests

    from agro_refdata.application.reference_client import ReferenceClientRegistry
    from agro_refdata.domain.resources import ResourceDescriptor
    from agro_refdata.infrastructure import RequestsTransport, TtlCache

    registry = ReferenceClientRegistry(
        resources=[ResourceDescriptor(name="Pais", base_path="api/paises")],
        transport=RequestsTransport(session=requests.Session(), base_url="https://api"),
        cache=TtlCache(max_size=100),
    )
    with registry:
        paises = registry.client_for("Pais").obter_ativos()
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from types import TracebackType
from typing import Self, TypeVar, cast

from ..domain.operations import OperationContext, OperationKind
from ..domain.resources import (
    ResourceDescriptor,
    SearchParams,
    SearchResult,
    VersionedItem,
)
from ..domain.transport import TransportResponse
from ..exceptions import ClientClosedError, TransportError, UnknownResourceError
from ..infrastructure.concurrency import ConcurrencyGuard, ConcurrencyToken, extract_version
from ..infrastructure.resilience import (
    CancellationToken,
    RetryConfig,
    RetryPolicy,
    run_with_retry,
)
from ..infrastructure.validation import (
    dump_payload,
    parse_item,
    parse_items,
    parse_search_result,
    validate_as,
)
from ..observability import get_logger
from ..protocols import Cache, Transport
from .invalidation import CacheInvalidator

T = TypeVar("T")

MIN_SEARCH_TERM_LENGTH = 2

_WRITE_POLICY = RetryPolicy(RetryConfig.no_retry())

# Stands in for an empty response body, which the cache cannot store as None.
_EMPTY_PAYLOAD = object()


class ReferenceClient:
    """Client for one reference resource, parametrised by its descriptor."""

    def __init__(
        self,
        resource: ResourceDescriptor,
        *,
        transport: Transport,
        cache: Cache,
        retry_config: RetryConfig | None = None,
        invalidator: CacheInvalidator | None = None,
        guard: ConcurrencyGuard | None = None,
        logger: logging.Logger | None = None,
        is_closed: Callable[[], bool] | None = None,
    ) -> None:
        self.resource = resource
        self.transport = transport
        self.cache = cache
        self.retry_config = retry_config or RetryConfig()
        self.invalidator = invalidator or CacheInvalidator(cache)
        self.guard = guard or ConcurrencyGuard()
        self.logger = logger or get_logger("agro_refdata.application.reference_client")
        self._is_closed = is_closed

    # -- read path -----------------------------------------------------------

    def obter_todos(
        self,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> list[object]:
        """Fetch every item of the resource."""
        return self._cached_read(
            key=self.resource.all_key(),
            path=self.resource.path(),
            description=f"list all {self.resource.name}",
            ttl_seconds=self.resource.cache_ttl_seconds,
            parse=self._parse_list,
            token=token,
            retry_config=retry_config,
        )

    def obter_ativos(
        self,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> list[object]:
        """Fetch only the active items of the resource."""
        return self._cached_read(
            key=self.resource.active_key(),
            path=self.resource.path("ativos"),
            description=f"list active {self.resource.name}",
            ttl_seconds=self.resource.cache_ttl_seconds,
            parse=self._parse_list,
            token=token,
            retry_config=retry_config,
        )

    def obter_por_id(
        self,
        item_id: int | str,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> object:
        """Fetch one item by identifier."""
        return self._cached_read(
            key=self.resource.item_key(item_id),
            path=self.resource.path(item_id),
            description=f"get {self.resource.name} id={item_id}",
            ttl_seconds=self.resource.cache_ttl_seconds,
            parse=self._parse_single,
            token=token,
            retry_config=retry_config,
        )

    def obter_por_id_com_versao(
        self,
        item_id: int | str,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> VersionedItem:
        """Fetch one item fresh from the backend together with its version token.

        The cache is bypassed so the version is current, and the fetched item
        replaces the cached copy.
        """
        self._ensure_open()
        description = f"get {self.resource.name} id={item_id} with version"
        response = self._retried_get(
            self.resource.path(item_id),
            context=self._context(OperationKind.READ, description),
            token=token,
            retry_config=retry_config,
        )
        item = self._parse_single(response.body, description)
        self._store(self.resource.item_key(item_id), item, self.resource.cache_ttl_seconds)
        return VersionedItem(item=copy.deepcopy(item), version=extract_version(response))

    def buscar(
        self,
        params: SearchParams | None = None,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> SearchResult:
        """Search with term, status filter, paging and ordering."""
        search = params or SearchParams()
        result = self._cached_read(
            key=self.resource.search_key(search),
            path=self.resource.path("buscar"),
            description=f"search {self.resource.name}",
            ttl_seconds=self.resource.search_ttl_seconds,
            parse=self._parse_search,
            token=token,
            retry_config=retry_config,
            params=search.to_query(),
            kind=OperationKind.SEARCH,
        )
        return result

    def buscar_por_termo(
        self,
        termo: str,
        *,
        token: CancellationToken | None = None,
    ) -> list[object]:
        """Search by term alone; terms shorter than two characters list active items."""
        text = termo.strip()
        if len(text) < MIN_SEARCH_TERM_LENGTH:
            return self.obter_ativos(token=token)
        return self.buscar(SearchParams(termo=text), token=token).items

    def pode_remover(
        self,
        item_id: int | str,
        *,
        token: CancellationToken | None = None,
        retry_config: RetryConfig | None = None,
    ) -> bool:
        """Ask the backend whether the item can be removed (not referenced elsewhere)."""
        self._ensure_open()
        context = self._context(
            OperationKind.READ, f"check removal of {self.resource.name} id={item_id}"
        )
        response = self._retried_get(
            self.resource.path(item_id, "pode-remover"),
            context=context,
            token=token,
            retry_config=retry_config,
        )
        body = validate_as(dict[str, object], response.body, operation=context.label())
        return bool(body.get("canRemove", False))

    def recarregar_ativos(self, *, token: CancellationToken | None = None) -> list[object]:
        """Drop the cached active list and fetch it again."""
        self._ensure_open()
        self.cache.invalidate(self.resource.active_key(), prefix=False)
        return self.obter_ativos(token=token)

    def limpar_cache(self) -> int:
        """Drop every cached entry of this resource."""
        return self.invalidator.invalidate_resource(self.resource)

    # -- write path ----------------------------------------------------------

    def criar(self, payload: object, *, token: CancellationToken | None = None) -> object:
        """Create an item; the backend rejects duplicate unique fields with 409."""
        return self.criar_com_versao(payload, token=token).item

    def criar_com_versao(
        self, payload: object, *, token: CancellationToken | None = None
    ) -> VersionedItem:
        """Create an item and return it with the version the server assigned."""
        description = f"create {self.resource.name}"
        response = self._write(
            OperationKind.CREATE,
            "POST",
            self.resource.path(),
            description=description,
            payload=payload,
            token=token,
        )
        return self._versioned(response, description)

    def atualizar(
        self,
        item_id: int | str,
        payload: object,
        version: ConcurrencyToken | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> object:
        """Update an item, conditionally on `version` when one is supplied.

        Raises:
            ConcurrencyConflictError: The stored version no longer matches `version`.
        """
        return self.atualizar_com_versao(item_id, payload, version, token=token).item

    def atualizar_com_versao(
        self,
        item_id: int | str,
        payload: object,
        version: ConcurrencyToken | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> VersionedItem:
        """Update an item and return it with the new version for the next update."""
        description = f"update {self.resource.name} id={item_id}"
        response = self._write(
            OperationKind.UPDATE,
            "PUT",
            self.resource.path(item_id),
            description=description,
            payload=payload,
            item_id=item_id,
            version=version,
            token=token,
        )
        return self._versioned(response, description)

    def remover(self, item_id: int | str, *, token: CancellationToken | None = None) -> None:
        """Delete an item; fails when other records still reference it."""
        self._write(
            OperationKind.DELETE,
            "DELETE",
            self.resource.path(item_id),
            description=f"remove {self.resource.name} id={item_id}",
            item_id=item_id,
            token=token,
        )

    def ativar(self, item_id: int | str, *, token: CancellationToken | None = None) -> None:
        self._write(
            OperationKind.ACTIVATE,
            "PATCH",
            self.resource.path(item_id, "ativar"),
            description=f"activate {self.resource.name} id={item_id}",
            item_id=item_id,
            token=token,
        )

    def desativar(self, item_id: int | str, *, token: CancellationToken | None = None) -> None:
        self._write(
            OperationKind.DEACTIVATE,
            "PATCH",
            self.resource.path(item_id, "desativar"),
            description=f"deactivate {self.resource.name} id={item_id}",
            item_id=item_id,
            token=token,
        )

    # -- internals -----------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._is_closed is not None and self._is_closed():
            raise ClientClosedError()

    def _context(self, kind: OperationKind, description: str) -> OperationContext:
        return OperationContext(
            entity_name=self.resource.name,
            operation_kind=kind,
            description=description,
        )

    def _retried_get(
        self,
        path: str,
        *,
        context: OperationContext,
        token: CancellationToken | None,
        retry_config: RetryConfig | None,
        params: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        def attempt(_context: OperationContext) -> TransportResponse:
            return self.transport.request("GET", path, params=params, token=token)

        return run_with_retry(
            attempt,
            context=context,
            policy=RetryPolicy(retry_config or self.retry_config),
            token=token,
            logger=self.logger,
        )

    def _store(self, key: str, value: object, ttl_seconds: float) -> None:
        # Cached entries are private copies, never shared with callers.
        stored = _EMPTY_PAYLOAD if value is None else copy.deepcopy(value)
        self.cache.set(key, stored, ttl_seconds)

    def _cached_read(
        self,
        *,
        key: str,
        path: str,
        description: str,
        ttl_seconds: float,
        parse: Callable[[object, str], T],
        token: CancellationToken | None,
        retry_config: RetryConfig | None,
        params: Mapping[str, str] | None = None,
        kind: OperationKind = OperationKind.READ,
    ) -> T:
        self._ensure_open()
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.debug("Cache hit for %s", key)
            if cached is _EMPTY_PAYLOAD:
                return cast(T, None)
            return cast(T, copy.deepcopy(cached))

        response = self._retried_get(
            path,
            context=self._context(kind, description),
            token=token,
            retry_config=retry_config,
            params=params,
        )
        value = parse(response.body, description)
        self._store(key, value, ttl_seconds)
        return value

    def _write(
        self,
        kind: OperationKind,
        method: str,
        path: str,
        *,
        description: str,
        payload: object = None,
        item_id: int | str | None = None,
        version: ConcurrencyToken | None = None,
        token: CancellationToken | None = None,
    ) -> TransportResponse:
        self._ensure_open()
        context = self._context(kind, description)
        headers = self.guard.attach_token(None, version)
        body = dump_payload(payload) if payload is not None else None

        def attempt(attempt_context: OperationContext) -> TransportResponse:
            try:
                outcome: TransportResponse | TransportError = self.transport.request(
                    method, path, json=body, headers=headers or None, token=token
                )
            except TransportError as exc:
                outcome = exc
            return self.guard.interpret_response(
                outcome,
                context=attempt_context,
                submitted_payload=payload,
                submitted_version=version,
            )

        response = run_with_retry(
            attempt,
            context=context,
            policy=_WRITE_POLICY,
            token=token,
            logger=self.logger,
        )
        self.invalidator.invalidate_family(self.resource, item_id)
        return response

    def _versioned(self, response: TransportResponse, operation: str) -> VersionedItem:
        return VersionedItem(
            item=self._parse_optional(response.body, operation),
            version=extract_version(response),
        )

    def _parse_list(self, payload: object, operation: str) -> list[object]:
        return parse_items(payload, self.resource.item_model, operation=operation)

    def _parse_single(self, payload: object, operation: str) -> object:
        return parse_item(payload, self.resource.item_model, operation=operation)

    def _parse_search(self, payload: object, operation: str) -> SearchResult:
        return parse_search_result(payload, self.resource.item_model, operation=operation)

    def _parse_optional(self, payload: object, operation: str) -> object:
        if payload is None:
            return None
        return parse_item(payload, self.resource.item_model, operation=operation)


class ReferenceClientRegistry:
    """Explicitly owned set of reference clients sharing one cache and transport.

    Construct once at the composition root, pass it to callers, and close it
    on shutdown (or use it as a context manager).
    """

    def __init__(
        self,
        *,
        resources: Iterable[ResourceDescriptor],
        transport: Transport,
        cache: Cache,
        retry_config: RetryConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.retry_config = retry_config or RetryConfig()
        self.logger = logger or get_logger("agro_refdata.application.reference_client")
        self.invalidator = CacheInvalidator(cache)
        self.guard = ConcurrencyGuard()
        self._resources: dict[str, ResourceDescriptor] = {}
        for resource in resources:
            self._resources[resource.name.lower()] = resource
        self._clients: dict[str, ReferenceClient] = {}
        self._closed = False

    @property
    def resources(self) -> tuple[ResourceDescriptor, ...]:
        return tuple(self._resources.values())

    def client_for(self, name: str) -> ReferenceClient:
        if self._closed:
            raise ClientClosedError()
        lookup = name.strip().lower()
        resource = self._resources.get(lookup)
        if resource is None:
            resource = next(
                (
                    r
                    for r in self._resources.values()
                    if r.cache_prefix.rsplit("/", 1)[-1].lower() == lookup
                ),
                None,
            )
        if resource is None:
            raise UnknownResourceError(name, tuple(r.name for r in self._resources.values()))
        key = resource.name.lower()
        client = self._clients.get(key)
        if client is None:
            client = ReferenceClient(
                resource,
                transport=self.transport,
                cache=self.cache,
                retry_config=self.retry_config,
                invalidator=self.invalidator,
                guard=self.guard,
                logger=self.logger,
                is_closed=self._registry_closed,
            )
            self._clients[key] = client
        return client

    def _registry_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._clients.clear()
        self.cache.clear()
        self.transport.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
