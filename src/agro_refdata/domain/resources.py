"""Resource descriptors, search parameters and cache key construction.

A reference resource (countries, states, packaging types, ...) is a
configuration value, not a subclass: one `ResourceDescriptor` per backend
collection drives a generic `ReferenceClient`.

Usage example:
    from agro_refdata.domain.resources import ResourceDescriptor, SearchParams

    paises = ResourceDescriptor(name="Pais", base_path="api/paises")
    key = paises.search_key(SearchParams(termo="bra", pagina=1))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import BaseModel

DEFAULT_CACHE_TTL_SECONDS = 5 * 60.0
DEFAULT_SEARCH_TTL_SECONDS = 2 * 60.0

ALL_KEY = "all"
ACTIVE_KEY = "active"
SEARCH_KEY = "search"


def _format_param(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialise_params(params: Mapping[str, object] | None) -> str:
    """Serialise query parameters independently of their insertion order.

    `None` values are dropped so that an unset filter and a missing filter
    produce the same key.
    """
    if not params:
        return ""
    pairs = sorted(
        (name, _format_param(value)) for name, value in params.items() if value is not None
    )
    return "&".join(f"{name}={value}" for name, value in pairs)


def build_cache_key(
    resource: str,
    *parts: object,
    params: Mapping[str, object] | None = None,
) -> str:
    """Build a deterministic cache key from resource identity and parameters."""
    key = resource
    if parts:
        key += ":" + "/".join(str(part) for part in parts)
    query = serialise_params(params)
    if query:
        key += "?" + query
    return key


@dataclass(frozen=True)
class SearchParams:
    """Filters accepted by the `/buscar` endpoint."""

    termo: str | None = None
    ativo: bool | None = None
    pagina: int | None = None
    tamanho_pagina: int | None = None
    ordenacao: str | None = None

    def to_query(self) -> dict[str, str]:
        """Return the wire query parameters, omitting unset filters."""
        query: dict[str, str] = {}
        if self.termo:
            query["termo"] = self.termo
        if self.ativo is not None:
            query["ativo"] = _format_param(self.ativo)
        if self.pagina:
            query["pagina"] = str(self.pagina)
        if self.tamanho_pagina:
            query["tamanhoPagina"] = str(self.tamanho_pagina)
        if self.ordenacao:
            query["ordenacao"] = self.ordenacao
        return query


def _empty_items() -> list[object]:
    return []


@dataclass(frozen=True)
class SearchResult:
    """One page of search results."""

    items: list[object] = field(default_factory=_empty_items)
    total: int = 0


@dataclass(frozen=True)
class VersionedItem:
    """An item together with the version token the server reported for it.

    Pass `version` back to `atualizar` to make the update conditional.
    """

    item: object
    version: str | None = None


@dataclass(frozen=True)
class ResourceDescriptor:
    """Identity, location and cache policy of one reference resource."""

    name: str
    base_path: str
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    search_ttl_seconds: float = DEFAULT_SEARCH_TTL_SECONDS
    item_model: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Resource name must not be empty.")
        if not self.base_path.strip("/"):
            raise ValueError(f"Resource {self.name!r} needs a base path.")
        if self.cache_ttl_seconds <= 0 or self.search_ttl_seconds <= 0:
            raise ValueError(f"Resource {self.name!r} TTLs must be positive.")

    @property
    def cache_prefix(self) -> str:
        return self.base_path.strip("/")

    def path(self, *parts: object) -> str:
        segments = [self.cache_prefix, *(str(part).strip("/") for part in parts)]
        return "/".join(segments)

    def all_key(self) -> str:
        return build_cache_key(self.cache_prefix, ALL_KEY)

    def active_key(self) -> str:
        return build_cache_key(self.cache_prefix, ACTIVE_KEY)

    def item_key(self, item_id: object) -> str:
        return build_cache_key(self.cache_prefix, f"item-{item_id}")

    def search_key(self, params: SearchParams) -> str:
        return build_cache_key(self.cache_prefix, SEARCH_KEY, params=params.to_query())

    def search_prefix(self) -> str:
        return build_cache_key(self.cache_prefix, SEARCH_KEY)
