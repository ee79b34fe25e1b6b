"""Composition root for wiring the reference client stack."""

from __future__ import annotations

from pathlib import Path

import requests

from .application.reference_client import ReferenceClientRegistry
from .catalogue import default_resources
from .cli import create_app
from .config import ClientConfig
from .config_file import load_resource_catalogue
from .domain.resources import ResourceDescriptor
from .exceptions import MissingBaseUrlError
from .infrastructure import RequestsTransport, TtlCache


def build_resources(config: ClientConfig) -> tuple[ResourceDescriptor, ...]:
    """Return the configured catalogue, or the built-in one when none is set."""
    if config.resources_path:
        return load_resource_catalogue(
            path=Path(config.resources_path),
            default_ttl_seconds=config.cache_ttl_seconds,
            default_search_ttl_seconds=config.search_ttl_seconds,
        )
    return default_resources(
        cache_ttl_seconds=config.cache_ttl_seconds,
        search_ttl_seconds=config.search_ttl_seconds,
    )


def build_registry(*, config: ClientConfig) -> ReferenceClientRegistry:
    """Build the registry that owns the shared cache and transport.

    The caller owns the result and must close it (or use it as a context
    manager) to release pooled connections.
    """
    if not config.base_url:
        raise MissingBaseUrlError()
    transport = RequestsTransport(
        session=requests.Session(),
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        auth_token=config.auth_token or None,
    )
    cache = TtlCache(max_size=config.cache_max_size, default_ttl_seconds=config.cache_ttl_seconds)
    return ReferenceClientRegistry(
        resources=build_resources(config),
        transport=transport,
        cache=cache,
        retry_config=config.retry_config(),
    )


app = create_app(build_registry)
