"""Pytest fixtures for testing.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import socket

import pytest

from agro_refdata.application.reference_client import ReferenceClient
from agro_refdata.domain.resources import ResourceDescriptor
from agro_refdata.infrastructure.cache import TtlCache
from agro_refdata.infrastructure.resilience import RetryConfig
from tests.fakes import FakeClock, FakeTransport

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self, *args, **kwargs):
    """Raise an error if any test tries to make a real network connection."""
    raise RuntimeError(
        "Tests must not make network connections! "
        "Use FakeTransport or MagicMock instead. "
        f"Attempted connection to: {args}"
    )


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch):
    """Block all network access in tests.

    If you need E2E tests with real network access, mark them with:
        @pytest.mark.e2e
    and run them separately with: pytest -m e2e
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(now=1_000.0)


@pytest.fixture
def cache(clock: FakeClock) -> TtlCache:
    return TtlCache(max_size=50, default_ttl_seconds=300.0, clock=clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def paises() -> ResourceDescriptor:
    return ResourceDescriptor(
        name="Pais",
        base_path="api/referencias/paises",
        cache_ttl_seconds=300.0,
        search_ttl_seconds=60.0,
    )


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Three retries without real sleeping."""
    return RetryConfig(max_retries=3, base_delay_seconds=0.0, backoff_multiplier=2.0)


@pytest.fixture
def client(
    paises: ResourceDescriptor,
    transport: FakeTransport,
    cache: TtlCache,
    fast_retry: RetryConfig,
) -> ReferenceClient:
    return ReferenceClient(paises, transport=transport, cache=cache, retry_config=fast_retry)
