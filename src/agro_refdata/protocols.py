"""Protocol definitions for dependency injection.

These protocols define the abstract interfaces that the reference client
depends on, enabling isolated unit testing with fake implementations.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .domain.errors import ErrorClassification
    from .domain.transport import TransportResponse
    from .infrastructure.resilience import CancellationToken

Clock = Callable[[], float]


@runtime_checkable
class Transport(Protocol):
    """Abstract HTTP transport for the reference-data backend."""

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> TransportResponse:
        """Issue one HTTP call relative to the backend base URL.

        Returns:
            The 2xx response.

        Raises:
            TransportError: On connection failure (no response) or non-2xx status.
            OperationCancelledError: If the token is cancelled before the call.
        """
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...


@runtime_checkable
class Cache(Protocol):
    """Abstract keyed store with per-entry time-to-live."""

    def get(self, key: str) -> object | None:
        """Return the cached payload, or None if absent or expired."""
        ...

    def set(self, key: str, value: object, ttl_seconds: float | None = None) -> None:
        """Store a payload, replacing any existing entry for the key."""
        ...

    def invalidate(self, pattern: str, *, prefix: bool = True) -> int:
        """Remove the exact key and, when `prefix`, every key starting with it."""
        ...

    def clear(self) -> None:
        """Remove every entry."""
        ...

    def has(self, key: str) -> bool:
        """Check whether a valid entry exists for the key."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Abstract retry policy for transient failures."""

    def should_retry(
        self,
        classification: ErrorClassification,
        attempt: int,
        status_code: int | None = None,
    ) -> bool:
        """Return True when another attempt is allowed after `attempt` failed."""
        ...

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay in seconds before retrying `attempt`."""
        ...
