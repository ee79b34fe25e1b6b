"""Transport fakes for tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing_extensions import override

from agro_refdata.domain.transport import TransportResponse
from agro_refdata.exceptions import TransportError
from agro_refdata.infrastructure.resilience import CancellationToken
from agro_refdata.protocols import Transport

Outcome = TransportResponse | TransportError | Callable[["RecordedCall"], TransportResponse]


@dataclass(frozen=True)
class RecordedCall:
    method: str
    path: str
    params: dict[str, str] | None
    json: object
    headers: dict[str, str] | None


def network_failure() -> TransportError:
    return TransportError("connection refused")


def error_response(
    status_code: int,
    body: object = None,
    headers: Mapping[str, str] | None = None,
) -> TransportError:
    return TransportError(
        f"status={status_code}",
        response=TransportResponse(status_code=status_code, headers=dict(headers or {}), body=body),
    )


def _empty_routes() -> dict[tuple[str, str], list[Outcome]]:
    return {}


def _empty_calls() -> list[RecordedCall]:
    return []


@dataclass
class FakeTransport(Transport):
    """Fake transport replaying queued outcomes per (method, path).

    The last queued outcome of a route is repeated once the queue drains.
    """

    routes: dict[tuple[str, str], list[Outcome]] = field(default_factory=_empty_routes)
    calls: list[RecordedCall] = field(default_factory=_empty_calls)
    closed: bool = False

    def add(self, method: str, path: str, *outcomes: Outcome) -> None:
        self.routes.setdefault((method, path), []).extend(outcomes)

    def ok(self, method: str, path: str, body: object = None, **headers: str) -> None:
        self.add(method, path, TransportResponse(status_code=200, headers=headers, body=body))

    def calls_to(self, method: str, path: str) -> list[RecordedCall]:
        return [call for call in self.calls if call.method == method and call.path == path]

    @override
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
        if token is not None:
            token.raise_if_cancelled(f"{method} {path}")
        call = RecordedCall(
            method=method,
            path=path,
            params=dict(params) if params else None,
            json=json,
            headers=dict(headers) if headers else None,
        )
        self.calls.append(call)
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"No canned response for {method} {path}")
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, TransportError):
            raise outcome
        if isinstance(outcome, TransportResponse):
            return outcome
        return outcome(call)

    @override
    def close(self) -> None:
        self.closed = True
