"""HTTP transport implementation for the reference-data backend.

Usage example:
    import requests

    from agro_refdata.infrastructure.http import RequestsTransport

    transport = RequestsTransport(
        session=requests.Session(),
        base_url="https://api.example.com",
        auth_token="...",
    )
    response = transport.request("GET", "api/paises/ativos")
"""

from __future__ import annotations

from collections.abc import Mapping
from typing_extensions import override

import requests

from ..domain.transport import TransportResponse
from ..exceptions import OperationCancelledError, TransportError
from ..observability import get_logger
from ..protocols import Transport
from .resilience import CancellationToken

logger = get_logger("agro_refdata.infrastructure.http")

# Failures where the connection broke before a full response arrived.
_TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


def _decode_body(response: requests.Response) -> object:
    if not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type.lower():
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


def _to_transport_response(response: requests.Response) -> TransportResponse:
    return TransportResponse(
        status_code=response.status_code,
        headers=dict(response.headers),
        body=_decode_body(response),
    )


class RequestsTransport(Transport):
    """`requests`-backed transport.

    - Connection failures and timeouts raise `TransportError` without a response
    - Non-2xx responses raise `TransportError` carrying the response
    - The per-call timeout never exceeds the token's remaining deadline
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        base_url: str,
        timeout_seconds: float = 30.0,
        auth_token: str | None = None,
    ) -> None:
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"
        self.session.headers.setdefault("Accept", "application/json")

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

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
        url = self.url_for(path)
        timeout = self.timeout_seconds
        if token is not None:
            token.raise_if_cancelled(f"{method} {url}")
            remaining = token.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)

        try:
            r = self.session.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json,
                headers=dict(headers) if headers else None,
                timeout=timeout,
            )
        except _TRANSIENT_ERRORS as exc:
            if token is not None and token.cancelled:
                raise OperationCancelledError(f"{method} {url}", reason=token.reason) from exc
            logger.warning("%s %s failed without a response: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        except requests.RequestException as exc:
            logger.error("%s %s could not be sent: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}", transient=False) from exc

        response = _to_transport_response(r)
        if not response.ok:
            raise TransportError(
                f"{method} {url} returned status={response.status_code}, "
                f"body={response.body_summary()}",
                response=response,
            )
        return response

    @override
    def close(self) -> None:
        self.session.close()
