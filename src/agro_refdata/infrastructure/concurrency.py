"""Optimistic concurrency for conditional writes.

The version token is opaque and owned by the caller: the guard only forwards
it as an `If-Match` precondition and interprets the backend's verdict.

Usage example:
    from agro_refdata.infrastructure.concurrency import ConcurrencyGuard

    guard = ConcurrencyGuard()
    headers = guard.attach_token({}, "AAAAAAAAB9E=")
    # {"If-Match": "AAAAAAAAB9E="}
"""

from __future__ import annotations

from collections.abc import Mapping

from ..domain.errors import CONFLICT, PRECONDITION_FAILED, describe
from ..domain.operations import OperationContext
from ..domain.transport import TransportResponse
from ..exceptions import ConcurrencyConflictError, TransportError

IF_MATCH_HEADER = "If-Match"
ETAG_HEADER = "ETag"
_VERSION_FIELDS = ("rowVersion", "version")

ConcurrencyToken = str


def _unquote_etag(value: str) -> str:
    text = value.strip()
    if text.startswith("W/"):
        text = text[2:]
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1]
    return text


def extract_version(response: TransportResponse) -> ConcurrencyToken | None:
    """Return the version the server reported, from `ETag` or a body field."""
    etag = response.header(ETAG_HEADER)
    if etag:
        return _unquote_etag(etag)
    for name in _VERSION_FIELDS:
        value = response.body_field(name)
        if isinstance(value, str) and value:
            return value
    return None


class ConcurrencyGuard:
    """Attaches version tokens to writes and detects version mismatches."""

    def attach_token(
        self,
        headers: Mapping[str, str] | None,
        token: ConcurrencyToken | None,
    ) -> dict[str, str]:
        """Return request headers with `If-Match` added when a token is present."""
        merged = dict(headers or {})
        if token:
            merged[IF_MATCH_HEADER] = token
        return merged

    def interpret_response(
        self,
        outcome: TransportResponse | TransportError,
        *,
        context: OperationContext,
        submitted_payload: object,
        submitted_version: ConcurrencyToken | None = None,
    ) -> TransportResponse:
        """Return the response of a successful write.

        Raises:
            ConcurrencyConflictError: The backend answered 412 Precondition Failed.
            TransportError: Any other failure, re-raised for classification.
        """
        if isinstance(outcome, TransportResponse):
            return outcome

        response = outcome.response
        if response is None or response.status_code != PRECONDITION_FAILED:
            raise outcome

        raise ConcurrencyConflictError(
            describe(PRECONDITION_FAILED, context.entity_name, response.body),
            classification=CONFLICT,
            context=context,
            current_version=extract_version(response),
            submitted_payload=submitted_payload,
            submitted_version=submitted_version,
            status_code=response.status_code,
            details=response.body,
        ) from outcome
