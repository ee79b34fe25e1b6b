"""Classification of transport failures.

The mapping from HTTP status (or the absence of a response) to an
`ErrorClassification` is total: every input has a definite kind, severity and
retry eligibility. Classification is a pure function of the status code.

Usage example:
    from agro_refdata.domain.errors import ErrorKind, classify_status

    classification = classify_status(503)
    assert classification.kind is ErrorKind.SERVER
    assert classification.retryable
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..exceptions import TransportError


class ErrorKind(StrEnum):
    NETWORK = "network"
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER = "server"
    UNKNOWN = "unknown"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ErrorClassification:
    """Derived description of a failure; never stored."""

    kind: ErrorKind
    retryable: bool
    severity: Severity


NETWORK = ErrorClassification(ErrorKind.NETWORK, retryable=True, severity=Severity.HIGH)
VALIDATION = ErrorClassification(ErrorKind.VALIDATION, retryable=False, severity=Severity.LOW)
AUTHORIZATION = ErrorClassification(
    ErrorKind.AUTHORIZATION, retryable=False, severity=Severity.MEDIUM
)
NOT_FOUND = ErrorClassification(ErrorKind.NOT_FOUND, retryable=False, severity=Severity.LOW)
CONFLICT = ErrorClassification(ErrorKind.CONFLICT, retryable=False, severity=Severity.MEDIUM)
SERVER = ErrorClassification(ErrorKind.SERVER, retryable=True, severity=Severity.HIGH)
UNKNOWN = ErrorClassification(ErrorKind.UNKNOWN, retryable=False, severity=Severity.LOW)

PRECONDITION_FAILED = 412

_STATUS_TABLE: dict[int, ErrorClassification] = {
    400: VALIDATION,
    422: VALIDATION,
    401: AUTHORIZATION,
    403: AUTHORIZATION,
    404: NOT_FOUND,
    409: CONFLICT,
    PRECONDITION_FAILED: CONFLICT,
    500: SERVER,
    502: SERVER,
    503: SERVER,
    504: SERVER,
}

_STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid data submitted",
    401: "Not authorised. Please sign in again",
    403: "Access denied",
    409: "A {entity} with these details already exists",
    PRECONDITION_FAILED: (
        "This record was modified by another user. Please reload and try again."
    ),
    422: "Invalid input data",
    500: "Internal server error",
    502: "Service temporarily unavailable",
    503: "Service temporarily unavailable",
    504: "Service temporarily unavailable",
}

_ERROR_CODE_MESSAGES: dict[str, str] = {
    "ENTITY_NOT_FOUND": "{entity} not found",
    "DUPLICATE_CODE": "This code is already in use. Please choose another.",
    "DUPLICATE_NAME": "This name is already in use. Please choose another.",
    "CANNOT_DELETE_REFERENCED": (
        "This {entity} cannot be removed because other records reference it."
    ),
    "CONCURRENCY_CONFLICT": (
        "This record was modified by another user. Please reload and try again."
    ),
    "VALIDATION_ERROR": "Invalid data submitted",
}


def classify_status(status_code: int | None) -> ErrorClassification:
    """Classify a failure by HTTP status; `None` means no response was received."""
    if status_code is None:
        return NETWORK
    return _STATUS_TABLE.get(status_code, UNKNOWN)


def classify(error: TransportError) -> ErrorClassification:
    """Classify a transport failure; a non-transient failure without a response is Unknown."""
    if error.response is None and not error.transient:
        return UNKNOWN
    return classify_status(error.status_code)


def describe(
    status_code: int | None,
    entity_name: str,
    body: object = None,
) -> str:
    """Return a user-facing message for a failed call.

    A server-provided `errorCode` takes precedence over the status code, and
    `VALIDATION_ERROR` bodies contribute their field messages.
    """
    if isinstance(body, dict):
        error_code = body.get("errorCode")
        description = body.get("errorDescription")
        if error_code == "VALIDATION_ERROR":
            messages = _validation_messages(body.get("validationErrors"))
            if messages:
                return ", ".join(messages)
        if isinstance(error_code, str) and error_code in _ERROR_CODE_MESSAGES:
            return _ERROR_CODE_MESSAGES[error_code].format(entity=entity_name)
        if isinstance(description, str) and description:
            return description

    if status_code is None:
        return "Connection error: the server could not be reached"
    if status_code == 404:
        return f"{entity_name} not found"
    template = _STATUS_MESSAGES.get(status_code)
    if template is not None:
        return template.format(entity=entity_name)
    return f"Unexpected error (HTTP {status_code})"


def _validation_messages(raw: object) -> list[str]:
    if not isinstance(raw, dict):
        return []
    messages: list[str] = []
    for value in raw.values():
        if isinstance(value, list):
            messages.extend(str(item) for item in value)
        elif value:
            messages.append(str(value))
    return messages
