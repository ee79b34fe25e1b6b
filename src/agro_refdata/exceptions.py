"""Custom exceptions for the reference-data access layer.

Every failure that leaves the layer is typed with its classification so that
presentation code can render something meaningful without re-deriving it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .domain.errors import ErrorClassification, ErrorKind, Severity
    from .domain.operations import OperationContext
    from .domain.transport import TransportResponse


class AccessLayerError(Exception):
    """Base exception for all access-layer errors."""

    pass


class TransportError(AccessLayerError):
    """Raised by a transport when a call fails.

    `response` is `None` when no response was received (connection failure,
    timeout); otherwise it holds the non-2xx response. `transient` is False for
    failures without a response that repeating the call cannot fix, such as an
    invalid URL or a redirect loop.
    """

    def __init__(
        self,
        message: str,
        *,
        response: TransportResponse | None = None,
        transient: bool = True,
    ) -> None:
        self.response = response
        self.transient = transient
        super().__init__(message)

    @property
    def status_code(self) -> int | None:
        return None if self.response is None else self.response.status_code


class ReferenceDataError(AccessLayerError):
    """Final, classified failure of a reference-data operation."""

    def __init__(
        self,
        message: str,
        *,
        classification: ErrorClassification,
        context: OperationContext,
        attempts: int,
        status_code: int | None = None,
        details: object = None,
    ) -> None:
        self.message = message
        self.classification = classification
        self.context = context
        self.attempts = attempts
        self.status_code = status_code
        self.details = details
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def severity(self) -> Severity:
        return self.classification.severity

    @property
    def retries(self) -> int:
        """Number of retries attempted after the initial call."""
        return max(0, self.attempts - 1)

    def __str__(self) -> str:
        status = "no response" if self.status_code is None else f"HTTP {self.status_code}"
        return (
            f"{self.context.label()} failed: {self.message} "
            f"(kind={self.kind.value}, {status}, attempts={self.attempts})"
        )


class ConcurrencyConflictError(ReferenceDataError):
    """Raised when a conditional write is rejected because the version changed.

    Carries the server's current version and the payload the caller tried to
    write so the caller can offer a reload-and-retry flow.
    """

    def __init__(
        self,
        message: str,
        *,
        classification: ErrorClassification,
        context: OperationContext,
        current_version: str | None,
        submitted_payload: object,
        submitted_version: str | None = None,
        status_code: int | None = 412,
        details: object = None,
    ) -> None:
        self.current_version = current_version
        self.submitted_payload = submitted_payload
        self.submitted_version = submitted_version
        super().__init__(
            message,
            classification=classification,
            context=context,
            attempts=1,
            status_code=status_code,
            details=details,
        )


class OperationCancelledError(AccessLayerError):
    """Raised when an operation's cancellation token fires or its deadline passes."""

    def __init__(self, operation: str, *, attempts: int = 0, reason: str = "cancelled") -> None:
        self.operation = operation
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"{operation} {reason} after {attempts} attempt(s).")


class InvalidPayloadError(AccessLayerError):
    """Raised when a successful response does not match the expected shape."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} returned an unexpected payload: {reason}")


class UnknownResourceError(AccessLayerError):
    """Raised when a resource name is not in the configured catalogue."""

    def __init__(self, name: str, known: tuple[str, ...] = ()) -> None:
        self.name = name
        self.known = known
        hint = f" Known resources: {', '.join(known)}." if known else ""
        super().__init__(f"Unknown reference resource: {name!r}.{hint}")


class ClientClosedError(AccessLayerError):
    """Raised when a client is used after its owner has been closed."""

    def __init__(self) -> None:
        super().__init__("The reference client registry has been closed.")


class ConfigFileNotFoundError(AccessLayerError):
    """Raised when a requested config file does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(AccessLayerError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {reason}")


class ConfigFileValidationError(AccessLayerError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} is invalid: {reason}")


class MissingBaseUrlError(AccessLayerError):
    """Raised when no backend base URL is configured."""

    def __init__(self) -> None:
        super().__init__("REFDATA_BASE_URL must be set to reach the reference-data backend.")
