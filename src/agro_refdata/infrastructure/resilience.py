"""Resilience utilities: retry configuration, backoff and cancellation.

Usage example:
    from agro_refdata.infrastructure.resilience import (
        CancellationToken,
        RetryConfig,
        RetryPolicy,
    )

    policy = RetryPolicy(RetryConfig(max_retries=3, base_delay_seconds=1.0))
    token = CancellationToken.with_timeout(10.0)
    policy.delay_for(2)  # 4.0
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Self, TypeVar

from typing_extensions import override

from ..domain.errors import ErrorClassification, classify, describe
from ..domain.operations import OperationContext
from ..exceptions import OperationCancelledError, ReferenceDataError, TransportError
from ..protocols import Clock
from ..protocols import RetryPolicy as RetryPolicyProtocol

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUSES: frozenset[int] = frozenset({500, 502, 503, 504})


@dataclass(frozen=True)
class RetryConfig:
    """Immutable retry settings, supplied per call or defaulted.

    `retryable_statuses` narrows which server statuses may be retried on top
    of the classification's own retry eligibility.
    """

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    retryable_statuses: frozenset[int] = DEFAULT_RETRYABLE_STATUSES
    max_delay_seconds: float | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0.")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0.")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1.")
        if self.max_delay_seconds is not None and self.max_delay_seconds < 0:
            raise ValueError("max_delay_seconds must be >= 0.")

    @classmethod
    def no_retry(cls) -> Self:
        """Policy for non-idempotent writes: a single attempt, never replayed."""
        return cls(max_retries=0)


def should_retry(
    classification: ErrorClassification,
    attempt: int,
    config: RetryConfig,
    status_code: int | None = None,
) -> bool:
    """Return True iff the failure is retryable and the retry budget is not spent."""
    if not classification.retryable:
        return False
    if status_code is not None and status_code not in config.retryable_statuses:
        return False
    return attempt < config.max_retries


def delay_for(attempt: int, config: RetryConfig) -> float:
    """Return `base_delay * multiplier ** attempt`, capped when a cap is configured."""
    delay = config.base_delay_seconds * (config.backoff_multiplier**attempt)
    if config.max_delay_seconds is not None:
        delay = min(delay, config.max_delay_seconds)
    return float(delay)


@dataclass(frozen=True)
class RetryPolicy(RetryPolicyProtocol):
    """Exponential backoff retry policy bound to one `RetryConfig`."""

    config: RetryConfig = field(default_factory=RetryConfig)

    @override
    def should_retry(
        self,
        classification: ErrorClassification,
        attempt: int,
        status_code: int | None = None,
    ) -> bool:
        return should_retry(classification, attempt, self.config, status_code)

    @override
    def delay_for(self, attempt: int) -> float:
        return delay_for(attempt, self.config)


class CancellationToken:
    """Cancellation signal shared by every step of one logical operation.

    A token may carry a deadline; once the deadline passes the token reports
    itself cancelled. Backoff waits use `wait`, so cancelling (or reaching the
    deadline) during a backoff prevents the next attempt from firing.
    """

    def __init__(self, *, deadline: float | None = None, clock: Clock = time.monotonic) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock

    @classmethod
    def with_timeout(cls, seconds: float, clock: Clock = time.monotonic) -> Self:
        return cls(deadline=clock() + seconds, clock=clock)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._deadline_passed()

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        if self._deadline_passed():
            return "timed out"
        return "active"

    def cancel(self) -> None:
        self._event.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self, operation: str, *, attempts: int = 0) -> None:
        if self.cancelled:
            raise OperationCancelledError(operation, attempts=attempts, reason=self.reason)

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; return True if the token fired first."""
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            self._event.wait(remaining)
            return True
        return self._event.wait(seconds)

    def _deadline_passed(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline


def run_with_retry(
    call: Callable[[OperationContext], T],
    *,
    context: OperationContext,
    policy: RetryPolicy,
    token: CancellationToken | None,
    logger: logging.Logger,
) -> T:
    """Run `call` until it succeeds, fails terminally, or the budget is spent.

    Each attempt is a fresh call receiving a fresh `OperationContext`. The
    final failure is raised as `ReferenceDataError` with its classification
    and the number of attempts made.

    Raises:
        ReferenceDataError: Terminal or exhausted failure.
        OperationCancelledError: The token fired before or between attempts.
    """
    attempt_context = context
    while True:
        if token is not None:
            token.raise_if_cancelled(context.label(), attempts=attempt_context.attempt)
        try:
            return call(attempt_context)
        except TransportError as exc:
            classification = classify(exc)
            status_code = exc.status_code
            attempts = attempt_context.attempt + 1
            if policy.should_retry(classification, attempt_context.attempt, status_code):
                delay = policy.delay_for(attempt_context.attempt)
                logger.warning(
                    "%s attempt %s failed (%s); retrying in %.2fs",
                    context.label(),
                    attempts,
                    classification.kind.value,
                    delay,
                )
                if token is not None:
                    if delay > 0 and token.wait(delay):
                        raise OperationCancelledError(
                            context.label(), attempts=attempts, reason=token.reason
                        ) from exc
                elif delay > 0:
                    time.sleep(delay)
                attempt_context = attempt_context.next_attempt()
                continue

            body = exc.response.body if exc.response is not None else None
            if exc.response is None and not exc.transient:
                message = f"Request could not be sent: {exc}"
            else:
                message = describe(status_code, context.entity_name, body)
            log = logger.error if attempts > 1 or classification.retryable else logger.warning
            log(
                "%s failed after %s attempt(s): %s (kind=%s)",
                context.label(),
                attempts,
                message,
                classification.kind.value,
            )
            raise ReferenceDataError(
                message,
                classification=classification,
                context=attempt_context,
                attempts=attempts,
                status_code=status_code,
                details=body,
            ) from exc
