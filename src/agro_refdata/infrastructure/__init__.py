"""Concrete infrastructure implementations and shared helpers."""

from .cache import CacheEntry, CacheStats, TtlCache
from .concurrency import ConcurrencyGuard, extract_version
from .http import RequestsTransport
from .resilience import CancellationToken, RetryConfig, RetryPolicy, delay_for, should_retry

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CancellationToken",
    "ConcurrencyGuard",
    "RequestsTransport",
    "RetryConfig",
    "RetryPolicy",
    "TtlCache",
    "delay_for",
    "extract_version",
    "should_retry",
]
