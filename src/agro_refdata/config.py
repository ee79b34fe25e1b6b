"""Centralised, injectable configuration for the reference-data access layer."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .infrastructure.resilience import RetryConfig


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class MinimumNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a number of at least a minimum."""

    def __init__(self, env_name: str, minimum: float) -> None:
        super().__init__(f"{env_name} must be a number >= {minimum:g}.")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for the reference client stack.

    Load from environment with `ClientConfig.from_env()` or construct directly for testing.
    """

    # Backend
    base_url: str = ""
    auth_token: str = ""
    timeout_seconds: float = 30.0

    # Cache
    cache_ttl_seconds: float = 300.0
    search_ttl_seconds: float = 120.0
    cache_max_size: int = 100

    # Retry (reads only; writes are never retried)
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    max_delay_seconds: float = 30.0

    # Resource catalogue
    resources_path: str = ""

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            ClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            base_url=os.getenv("REFDATA_BASE_URL", "").strip(),
            auth_token=os.getenv("REFDATA_AUTH_TOKEN", "").strip(),
            timeout_seconds=_parse_positive_float(
                os.getenv("REFDATA_TIMEOUT_SECONDS", "30"), env_name="REFDATA_TIMEOUT_SECONDS"
            ),
            cache_ttl_seconds=_parse_positive_float(
                os.getenv("REFDATA_CACHE_TTL_SECONDS", "300"),
                env_name="REFDATA_CACHE_TTL_SECONDS",
            ),
            search_ttl_seconds=_parse_positive_float(
                os.getenv("REFDATA_SEARCH_TTL_SECONDS", "120"),
                env_name="REFDATA_SEARCH_TTL_SECONDS",
            ),
            cache_max_size=int(
                _parse_positive_float(
                    os.getenv("REFDATA_CACHE_MAX_SIZE", "100"), env_name="REFDATA_CACHE_MAX_SIZE"
                )
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("REFDATA_MAX_RETRIES", "3"), env_name="REFDATA_MAX_RETRIES"
            ),
            base_delay_seconds=_parse_float_at_least(
                os.getenv("REFDATA_BASE_DELAY_SECONDS", "1"),
                env_name="REFDATA_BASE_DELAY_SECONDS",
                minimum=0.0,
            ),
            backoff_multiplier=_parse_float_at_least(
                os.getenv("REFDATA_BACKOFF_MULTIPLIER", "2"),
                env_name="REFDATA_BACKOFF_MULTIPLIER",
                minimum=1.0,
            ),
            max_delay_seconds=_parse_float_at_least(
                os.getenv("REFDATA_MAX_DELAY_SECONDS", "30"),
                env_name="REFDATA_MAX_DELAY_SECONDS",
                minimum=0.0,
            ),
            resources_path=os.getenv("REFDATA_RESOURCES_PATH", "").strip(),
        )

    def with_overrides(
        self,
        *,
        base_url: str | None = None,
        resources_path: str | None = None,
        max_retries: int | None = None,
    ) -> Self:
        """Return a new config with specified overrides (for CLI options)."""
        return replace(
            self,
            base_url=self.base_url if base_url is None else base_url.strip(),
            resources_path=self.resources_path
            if resources_path is None
            else resources_path.strip(),
            max_retries=self.max_retries if max_retries is None else max_retries,
        )

    def retry_config(self) -> RetryConfig:
        """Build the read-path retry configuration."""
        return RetryConfig(
            max_retries=self.max_retries,
            base_delay_seconds=self.base_delay_seconds,
            backoff_multiplier=self.backoff_multiplier,
            max_delay_seconds=self.max_delay_seconds,
        )


def _parse_positive_float(value: str, *, env_name: str) -> float:
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_float_at_least(value: str, *, env_name: str, minimum: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise MinimumNumberEnvVarError(env_name, minimum) from exc
    if not parsed >= minimum:
        raise MinimumNumberEnvVarError(env_name, minimum)
    return parsed
