"""Tests for ClientConfig behaviour."""

import pytest

import agro_refdata.config as config_module
from agro_refdata.config import (
    ClientConfig,
    MinimumNumberEnvVarError,
    NonNegativeIntegerEnvVarError,
    PositiveNumberEnvVarError,
)


def _patch_env(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    def fake_getenv(key: str, default: str = "") -> str:
        return env.get(key, default)

    def fake_load_dotenv(dotenv_path: str | None = None) -> bool:
        _ = dotenv_path
        return True

    monkeypatch.setattr(config_module.os, "getenv", fake_getenv)
    monkeypatch.setattr(config_module, "load_dotenv", fake_load_dotenv)


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(monkeypatch, {})

    config = ClientConfig.from_env()

    assert config == ClientConfig()
    assert config.cache_ttl_seconds == 300.0
    assert config.search_ttl_seconds == 120.0
    assert config.max_retries == 3


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_env(
        monkeypatch,
        {
            "REFDATA_BASE_URL": " https://api.example.com ",
            "REFDATA_AUTH_TOKEN": "secret",
            "REFDATA_TIMEOUT_SECONDS": "5",
            "REFDATA_CACHE_TTL_SECONDS": "600",
            "REFDATA_SEARCH_TTL_SECONDS": "30",
            "REFDATA_CACHE_MAX_SIZE": "25",
            "REFDATA_MAX_RETRIES": "0",
            "REFDATA_BASE_DELAY_SECONDS": "0.5",
            "REFDATA_BACKOFF_MULTIPLIER": "3",
            "REFDATA_MAX_DELAY_SECONDS": "10",
            "REFDATA_RESOURCES_PATH": "config/resources.toml",
        },
    )

    config = ClientConfig.from_env()

    assert config.base_url == "https://api.example.com"
    assert config.auth_token == "secret"
    assert config.timeout_seconds == 5.0
    assert config.cache_ttl_seconds == 600.0
    assert config.search_ttl_seconds == 30.0
    assert config.cache_max_size == 25
    assert config.max_retries == 0
    assert config.resources_path == "config/resources.toml"

    retry = config.retry_config()
    assert retry.max_retries == 0
    assert retry.base_delay_seconds == 0.5
    assert retry.backoff_multiplier == 3.0
    assert retry.max_delay_seconds == 10.0


@pytest.mark.parametrize("value", ["0", "-1", "soon"])
def test_from_env_rejects_non_positive_ttl(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    _patch_env(monkeypatch, {"REFDATA_CACHE_TTL_SECONDS": value})

    with pytest.raises(PositiveNumberEnvVarError, match="REFDATA_CACHE_TTL_SECONDS"):
        ClientConfig.from_env()


@pytest.mark.parametrize("value", ["-1", "2.5", "many"])
def test_from_env_rejects_invalid_retry_budget(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    _patch_env(monkeypatch, {"REFDATA_MAX_RETRIES": value})

    with pytest.raises(NonNegativeIntegerEnvVarError, match="REFDATA_MAX_RETRIES"):
        ClientConfig.from_env()


@pytest.mark.parametrize(
    ("env_name", "value"),
    [
        ("REFDATA_BASE_DELAY_SECONDS", "-1"),
        ("REFDATA_BASE_DELAY_SECONDS", "later"),
        ("REFDATA_BACKOFF_MULTIPLIER", "0.5"),
        ("REFDATA_BACKOFF_MULTIPLIER", "nan"),
        ("REFDATA_MAX_DELAY_SECONDS", "-0.1"),
    ],
)
def test_from_env_rejects_invalid_backoff_settings(
    monkeypatch: pytest.MonkeyPatch, env_name: str, value: str
) -> None:
    _patch_env(monkeypatch, {env_name: value})

    with pytest.raises(MinimumNumberEnvVarError, match=env_name):
        ClientConfig.from_env()


def test_with_overrides_preserves_fields() -> None:
    base = ClientConfig(base_url="https://a", auth_token="t", cache_max_size=7)

    updated = base.with_overrides(base_url=" https://b ", max_retries=1)

    assert updated.base_url == "https://b"
    assert updated.max_retries == 1
    assert updated.auth_token == "t"
    assert updated.cache_max_size == 7
    assert updated.resources_path == ""
    assert base.base_url == "https://a"
