"""Typed parsing and validation for the reference resource catalogue."""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .domain.resources import ResourceDescriptor
from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


class _ResourceModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    path: str
    cache_ttl_seconds: float | None = None
    search_ttl_seconds: float | None = None

    @field_validator("name", "path")
    @classmethod
    def _validate_non_empty_text(cls, value: str) -> str:
        text = value.strip()
        if not text.strip("/"):
            raise ValueError
        return text

    @field_validator("cache_ttl_seconds", "search_ttl_seconds")
    @classmethod
    def _validate_positive_ttl(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value


class _CatalogueModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    resources: tuple[_ResourceModel, ...]

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value

    @field_validator("resources")
    @classmethod
    def _validate_unique_names(
        cls, value: tuple[_ResourceModel, ...]
    ) -> tuple[_ResourceModel, ...]:
        names = [resource.name.lower() for resource in value]
        if not names or len(set(names)) != len(names):
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_resource_catalogue(
    *,
    path: Path,
    default_ttl_seconds: float,
    default_search_ttl_seconds: float,
) -> tuple[ResourceDescriptor, ...]:
    """Load and validate a TOML resource catalogue."""
    if not path.exists():
        raise ConfigFileNotFoundError(str(path))

    raw_payload = path.read_text(encoding="utf-8")
    try:
        payload: object = tomllib.loads(raw_payload)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _CatalogueModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    return tuple(
        ResourceDescriptor(
            name=resource.name,
            base_path=resource.path,
            cache_ttl_seconds=resource.cache_ttl_seconds or default_ttl_seconds,
            search_ttl_seconds=resource.search_ttl_seconds or default_search_ttl_seconds,
        )
        for resource in model.resources
    )
