"""Pydantic-based validation helpers for inbound reference-data payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from typing_extensions import TypedDict

from pydantic import TypeAdapter, ValidationError

from ..domain.resources import SearchResult
from ..exceptions import InvalidPayloadError

if TYPE_CHECKING:
    from pydantic import BaseModel


SchemaT = TypeVar("SchemaT")


class SearchResponseInput(TypedDict):
    items: list[object]
    total: int


def validate_as(schema: type[SchemaT], payload: object, *, operation: str) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        raise InvalidPayloadError(
            operation, f"expected {schema}: {exc.error_count()} error(s)"
        ) from exc


def parse_item(payload: object, model: type[BaseModel] | None, *, operation: str) -> object:
    """Validate one item against the resource model; pass through without one."""
    if model is None:
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InvalidPayloadError(
            operation, f"item does not match {model.__name__}: {exc.error_count()} error(s)"
        ) from exc


def parse_items(payload: object, model: type[BaseModel] | None, *, operation: str) -> list[object]:
    items = validate_as(list[object], payload, operation=operation)
    return [parse_item(item, model, operation=operation) for item in items]


def parse_search_result(
    payload: object, model: type[BaseModel] | None, *, operation: str
) -> SearchResult:
    envelope = validate_as(SearchResponseInput, payload, operation=operation)
    return SearchResult(
        items=[parse_item(item, model, operation=operation) for item in envelope["items"]],
        total=envelope["total"],
    )


def dump_payload(payload: object) -> object:
    """Render a write payload as JSON-compatible data (pydantic models by alias)."""
    model_dump = getattr(payload, "model_dump", None)
    if callable(model_dump):
        return model_dump(mode="json", by_alias=True)
    return payload
