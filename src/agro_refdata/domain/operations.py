"""Per-call operation metadata."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Self


class OperationKind(StrEnum):
    READ = "read"
    SEARCH = "search"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"

    @property
    def is_write(self) -> bool:
        return self not in (OperationKind.READ, OperationKind.SEARCH)


@dataclass(frozen=True)
class OperationContext:
    """Ephemeral description of one logical call; a new value per attempt."""

    entity_name: str
    operation_kind: OperationKind
    attempt: int = 0
    description: str = ""

    def next_attempt(self) -> Self:
        return replace(self, attempt=self.attempt + 1)

    def label(self) -> str:
        text = self.description or f"{self.operation_kind.value} {self.entity_name}"
        return text
