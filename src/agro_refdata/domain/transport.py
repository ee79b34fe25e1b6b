"""Value types exchanged with the HTTP transport."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field


def _empty_headers() -> dict[str, str]:
    return {}


@dataclass(frozen=True)
class TransportResponse:
    """A completed HTTP exchange, successful or not."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=_empty_headers)
    body: object = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def body_field(self, name: str) -> object:
        if isinstance(self.body, Mapping):
            return self.body.get(name)
        return None

    def body_summary(self, limit: int = 300) -> str:
        """Return a compact single-line rendering of the body for error reporting."""
        if self.body is None:
            return ""
        if isinstance(self.body, str):
            text = self.body
        else:
            try:
                text = json.dumps(self.body, ensure_ascii=False, default=str)
            except (TypeError, ValueError):
                text = repr(self.body)
        text = " ".join(text.split())
        if len(text) > limit:
            text = text[:limit] + "..."
        return text
