"""Debounced, cancel-previous search over a reference client.

Each new term cancels the in-flight search of the previous term and starts
a fresh one once the debounce interval has elapsed. Repeating the current
term is ignored.

Usage example:
    from agro_refdata.application.search import DebouncedSearch

    search = DebouncedSearch(client, debounce_seconds=0.3, on_result=render)
    search.submit("bra")
    search.submit("braz")  # cancels the pending "bra" search
    search.close()
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from ..exceptions import AccessLayerError, OperationCancelledError
from ..infrastructure.resilience import CancellationToken
from ..observability import get_logger

logger = get_logger("agro_refdata.application.search")

DEFAULT_DEBOUNCE_SECONDS = 0.3


class TermSearcher(Protocol):
    def buscar_por_termo(
        self, termo: str, *, token: CancellationToken | None = None
    ) -> list[object]: ...


class TimerFactory(Protocol):
    def __call__(self, interval: float, function: Callable[[], None]) -> threading.Timer: ...


def _default_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class DebouncedSearch:
    """Search runner where only the latest submitted term may deliver results."""

    def __init__(
        self,
        searcher: TermSearcher,
        *,
        on_result: Callable[[str, list[object]], None],
        on_error: Callable[[str, AccessLayerError], None] | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: TimerFactory = _default_timer,
    ) -> None:
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds must be >= 0.")
        self.searcher = searcher
        self.on_result = on_result
        self.on_error = on_error
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._token: CancellationToken | None = None
        self._last_term: str | None = None
        self._closed = False

    def submit(self, term: str) -> bool:
        """Schedule a search for `term`; returns False when it was ignored."""
        normalised = term.strip()
        with self._lock:
            if self._closed or normalised == self._last_term:
                return False
            self._cancel_pending()
            self._last_term = normalised
            token = CancellationToken()
            self._token = token
            timer = self._timer_factory(
                self.debounce_seconds, lambda: self._run(normalised, token)
            )
            self._timer = timer
        timer.start()
        return True

    def cancel(self) -> None:
        """Cancel the pending or in-flight search, if any."""
        with self._lock:
            self._cancel_pending()
            self._last_term = None

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _run(self, term: str, token: CancellationToken) -> None:
        if token.cancelled:
            return
        try:
            items = self.searcher.buscar_por_termo(term, token=token)
        except OperationCancelledError:
            logger.debug("Search for %r superseded", term)
            return
        except AccessLayerError as exc:
            if token.cancelled:
                return
            if self.on_error is None:
                raise
            self.on_error(term, exc)
            return
        if not token.cancelled:
            self.on_result(term, items)
