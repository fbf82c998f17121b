"""In-memory navigation history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from .interfaces import Navigator

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import FlowState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """A visited state and its parameters."""

    state: FlowState
    params: dict[str, Any] = field(default_factory=dict)


class History(Navigator):
    """Navigator backed by a push/replace history stack.

    Listeners are called with the new current entry after every change,
    which is how a front-end learns what to render.
    """

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._listeners: list[Callable[[HistoryEntry], None]] = []
        self._log = logger.bind(component="history")

    @property
    def current(self) -> HistoryEntry | None:
        """The entry being shown, or None before the first transition."""
        return self._entries[-1] if self._entries else None

    @property
    def entries(self) -> list[HistoryEntry]:
        """Copy of the history, oldest first."""
        return list(self._entries)

    @property
    def can_go_back(self) -> bool:
        return len(self._entries) > 1

    def add_listener(self, listener: Callable[[HistoryEntry], None]) -> None:
        """Register a callback for navigation changes."""
        self._listeners.append(listener)

    def transition(
        self,
        state: FlowState,
        params: dict[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> None:
        entry = HistoryEntry(state=state, params=dict(params or {}))
        if replace and self._entries:
            self._entries[-1] = entry
        else:
            self._entries.append(entry)

        self._log.debug("transition", state=state.value, replace=replace)
        self._notify(entry)

    def go_back(self) -> None:
        if not self.can_go_back:
            self._log.warning("go_back_without_history")
            return

        self._entries.pop()
        entry = self._entries[-1]
        self._log.debug("went_back", state=entry.state.value)
        self._notify(entry)

    def _notify(self, entry: HistoryEntry) -> None:
        for listener in self._listeners:
            listener(entry)
