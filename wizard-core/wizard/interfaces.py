"""Collaborator interfaces for the install flow.

The flow controller never renders anything or talks to the hosting process
itself. It is handed a Navigator, which moves between flow states, and a
HostBridge, which reaches the process that embeds the wizard.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import FlowState
    from .navigation import HistoryEntry


class Navigator(ABC):
    """Moves the wizard between flow states."""

    @abstractmethod
    def transition(
        self,
        state: FlowState,
        params: dict[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> None:
        """Show ``state``.

        Args:
            state: The state to enter.
            params: State parameters, e.g. ``{"message": ...}`` for errors.
            replace: Replace the current history entry instead of pushing.
        """
        ...

    @abstractmethod
    def go_back(self) -> None:
        """Return to the previous history entry."""
        ...

    @property
    @abstractmethod
    def can_go_back(self) -> bool:
        """Whether there is a previous history entry."""
        ...

    @property
    @abstractmethod
    def current(self) -> HistoryEntry | None:
        """The entry being shown, or None before the first transition."""
        ...


class HostBridge(ABC):
    """Capabilities of the process hosting the wizard."""

    @abstractmethod
    def exit(self) -> None:
        """Ask the host to end the wizard (and launch the target, if any)."""
        ...

    @abstractmethod
    def select_install_dir(self, callback_name: str) -> None:
        """Ask the host for a directory.

        The host answers later by invoking the wizard callback named
        ``callback_name`` with the chosen path.
        """
        ...
