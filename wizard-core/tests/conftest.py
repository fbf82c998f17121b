"""Test fixtures and fakes for the wizard core tests."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

import pytest

from wizard.flow import API_CONFIG, API_DEFAULT_PATH, API_INSTALLATION_STATUS
from wizard.interfaces import HostBridge
from wizard.navigation import History
from wizard.transport import TransportError

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

    from wizard.models import FlowState


CATALOG: dict[str, Any] = {
    "general": {"name": "Example"},
    "installing_message": "<b>Sit back and relax.</b>",
    "packages": [
        {"name": "core", "description": "Core files", "default": True},
        {"name": "extras", "description": "Extra content", "default": False},
        {"name": "docs", "description": "Documentation", "default": None},
    ],
}


def build_status(
    *,
    preexisting: bool = False,
    launcher: bool = False,
    database: tuple[str, ...] = (),
    install_path: str | None = None,
) -> dict[str, Any]:
    """Build an ``/api/installation-status`` answer."""
    return {
        "preexisting_install": preexisting,
        "install_path": install_path,
        "is_launcher": launcher,
        "database": [{"name": name, "version": "1.0", "files": []} for name in database],
    }


class FakeStream:
    """Scripted stand-in for StreamingRequest.

    The script is a list of ``("event", data)``, ``("success", raw_text)`` and
    ``("failure", error)`` steps, replayed in order by ``send()``.
    """

    def __init__(self, script: list[tuple[str, Any]]) -> None:
        self.script = script
        self.event_callbacks: list[Callable[[Any], None]] = []
        self.success_callbacks: list[Callable[[str], None]] = []
        self.failure_callbacks: list[Callable[[TransportError], None]] = []

    def on_event(self, callback: Callable[[Any], None]) -> FakeStream:
        self.event_callbacks.append(callback)
        return self

    def on_complete(
        self,
        success: Callable[[str], None],
        failure: Callable[[TransportError], None],
    ) -> FakeStream:
        self.success_callbacks.append(success)
        self.failure_callbacks.append(failure)
        return self

    async def send(self) -> None:
        for kind, value in self.script:
            if kind == "event":
                for callback in self.event_callbacks:
                    callback(value)
            elif kind == "success":
                for callback in self.success_callbacks:
                    callback(value)
            elif kind == "failure":
                for callback in self.failure_callbacks:
                    callback(value)


class FakeApiClient:
    """In-memory ApiClient replacement.

    ``responses`` maps a path to the JSON answer, or to an exception that
    ``fetch_json`` raises. ``streams`` maps a path to a FakeStream script.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        streams: dict[str, list[tuple[str, Any]]] | None = None,
    ) -> None:
        self.responses = responses or {}
        self.streams = streams or {}
        self.requests: list[tuple[str, Any]] = []

    async def fetch_json(self, path: str, data: Any = None) -> Any:
        self.requests.append((path, data))
        if path not in self.responses:
            raise TransportError(f"HTTP error 404: Not Found ({path})", status=404)
        value = self.responses[path]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    def open_stream(self, path: str, data: Any = None) -> FakeStream:
        self.requests.append((path, data))
        return FakeStream(self.streams.get(path, [("success", "")]))

    @property
    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]


def build_client(
    status: dict[str, Any] | Exception,
    *,
    config: dict[str, Any] | Exception | None = None,
    default_path: dict[str, Any] | Exception | None = None,
    streams: dict[str, list[tuple[str, Any]]] | None = None,
) -> FakeApiClient:
    """Build a backend that serves ``status`` and, by default, CATALOG."""
    responses: dict[str, Any] = {
        API_INSTALLATION_STATUS: status,
        API_CONFIG: CATALOG if config is None else config,
    }
    if default_path is not None:
        responses[API_DEFAULT_PATH] = default_path
    return FakeApiClient(responses, streams)


class RecordingHost(HostBridge):
    """Host bridge that only records what it was asked to do."""

    def __init__(self) -> None:
        self.exit_count = 0
        self.dir_requests: list[str] = []

    def exit(self) -> None:
        self.exit_count += 1

    def select_install_dir(self, callback_name: str) -> None:
        self.dir_requests.append(callback_name)


@pytest.fixture
def catalog() -> dict[str, Any]:
    """A copy of the example package catalog."""
    return copy.deepcopy(CATALOG)


@pytest.fixture
def make_status() -> Callable[..., dict[str, Any]]:
    """Factory for installation status answers."""
    return build_status


@pytest.fixture
def make_client() -> Callable[..., FakeApiClient]:
    """Factory for in-memory backends."""
    return build_client


@pytest.fixture
def host() -> RecordingHost:
    """A fresh recording host."""
    return RecordingHost()


@pytest.fixture
def history() -> History:
    """A fresh navigation history."""
    return History()


@pytest.fixture
def visited(history: History) -> list[FlowState]:
    """Every state the history was moved to, including replaced ones."""
    states: list[FlowState] = []
    history.add_listener(lambda entry: states.append(entry.state))
    return states


@pytest.fixture(autouse=True)
def isolated_config_dir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Isolate tests from the real user configuration directory."""
    config_home = tmp_path / "xdg_config"
    config_home.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    yield config_home
