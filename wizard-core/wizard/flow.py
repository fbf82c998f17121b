"""Install flow controller.

This module sequences the wizard: load the installation status and the
package catalog, let the user pick components and a location, run the
install or uninstall stream, and finish in a completion or error state.

State routing after the config has loaded:

    preexisting install + launcher  -> installing (install)
    preexisting install             -> modify_existing
    fresh install                   -> package_selection

In launcher mode the wizard only applies updates before the target
application starts, so every outcome, good or bad, ends in an exit signal
and no error is ever shown.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from .models import (
    DefaultPath,
    FlowState,
    InstallationMetadata,
    InstallerConfig,
    InstallKind,
    InstallRequest,
)
from .reconcile import reconcile
from .streaming import ErrorEvent, StatusEvent, parse_event
from .transport import TransportError

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from .interfaces import HostBridge, Navigator
    from .transport import ApiClient

logger = structlog.get_logger(__name__)

API_INSTALLATION_STATUS = "/api/installation-status"
API_CONFIG = "/api/config"
API_DEFAULT_PATH = "/api/default-path"
API_START_INSTALL = "/api/start-install"
API_UNINSTALL = "/api/uninstall"

INSTALL_ENDPOINTS = {
    InstallKind.INSTALL: API_START_INSTALL,
    InstallKind.UNINSTALL: API_UNINSTALL,
}

# Name under which the host answers a directory request
SELECT_INSTALL_DIR_CALLBACK = "select_install_dir"

DEFAULT_PROGRESS_MESSAGE = "Please wait..."


@dataclass
class FlowSession:
    """Everything the wizard knows during one session.

    Owned by InstallFlowController, which is its only writer. Front-ends
    read it to render the current state.
    """

    metadata: InstallationMetadata = field(default_factory=InstallationMetadata)
    config: InstallerConfig = field(default_factory=InstallerConfig)
    install_location: str = ""
    state: FlowState = FlowState.CONFIG_LOADING
    params: dict[str, Any] = field(default_factory=dict)
    install_kind: InstallKind | None = None
    progress_percent: float = 0.0
    progress_message: str = DEFAULT_PROGRESS_MESSAGE
    failed: bool = False
    exit_requested: bool = False

    @property
    def is_launcher(self) -> bool:
        return self.metadata.is_launcher

    @property
    def error_message(self) -> str | None:
        if self.state != FlowState.ERROR_DISPLAY:
            return None
        return self.params.get("message")


class InstallFlowController:
    """Drives the wizard through its states.

    The controller is the only component that changes the session. It talks
    to the backend through an ApiClient, announces state changes to a
    Navigator and reaches the embedding process through a HostBridge.

    Example:
        >>> controller = InstallFlowController(client, History(), host)
        >>> await controller.load_config()
        >>> controller.set_package_selected("extras", True)
        >>> await controller.install(InstallKind.INSTALL)
    """

    def __init__(
        self,
        client: ApiClient,
        navigator: Navigator,
        host: HostBridge,
        session: FlowSession | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Transport to the installer backend.
            navigator: Receives every state transition.
            host: Exit signal and directory picker of the embedding process.
            session: Optional preexisting session state.
        """
        self.client = client
        self.navigator = navigator
        self.host = host
        self.session = session or FlowSession()
        self._background: set[asyncio.Task[None]] = set()
        self._progress_listeners: list[Callable[[FlowSession], None]] = []
        self._host_callbacks: dict[str, Callable[[str], None]] = {
            SELECT_INSTALL_DIR_CALLBACK: self.set_install_location,
        }
        self._log = logger.bind(component="install_flow")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(
        self,
        state: FlowState,
        params: dict[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> None:
        params = dict(params or {})
        self.session.state = state
        self.session.params = params
        self._log.info("state_changed", state=state.value, replace=replace, **params)
        self.navigator.transition(state, params, replace=replace)

    def _show_error(self, message: str) -> None:
        self._transition(FlowState.ERROR_DISPLAY, {"message": message}, replace=True)

    def _exit(self) -> None:
        if self.session.exit_requested:
            self._log.debug("exit_already_requested")
            return
        self.session.exit_requested = True
        self._log.info("exit_requested")
        self.host.exit()

    def go_back(self) -> bool:
        """Return to the previous state if history allows it.

        Returns:
            True if the wizard went back.
        """
        if not self.navigator.can_go_back:
            return False

        self.navigator.go_back()
        entry = self.navigator.current
        if entry is not None:
            self.session.state = entry.state
            self.session.params = dict(entry.params)
        self._log.info("went_back", state=self.session.state.value)
        return True

    # ------------------------------------------------------------------
    # Config loading
    # ------------------------------------------------------------------

    async def load_config(self) -> None:
        """Fetch installation status and config, then route to the next state."""
        self._transition(FlowState.CONFIG_LOADING)

        try:
            status = await self.client.fetch_json(API_INSTALLATION_STATUS)
            self.session.metadata = InstallationMetadata.model_validate(status)

            config = await self.client.fetch_json(API_CONFIG)
            self.session.config = InstallerConfig.model_validate(config)
        except (TransportError, ValidationError) as e:
            self._config_failed(e)
            return

        self._log.info(
            "config_loaded",
            packages=len(self.session.config.packages),
            preexisting_install=self.session.metadata.preexisting_install,
            is_launcher=self.session.is_launcher,
        )
        await self._choose_next_state()

    def _config_failed(self, error: Exception) -> None:
        message = f"Got error while downloading config: {error}"
        self._log.error("config_download_failed", error=str(error))

        if self.session.is_launcher:
            # Just launch the target application
            self._exit()
        else:
            self._show_error(message)

    async def _choose_next_state(self) -> None:
        metadata = self.session.metadata
        reconcile(metadata, self.session.config.packages)

        if metadata.preexisting_install:
            self.session.install_location = metadata.install_path or ""

            if metadata.is_launcher:
                await self.install(InstallKind.INSTALL, replace=True)
            else:
                self._transition(FlowState.MODIFY_EXISTING, replace=True)
            return

        self._spawn(self._fetch_default_path())
        self._transition(FlowState.PACKAGE_SELECTION, replace=True)

    async def _fetch_default_path(self) -> None:
        try:
            answer = DefaultPath.model_validate(await self.client.fetch_json(API_DEFAULT_PATH))
        except (TransportError, ValidationError) as e:
            self._log.error("default_path_failed", error=str(e))
            return

        if answer.path is not None:
            self.session.install_location = answer.path
            self._log.debug("default_path_adopted", path=answer.path)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for best-effort background requests started by the flow."""
        while self._background:
            await asyncio.gather(*self._background)

    # ------------------------------------------------------------------
    # Package selection
    # ------------------------------------------------------------------

    def set_package_selected(self, name: str, selected: bool) -> None:
        """Select or deselect a package.

        Raises:
            KeyError: If the catalog has no package called ``name``.
        """
        self.session.config.get_package(name).default = selected

    def set_install_location(self, path: str) -> None:
        """Set the directory to install into."""
        self.session.install_location = path

    def request_install_dir(self) -> None:
        """Ask the host to let the user pick the install directory."""
        self.host.select_install_dir(SELECT_INSTALL_DIR_CALLBACK)

    def dispatch_host_callback(self, name: str, value: str) -> None:
        """Deliver an answer from the host to the callback it names.

        Raises:
            KeyError: If no callback is registered under ``name``.
        """
        try:
            handler = self._host_callbacks[name]
        except KeyError:
            self._log.warning("unknown_host_callback", name=name)
            raise
        handler(value)

    def select_packages(self) -> None:
        """Move to package selection, e.g. to change an existing install."""
        self._transition(FlowState.PACKAGE_SELECTION)

    def build_install_request(self) -> InstallRequest:
        """Collect every decided package selection plus the install path."""
        selections = {
            package.name: package.default
            for package in self.session.config.packages
            if package.default is not None
        }
        return InstallRequest(selections=selections, path=self.session.install_location)

    # ------------------------------------------------------------------
    # Installing
    # ------------------------------------------------------------------

    def add_progress_listener(self, listener: Callable[[FlowSession], None]) -> None:
        """Register a callback for progress updates while installing."""
        self._progress_listeners.append(listener)

    async def install(self, kind: InstallKind, *, replace: bool = False) -> None:
        """Run an install or uninstall and follow its progress stream.

        Returns once the stream has ended and the flow is in its final state
        (or an exit was signaled).

        Args:
            kind: Install or uninstall.
            replace: Replace the current history entry instead of pushing.
        """
        session = self.session
        session.install_kind = kind
        session.failed = False
        session.progress_percent = 0.0
        session.progress_message = DEFAULT_PROGRESS_MESSAGE
        self._transition(FlowState.INSTALLING, {"kind": kind.value}, replace=replace)

        request = self.build_install_request()
        self._log.info(
            "install_started",
            kind=kind.value,
            path=request.path,
            selections=request.selections,
        )

        stream = self.client.open_stream(INSTALL_ENDPOINTS[kind], request.to_pairs())
        stream.on_event(self._handle_stream_line)
        stream.on_complete(self._handle_stream_success, self._handle_stream_failure)
        await stream.send()

    def _handle_stream_line(self, data: Any) -> None:
        event = parse_event(data)

        if isinstance(event, StatusEvent):
            self._apply_status(event)
        elif isinstance(event, ErrorEvent):
            self._apply_error(event)
        else:
            self._log.debug("unknown_stream_event", data=data)

    def _apply_status(self, event: StatusEvent) -> None:
        self.session.progress_message = event.message
        self.session.progress_percent = event.percent
        for listener in self._progress_listeners:
            listener(self.session)

    def _apply_error(self, event: ErrorEvent) -> None:
        self._log.error("install_error", message=event.message)

        if self.session.is_launcher:
            self._exit()
            return

        if self.session.failed:
            self._log.debug("error_after_failure_ignored", message=event.message)
            return

        self.session.failed = True
        self._show_error(event.message)

    def _handle_stream_success(self, _raw_text: str) -> None:
        if self.session.is_launcher:
            self._exit()
        elif not self.session.failed:
            self._log.info("install_completed")
            self._transition(FlowState.COMPLETE)
        else:
            self._log.debug("completion_suppressed_after_error")

    def _handle_stream_failure(self, error: TransportError) -> None:
        self._log.error("install_stream_failed", error=str(error), status=error.status)

        if self.session.is_launcher:
            self._exit()
        elif not self.session.failed:
            self.session.failed = True
            self._show_error(str(error))
        else:
            self._log.debug("failure_suppressed_after_error")
