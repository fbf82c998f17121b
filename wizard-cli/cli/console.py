"""Console front-end for the install flow.

Renders flow states with Rich, asks the user for package choices and the
install location, and acts as the host process of the wizard.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.prompt import Confirm, Prompt

from wizard import (
    FlowState,
    History,
    HostBridge,
    InstallFlowController,
    InstallKind,
    TransportError,
)

if TYPE_CHECKING:
    from rich.console import Console

    from wizard import ApiClient, FlowSession, HistoryEntry

logger = structlog.get_logger(__name__)

API_EXIT = "/api/exit"

MODIFY_CHOICES = ("update", "modify", "uninstall")


class ConsoleHost(HostBridge):
    """Host bridge for a terminal session."""

    def __init__(self, console: Console, interactive: bool = True) -> None:
        self.console = console
        self.interactive = interactive
        self.exit_requested = False
        self._controller: InstallFlowController | None = None

    def bind(self, controller: InstallFlowController) -> None:
        """Attach the controller that receives directory answers."""
        self._controller = controller

    def exit(self) -> None:
        self.exit_requested = True

    def select_install_dir(self, callback_name: str) -> None:
        if self._controller is None:
            raise RuntimeError("ConsoleHost is not bound to a controller")

        current = self._controller.session.install_location
        if not self.interactive:
            path = current
        else:
            path = Prompt.ask("Install location", console=self.console, default=current or None)
        if path:
            self._controller.dispatch_host_callback(callback_name, path)


def clamp_percent(percent: float) -> float:
    """Limit a progress value to what a bar can draw."""
    return min(max(percent, 0.0), 100.0)


class ConsoleRenderer:
    """Prints flow states and drives a progress bar while installing."""

    def __init__(self, console: Console, session: FlowSession) -> None:
        self.console = console
        self.session = session
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def on_navigate(self, entry: HistoryEntry) -> None:
        """History listener."""
        if entry.state != FlowState.INSTALLING:
            self.close()

        if entry.state == FlowState.CONFIG_LOADING:
            self.console.print("[dim]Downloading config...[/dim]")
        elif entry.state == FlowState.INSTALLING:
            self._start_progress(entry.params.get("kind"))
        elif entry.state == FlowState.COMPLETE:
            self.console.print("[green]✓ Installation complete[/green]")
        elif entry.state == FlowState.ERROR_DISPLAY:
            self.console.print("[red]An error occurred:[/red]")
            self.console.print(escape(str(entry.params.get("message", ""))))

    def on_progress(self, session: FlowSession) -> None:
        """Progress listener."""
        if self._progress is None or self._task is None:
            return
        self._progress.update(
            self._task,
            completed=clamp_percent(session.progress_percent),
            description=escape(session.progress_message),
        )

    def _start_progress(self, kind: str | None) -> None:
        self.close()

        if self.session.is_launcher:
            title = "Checking for updates..."
        elif kind == InstallKind.UNINSTALL.value:
            title = "Uninstalling..."
        else:
            title = "Installing..."
        self.console.print(f"[bold]{title}[/bold]")
        if self.session.config.installing_message:
            self.console.print(escape(self.session.config.installing_message))

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=self.console,
        )
        self._task = self._progress.add_task(escape(self.session.progress_message), total=100)
        self._progress.start()

    def close(self) -> None:
        """Stop the progress bar if one is running."""
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


def prompt_packages(console: Console, controller: InstallFlowController) -> None:
    """Ask for every package selection and the install location."""
    session = controller.session
    for package in session.config.packages:
        label = package.name + (" (installed)" if package.installed else "")
        if package.description:
            console.print(f"[dim]{escape(package.description)}[/dim]")
        selected = Confirm.ask(
            f"Install [cyan]{escape(label)}[/cyan]?",
            console=console,
            default=bool(package.default),
        )
        controller.set_package_selected(package.name, selected)

    if not session.metadata.preexisting_install:
        controller.request_install_dir()


async def request_exit(client: ApiClient) -> None:
    """Tell the backend to shut down and start the target application."""
    try:
        await client.fetch_json(API_EXIT)
    except TransportError as e:
        # The backend usually goes away before answering
        logger.debug("exit_request_ended", error=str(e))


async def run_wizard(
    client: ApiClient,
    console: Console,
    *,
    uninstall: bool = False,
    interactive: bool = True,
) -> int:
    """Run the whole wizard in the terminal.

    Args:
        client: Connection to the installer backend.
        console: Rich console to render to.
        uninstall: Uninstall an existing installation instead of modifying it.
        interactive: Ask questions; otherwise accept every default.

    Returns:
        Process exit code.
    """
    history = History()
    host = ConsoleHost(console, interactive=interactive)
    controller = InstallFlowController(client, history, host)
    host.bind(controller)

    renderer = ConsoleRenderer(console, controller.session)
    history.add_listener(renderer.on_navigate)
    controller.add_progress_listener(renderer.on_progress)

    exit_code = 1
    try:
        await controller.load_config()
        title = controller.session.config.general.name
        if title:
            console.print(f"[bold blue]{escape(title)} Installer[/bold blue]")

        while not host.exit_requested:
            state = controller.session.state

            if state == FlowState.PACKAGE_SELECTION:
                if uninstall and not controller.session.metadata.preexisting_install:
                    console.print("[yellow]Nothing is installed yet; nothing to uninstall.[/yellow]")
                    break
                await controller.wait_background()
                if interactive:
                    prompt_packages(console, controller)
                await controller.install(InstallKind.INSTALL)

            elif state == FlowState.MODIFY_EXISTING:
                if uninstall:
                    choice = "uninstall"
                elif interactive:
                    choice = Prompt.ask(
                        "An existing installation was found. What do you want to do?",
                        console=console,
                        choices=list(MODIFY_CHOICES),
                        default="update",
                    )
                else:
                    choice = "update"

                if choice == "modify":
                    controller.select_packages()
                else:
                    kind = InstallKind.UNINSTALL if choice == "uninstall" else InstallKind.INSTALL
                    await controller.install(kind)

            elif state == FlowState.ERROR_DISPLAY:
                if (
                    interactive
                    and history.can_go_back
                    and Confirm.ask("Go back?", console=console, default=False)
                ):
                    controller.go_back()
                    continue
                break

            elif state == FlowState.COMPLETE:
                exit_code = 0
                break

            else:
                logger.warning("unexpected_flow_state", state=state.value)
                break
    finally:
        renderer.close()
        # The client session closes after return
        await controller.wait_background()

    if host.exit_requested:
        await request_exit(client)
        return 0

    return exit_code
