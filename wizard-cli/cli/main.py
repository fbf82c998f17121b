"""Main CLI entry point for installer-wizard.

This module defines the Typer application and main commands.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import structlog
import typer
import yaml
from rich.console import Console
from rich.markup import escape

from wizard import ApiClient, ClientConfig, ConfigError, ConfigManager

from . import __version__
from .console import run_wizard

# Create the main Typer app
app = typer.Typer(
    name="installer-wizard",
    help="Installer wizard - install, update or remove components via an installer backend.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Create console for rich output
console = Console()


def configure_logging(log_level: str, log_file: Path | None = None) -> None:
    """Configure structlog and standard logging with the specified level.

    Args:
        log_level: Log level string (debug, info, warning, error).
        log_file: Optional file receiving the log instead of stderr.
    """
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }
    level = level_map.get(log_level.lower(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=level,
        filename=str(log_file) if log_file else None,
        force=True,  # Override any existing configuration
    )

    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer() if log_file else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]installer-wizard[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Installer wizard client.

    Talks to a running installer backend and walks through installing,
    updating or uninstalling its components.
    """


def _load_config(config_path: Path | None) -> ClientConfig:
    try:
        return ConfigManager(config_path).load()
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


@app.command()
def run(
    url: Annotated[
        str | None,
        typer.Option(
            "--url",
            "-u",
            help="Address of the installer backend. Overrides the configuration file.",
        ),
    ] = None,
    uninstall: Annotated[
        bool,
        typer.Option(
            "--uninstall",
            help="Remove the existing installation.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Accept all defaults without asking.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to an alternative configuration file.",
        ),
    ] = None,
) -> None:
    """Run the installer wizard."""
    config = _load_config(config_path)
    log_level = "debug" if verbose else config.log_level.value
    configure_logging(log_level, config.log_file)

    base_url = url or config.base_url
    exit_code = asyncio.run(_run_wizard(base_url, uninstall=uninstall, interactive=not yes))
    if exit_code:
        raise typer.Exit(exit_code)


async def _run_wizard(base_url: str, *, uninstall: bool, interactive: bool) -> int:
    """Run the wizard against ``base_url``."""
    async with ApiClient(base_url) as client:
        return await run_wizard(client, console, uninstall=uninstall, interactive=interactive)


# Create config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to an alternative configuration file."),
    ] = None,
) -> None:
    """Show current configuration."""
    manager = ConfigManager(config_path)
    config = _load_config(config_path)

    console.print(f"[bold]Configuration File:[/bold] {manager.config_path}")
    console.print()
    data = config.model_dump(mode="json", exclude_none=True)
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False))


@config_app.command("init")
def config_init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to an alternative configuration file."),
    ] = None,
) -> None:
    """Initialize configuration file."""
    manager = ConfigManager(config_path)

    if manager.init_config(force=force):
        console.print(f"[green]Configuration initialized: {manager.config_path}[/green]")
    else:
        console.print(f"[yellow]Configuration already exists: {manager.config_path}[/yellow]")
        console.print("Use --force to overwrite.")


@config_app.command("path")
def config_path_command() -> None:
    """Show configuration file path."""
    console.print(str(ConfigManager().config_path))


if __name__ == "__main__":
    app()
