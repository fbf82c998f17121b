"""Core data models for the installer wizard client.

This module defines Pydantic models for the records served by the installer
backend, the client configuration, and the flow states.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path  # noqa: TC003 - needed at runtime by Pydantic
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(str, Enum):
    """Log level for client output."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class InstallKind(str, Enum):
    """Operation performed by the installing state."""

    INSTALL = "install"
    UNINSTALL = "uninstall"


class FlowState(str, Enum):
    """States of the install flow."""

    CONFIG_LOADING = "config_loading"
    PACKAGE_SELECTION = "package_selection"
    INSTALLING = "installing"
    MODIFY_EXISTING = "modify_existing"
    COMPLETE = "complete"
    ERROR_DISPLAY = "error_display"


class LocalInstallation(BaseModel):
    """A component recorded in the database of a previous install."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., description="Package name as it appears in the catalog")
    version: Any = Field(default=None, description="Installed version, opaque to the client")
    files: list[str] = Field(default_factory=list, description="Files owned by the package")


class InstallationMetadata(BaseModel):
    """Answer of ``GET /api/installation-status``."""

    model_config = ConfigDict(extra="ignore")

    preexisting_install: bool = Field(default=False, description="A previous install was found")
    install_path: str | None = Field(default=None, description="Location of that install")
    is_launcher: bool = Field(
        default=False,
        description="Only apply updates, then launch the target application",
    )
    database: list[LocalInstallation] = Field(default_factory=list)


class Package(BaseModel):
    """One optional component offered by the installer."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    name: str = Field(..., description="Unique package identifier")
    description: str = Field(default="")
    default: bool | None = Field(
        default=None,
        description="Current selection; None leaves the package out of the request",
    )
    installed: bool = Field(default=False, description="Present before this session")


class GeneralConfig(BaseModel):
    """Product information."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="", description="Name of the product being installed")


class InstallerConfig(BaseModel):
    """Answer of ``GET /api/config``."""

    model_config = ConfigDict(extra="ignore")

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    packages: list[Package] = Field(default_factory=list)
    installing_message: str = Field(
        default="",
        description="Markup shown while installing, passed through untouched",
    )

    def get_package(self, name: str) -> Package:
        """Look up a package by name.

        Raises:
            KeyError: If the catalog has no such package.
        """
        for package in self.packages:
            if package.name == name:
                return package
        raise KeyError(name)


class DefaultPath(BaseModel):
    """Answer of ``GET /api/default-path``."""

    path: str | None = None


class InstallRequest(BaseModel):
    """Form body for the install and uninstall endpoints."""

    selections: dict[str, bool] = Field(default_factory=dict)
    path: str = ""

    def to_pairs(self) -> list[tuple[str, Any]]:
        """Package selections in catalog order, followed by the path."""
        pairs: list[tuple[str, Any]] = list(self.selections.items())
        pairs.append(("path", self.path))
        return pairs


class ClientConfig(BaseModel):
    """Settings of the wizard client itself."""

    base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Address of the installer backend",
    )
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    log_file: Path | None = Field(default=None, description="Path to log file")
