"""Installer Wizard Client Library.

Client-side orchestration of an installer wizard: fetches the installation
status and package catalog from the installer backend, reconciles them, and
drives install or uninstall runs while following their progress streams.

Module Overview:
    config: YAML-based client configuration (XDG spec compliant)
    flow: Install flow controller and session state
    interfaces: Navigator and HostBridge collaborator interfaces
    lines: Incremental newline-delimited line splitting
    models: Pydantic models for backend records and flow states
    navigation: In-memory navigation history
    reconcile: Merging a previous install database into the catalog
    streaming: Progress stream event types
    transport: HTTP client with streaming requests
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version

from wizard.config import ConfigError, ConfigManager, get_config_dir, get_default_config_path
from wizard.flow import FlowSession, InstallFlowController
from wizard.interfaces import HostBridge, Navigator
from wizard.lines import LineBuffer
from wizard.models import (
    ClientConfig,
    DefaultPath,
    FlowState,
    GeneralConfig,
    InstallationMetadata,
    InstallerConfig,
    InstallKind,
    InstallRequest,
    LocalInstallation,
    LogLevel,
    Package,
)
from wizard.navigation import History, HistoryEntry
from wizard.reconcile import reconcile
from wizard.streaming import ErrorEvent, EventType, StatusEvent, StreamEvent, parse_event
from wizard.transport import (
    ApiClient,
    ProtocolDecodeError,
    StreamingRequest,
    TransportError,
    encode_form,
)

try:
    __version__ = get_package_version("installer-wizard")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "ApiClient",
    "ClientConfig",
    "ConfigError",
    "ConfigManager",
    "DefaultPath",
    "ErrorEvent",
    "EventType",
    "FlowSession",
    "FlowState",
    "GeneralConfig",
    "History",
    "HistoryEntry",
    "HostBridge",
    "InstallFlowController",
    "InstallKind",
    "InstallRequest",
    "InstallationMetadata",
    "InstallerConfig",
    "LineBuffer",
    "LocalInstallation",
    "LogLevel",
    "Navigator",
    "Package",
    "ProtocolDecodeError",
    "StatusEvent",
    "StreamEvent",
    "StreamingRequest",
    "TransportError",
    "encode_form",
    "get_config_dir",
    "get_default_config_path",
    "parse_event",
    "reconcile",
]
