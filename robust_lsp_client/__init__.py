"""
robust-lsp-client: install, update and launch the robust-lsp language server.

This package provides:
- Platform-aware resolution of robust-lsp release artifacts
- Install and update of the local binary with user confirmation
- Version checks against the latest GitHub release
- Handoff of the binary to a language server session

Installation:
    pip install robust-lsp-client

Quickstart:
    from robust_lsp_client import bootstrap, ConsolePrompter, SessionLauncher

    launcher = SessionLauncher()
    result = await bootstrap(ConsolePrompter(), launcher=launcher)
    if result.is_ready:
        print(f"robust-lsp running from {result.binary_path}")

Command line:
    robust-lsp-client --check-only
"""

from robust_lsp_client.types import (
    OrchestratorState,
    BootstrapResult,
    DocumentFilter,
    ServerOptions,
)
from robust_lsp_client.errors import (
    RobustLspClientError,
    CatalogUnavailableError,
    AssetNotFoundError,
    DownloadFailedError,
    BinaryWriteError,
    PermissionDeniedError,
    VersionProbeFailedError,
    LaunchError,
)
from robust_lsp_client._core.version import CLIENT_VERSION, VersionTag
from robust_lsp_client._core.catalog import Asset, ReleaseInfo, ReleaseCatalog
from robust_lsp_client._core.store import BinaryStore
from robust_lsp_client.config import BootstrapConfig
from robust_lsp_client.prompts import Prompter, ConsolePrompter, AutoConfirmPrompter
from robust_lsp_client.launcher import SessionLauncher, SessionRuntime, SupervisedSession
from robust_lsp_client.orchestrator import InstallUpdateOrchestrator, bootstrap

__version__ = CLIENT_VERSION

__all__ = [
    # Version
    "__version__",
    "CLIENT_VERSION",
    "VersionTag",
    # Types
    "OrchestratorState",
    "BootstrapResult",
    "DocumentFilter",
    "ServerOptions",
    "Asset",
    "ReleaseInfo",
    # Errors
    "RobustLspClientError",
    "CatalogUnavailableError",
    "AssetNotFoundError",
    "DownloadFailedError",
    "BinaryWriteError",
    "PermissionDeniedError",
    "VersionProbeFailedError",
    "LaunchError",
    # Components
    "ReleaseCatalog",
    "BinaryStore",
    "BootstrapConfig",
    "Prompter",
    "ConsolePrompter",
    "AutoConfirmPrompter",
    "SessionLauncher",
    "SessionRuntime",
    "SupervisedSession",
    "InstallUpdateOrchestrator",
    "bootstrap",
]
