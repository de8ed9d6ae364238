"""
Exception types for robust-lsp-client.

Provides typed exceptions for:
- Release catalog and download failures
- Local binary store failures
- Version probe failures
- Session launch failures

Every error carries a ``failure_class`` naming the failure in the single
message shown to the user when an install or update attempt stops.
"""

from __future__ import annotations

from typing import Optional


class RobustLspClientError(Exception):
    """Base exception for all robust-lsp-client errors."""

    failure_class = "RobustLspClientError"

    def user_message(self) -> str:
        """Single-line explanation suitable for a notification."""
        return f"{self.failure_class}: {self}"


# =============================================================================
# Release Catalog Errors
# =============================================================================


class CatalogUnavailableError(RobustLspClientError):
    """
    Raised when the latest release metadata cannot be fetched.

    This includes:
    - Network errors and timeouts
    - Non-success HTTP status codes
    - Malformed release payloads
    """

    failure_class = "CatalogUnavailable"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AssetNotFoundError(RobustLspClientError):
    """
    Raised when no release artifact matches the host platform.

    Resolution itself returns ``None`` for an unsupported platform; the
    orchestrator raises this to route the outcome into a user message.
    """

    failure_class = "AssetNotFound"

    def __init__(self, platform: str, arch: str, available: Optional[list] = None):
        self.platform = platform
        self.arch = arch
        self.available = available or []

        message = f"No robust-lsp build published for {platform}/{arch}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class DownloadFailedError(RobustLspClientError):
    """
    Raised when downloading a release artifact fails mid-transfer.

    The binary store is never written when this is raised.
    """

    failure_class = "DownloadFailed"

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


# =============================================================================
# Binary Store Errors
# =============================================================================


class BinaryWriteError(RobustLspClientError):
    """Raised when new binary bytes cannot be written to the store."""

    failure_class = "BinaryWriteError"


class PermissionDeniedError(RobustLspClientError):
    """
    Raised when the executable bit cannot be set on the installed binary.

    The written bytes are still correct, so this is logged rather than
    blocking the launch.
    """

    failure_class = "PermissionDenied"


# =============================================================================
# Process Errors
# =============================================================================


class VersionProbeFailedError(RobustLspClientError):
    """
    Raised when the installed binary cannot report its version.

    Treated as "assume up to date": the update check is skipped.
    """

    failure_class = "VersionProbeFailed"

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class LaunchError(RobustLspClientError):
    """Raised when the language server session cannot be started."""

    failure_class = "LaunchError"
