"""
Type definitions for robust-lsp-client.

Defines enums and dataclasses used across the package for:
- The install/update state machine and its outcome
- Session handoff options
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from robust_lsp_client._core.version import VersionTag


# =============================================================================
# Orchestrator Types
# =============================================================================


class OrchestratorState(str, Enum):
    """
    States of one install/update run.

    UNINITIALIZED -> CHECKING_PRESENCE -> {INSTALLING | VERIFYING_VERSION}
    -> {UP_TO_DATE | UPDATING} -> READY, with ABORTED reachable from the
    install decision point.
    """
    UNINITIALIZED = "uninitialized"
    CHECKING_PRESENCE = "checking_presence"
    INSTALLING = "installing"
    VERIFYING_VERSION = "verifying_version"
    UP_TO_DATE = "up_to_date"
    UPDATING = "updating"
    READY = "ready"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (OrchestratorState.READY, OrchestratorState.ABORTED)


@dataclass
class BootstrapResult:
    """
    Outcome of an orchestrator run.

    Attributes:
        state: Terminal state (READY or ABORTED)
        binary_path: Resolved path of the language server binary
        installed_version: Version reported by the binary, if probed
        latest_version: Latest release version, if fetched
        failure: failure_class of the error that degraded or aborted the run
        history: Every state visited, in order
    """
    state: OrchestratorState
    binary_path: Path
    installed_version: Optional[VersionTag] = None
    latest_version: Optional[VersionTag] = None
    failure: Optional[str] = None
    history: List[OrchestratorState] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.state == OrchestratorState.READY


# =============================================================================
# Session Types
# =============================================================================


@dataclass(frozen=True)
class DocumentFilter:
    """Kind of source document the session runtime activates for."""
    language: str
    scheme: str = "file"
    pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"scheme": self.scheme, "language": self.language}
        if self.pattern:
            data["pattern"] = self.pattern
        return data


@dataclass
class ServerOptions:
    """
    Everything the session runtime needs to start the language server.

    Attributes:
        command: Resolved binary path
        args: Extra command line arguments
        env: Inherited environment plus the log verbosity variable
        document_selector: Documents the session should handle
    """
    command: Path
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    document_selector: List[DocumentFilter] = field(default_factory=list)

    @property
    def argv(self) -> List[str]:
        return [str(self.command), *self.args]
