"""
Session handoff for robust-lsp.

Starts the language server as a long-lived subprocess and hands it to a
session runtime, which owns the protocol conversation. The launcher only
builds the server options and guarantees a single start per run.

Usage:
    launcher = SessionLauncher(config)
    await launcher.start(binary_path)
    ...
    await launcher.stop()
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol

from robust_lsp_client._core.lifecycle import ServerProcessSupervisor
from robust_lsp_client.config import BootstrapConfig
from robust_lsp_client.errors import LaunchError
from robust_lsp_client.types import DocumentFilter, ServerOptions

logger = logging.getLogger(__name__)

CLIENT_ID = "robust-lsp"
CLIENT_NAME = "Robust Language Server"

# Log verbosity variable read by the server
LOG_ENV_VAR = "RUST_LOG"

DOCUMENT_SELECTOR: List[DocumentFilter] = [
    DocumentFilter(language="csharp"),
    DocumentFilter(language="yaml"),
    DocumentFilter(language="fluent", pattern="**/*.ftl"),
]


def build_server_options(
    binary_path: Path,
    config: Optional[BootstrapConfig] = None,
    base_env: Optional[Mapping[str, str]] = None,
) -> ServerOptions:
    """
    Build the options used to start the language server.

    Args:
        binary_path: Resolved binary path
        config: Bootstrap configuration (log verbosity)
        base_env: Environment to inherit (default: os.environ)

    Returns:
        ServerOptions with the inherited environment plus RUST_LOG
    """
    config = config or BootstrapConfig()
    env: Dict[str, str] = dict(os.environ if base_env is None else base_env)
    env[LOG_ENV_VAR] = config.log_level

    return ServerOptions(
        command=Path(binary_path),
        env=env,
        document_selector=list(DOCUMENT_SELECTOR),
    )


class SessionRuntime(Protocol):
    """The protocol session runtime the server is handed to."""

    async def start(self, options: ServerOptions) -> None:
        ...

    async def stop(self) -> None:
        ...


class SupervisedSession:
    """
    Default runtime: keeps the server process alive for the session.

    With ``pipe_stdio`` the protocol conversation happens over the supervised
    process's stdin/stdout, which a client attaches to through ``process``.
    Without it the server shares this process's stdio, which is how the
    command line entry point serves an editor directly.
    """

    def __init__(
        self,
        max_restarts: int = 3,
        restart_delay: float = 1.0,
        pipe_stdio: bool = True,
    ):
        self.max_restarts = max_restarts
        self.restart_delay = restart_delay
        self.pipe_stdio = pipe_stdio
        self.options: Optional[ServerOptions] = None
        self.failure: Optional[LaunchError] = None
        self._supervisor: Optional[ServerProcessSupervisor] = None

    async def start(self, options: ServerOptions) -> None:
        self.options = options
        self.failure = None
        self._supervisor = ServerProcessSupervisor(
            options.argv,
            env=options.env,
            max_restarts=self.max_restarts,
            restart_delay=self.restart_delay,
            pipe_stdio=self.pipe_stdio,
        )
        await self._supervisor.start()

    async def stop(self) -> None:
        if self._supervisor:
            await self._supervisor.stop()
            self.failure = self.failure or self._supervisor.failure
            self._supervisor = None

    async def wait(self) -> None:
        """Wait until the server is gone for good; see ``failure`` for why."""
        if self._supervisor:
            await self._supervisor.wait()
            self.failure = self._supervisor.failure

    @property
    def process(self):
        return self._supervisor.process if self._supervisor else None

    @property
    def is_running(self) -> bool:
        return self._supervisor is not None and self._supervisor.is_running


class SessionLauncher:
    """
    Hands the resolved binary to the session runtime exactly once.

    Attributes:
        runtime: The session runtime receiving the server
        options: Options of the started session, once started
    """

    def __init__(
        self,
        config: Optional[BootstrapConfig] = None,
        runtime: Optional[SessionRuntime] = None,
    ):
        self.config = config or BootstrapConfig()
        self.runtime: SessionRuntime = runtime or SupervisedSession(
            max_restarts=self.config.max_restarts,
            restart_delay=self.config.restart_delay,
        )
        self.options: Optional[ServerOptions] = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, binary_path: Path) -> ServerOptions:
        """
        Start the language server session.

        Args:
            binary_path: Resolved binary path

        Returns:
            The options the session was started with

        Raises:
            LaunchError: If already started or the runtime fails to start
        """
        if self._started:
            raise LaunchError("robust-lsp session already started")
        self._started = True

        options = build_server_options(binary_path, self.config)
        logger.info(f"Starting {CLIENT_NAME} with command: {options.command}")

        try:
            await self.runtime.start(options)
        except LaunchError:
            raise
        except Exception as e:
            raise LaunchError(f"Failed to start {CLIENT_NAME}: {e}") from e

        self.options = options
        return options

    async def stop(self) -> None:
        """Stop the session, if one was started."""
        if self.options is None:
            return
        await self.runtime.stop()
        logger.debug(f"{CLIENT_NAME} session stopped")
