"""
Configuration for the robust-lsp bootstrap.

Values come from keyword arguments or, through ``BootstrapConfig.from_env``,
from environment variables:

    LSP_SERVER_PATH          Explicit binary path (skips the data dir)
    ROBUST_LSP_RELEASES_URL  Latest-release metadata endpoint
    ROBUST_LSP_LOG           Server log verbosity, exported as RUST_LOG
    ROBUST_LSP_HTTP_TIMEOUT  Network timeout in seconds
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from robust_lsp_client._core.catalog import DEFAULT_TIMEOUT
from robust_lsp_client._core.lifecycle import DEFAULT_PROBE_TIMEOUT
from robust_lsp_client._core.store import BINARY_PATH_ENV
from robust_lsp_client._core.version import LATEST_RELEASE_URL

logger = logging.getLogger(__name__)

RELEASES_URL_ENV = "ROBUST_LSP_RELEASES_URL"
LOG_LEVEL_ENV = "ROBUST_LSP_LOG"
HTTP_TIMEOUT_ENV = "ROBUST_LSP_HTTP_TIMEOUT"


@dataclass
class BootstrapConfig:
    """
    Configuration for install, update and launch.

    Attributes:
        binary_path_override: Explicit binary path used for presence checks
            and updates instead of the per-user data directory
        releases_url: Latest-release metadata endpoint
        http_timeout: Timeout for each network request in seconds
        http_retries: Retries after a failed network request
        probe_timeout: Timeout for the ``--version`` probe in seconds
        log_level: Server log verbosity (exported as RUST_LOG)
        auto_confirm: Accept every install/update prompt
        max_restarts: Restarts allowed after the server exits unexpectedly
        restart_delay: Seconds to wait before restarting the server
    """
    binary_path_override: Optional[str] = None
    releases_url: str = LATEST_RELEASE_URL
    http_timeout: float = DEFAULT_TIMEOUT
    http_retries: int = 1
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    log_level: str = "debug"
    auto_confirm: bool = False
    max_restarts: int = 3
    restart_delay: float = 1.0

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "BootstrapConfig":
        """
        Build a configuration from environment variables.

        Args:
            env: Environment to read (default: os.environ)
            **overrides: Field values taking precedence over the environment

        Returns:
            BootstrapConfig
        """
        env = os.environ if env is None else env
        config = cls()

        if env.get(BINARY_PATH_ENV):
            config.binary_path_override = env[BINARY_PATH_ENV]
        if env.get(RELEASES_URL_ENV):
            config.releases_url = env[RELEASES_URL_ENV]
        if env.get(LOG_LEVEL_ENV):
            config.log_level = env[LOG_LEVEL_ENV]

        raw_timeout = env.get(HTTP_TIMEOUT_ENV)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
                if timeout <= 0:
                    raise ValueError("must be positive")
                config.http_timeout = timeout
            except ValueError as e:
                logger.warning(
                    f"Ignoring {HTTP_TIMEOUT_ENV}={raw_timeout!r} ({e}), "
                    f"using {config.http_timeout}s"
                )

        for name, value in overrides.items():
            if not hasattr(config, name):
                raise TypeError(f"Unknown configuration option: {name}")
            setattr(config, name, value)

        return config
