"""
Install/update orchestration for the robust-lsp binary.

Before a session starts, makes sure a binary for this platform is present
and not older than the latest release, asking the user before installing
or updating, then hands the binary to the session launcher.

    UNINITIALIZED -> CHECKING_PRESENCE
    CHECKING_PRESENCE -> INSTALLING          (binary missing)
    CHECKING_PRESENCE -> VERIFYING_VERSION   (binary present)
    INSTALLING -> READY | ABORTED
    VERIFYING_VERSION -> UP_TO_DATE | UPDATING | READY
    UP_TO_DATE -> READY
    UPDATING -> READY

Usage:
    from robust_lsp_client import bootstrap, ConsolePrompter, SessionLauncher

    result = await bootstrap(ConsolePrompter(), launcher=SessionLauncher())
    if result.state == OrchestratorState.ABORTED:
        print("robust-lsp was not installed")
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from robust_lsp_client._core.catalog import ReleaseCatalog, ReleaseInfo
from robust_lsp_client._core.lifecycle import probe_version
from robust_lsp_client._core.platforms import detect_platform, resolve, supported_targets
from robust_lsp_client._core.store import BinaryStore, resolve_binary_path
from robust_lsp_client._core.version import VersionTag
from robust_lsp_client.config import BootstrapConfig
from robust_lsp_client.errors import (
    AssetNotFoundError,
    BinaryWriteError,
    CatalogUnavailableError,
    DownloadFailedError,
    LaunchError,
    PermissionDeniedError,
    RobustLspClientError,
    VersionProbeFailedError,
)
from robust_lsp_client.launcher import SessionLauncher
from robust_lsp_client.prompts import Prompter
from robust_lsp_client.types import BootstrapResult, OrchestratorState

logger = logging.getLogger(__name__)

INSTALL = "Install"
UPDATE = "Update"
CANCEL = "Cancel"

# Failures that stop an install or update attempt
_INSTALL_FAILURES = (
    CatalogUnavailableError,
    AssetNotFoundError,
    DownloadFailedError,
    BinaryWriteError,
)


class InstallUpdateOrchestrator:
    """
    Runs the install/update state machine once.

    Every network, filesystem, subprocess and prompt step is awaited in
    order on one task. The release catalog belongs to this instance, so the
    latest release is fetched at most once per run. A second ``run()``
    raises RuntimeError.

    Attributes:
        state: Current state
        history: States visited so far, in order
        store: Binary store for the resolved path
        catalog: Release catalog memoizing the latest release
    """

    def __init__(
        self,
        prompter: Prompter,
        config: Optional[BootstrapConfig] = None,
        catalog: Optional[ReleaseCatalog] = None,
        store: Optional[BinaryStore] = None,
        launcher: Optional[SessionLauncher] = None,
        platform_info: Optional[Tuple[str, str]] = None,
    ):
        self.config = config or BootstrapConfig()
        self.prompter = prompter
        self.catalog = catalog or ReleaseCatalog(
            url=self.config.releases_url,
            timeout=self.config.http_timeout,
            retries=self.config.http_retries,
        )
        self.store = store or BinaryStore(
            resolve_binary_path(override=self.config.binary_path_override)
        )
        self.launcher = launcher
        self.platform_info = platform_info or detect_platform()

        self.state = OrchestratorState.UNINITIALIZED
        self.history: List[OrchestratorState] = [self.state]
        self.installed_version: Optional[VersionTag] = None
        self.latest_version: Optional[VersionTag] = None
        self.failure: Optional[str] = None

    def _transition(self, state: OrchestratorState) -> None:
        logger.debug(f"robust-lsp bootstrap: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def _report(self, error: RobustLspClientError) -> None:
        """Record a failure and show its single user-facing message."""
        self.failure = error.failure_class
        logger.debug(f"{error.failure_class} details", exc_info=error)
        await self.prompter.inform(error.user_message())

    async def run(self) -> BootstrapResult:
        """
        Check, install or update the binary, then launch on READY.

        Returns:
            BootstrapResult describing the terminal state

        Raises:
            RuntimeError: If this orchestrator has already run
        """
        if self.state != OrchestratorState.UNINITIALIZED:
            raise RuntimeError("InstallUpdateOrchestrator can only run once")

        self._transition(OrchestratorState.CHECKING_PRESENCE)
        if await self.store.exists_async():
            await self._verify_and_update()
        else:
            await self._install()

        if self.state == OrchestratorState.READY and self.launcher is not None:
            try:
                await self.launcher.start(self.store.path)
            except LaunchError as e:
                await self._report(e)

        return BootstrapResult(
            state=self.state,
            binary_path=self.store.path,
            installed_version=self.installed_version,
            latest_version=self.latest_version,
            failure=self.failure,
            history=list(self.history),
        )

    async def _install(self) -> None:
        self._transition(OrchestratorState.INSTALLING)

        choice = await self.prompter.ask(
            f"The robust-lsp language server is not installed ({self.store.path}). "
            "Download and install the latest release?",
            [INSTALL, CANCEL],
        )
        if choice != INSTALL:
            logger.info("robust-lsp installation cancelled")
            self._transition(OrchestratorState.ABORTED)
            return

        try:
            release = await self.catalog.fetch_latest()
            self.latest_version = release.version
            await self._download_and_write(release)
        except _INSTALL_FAILURES as e:
            await self._report(e)
            self._transition(OrchestratorState.ABORTED)
            return

        logger.info(f"Installed robust-lsp {self.latest_version} to {self.store.path}")
        self.installed_version = self.latest_version
        self._transition(OrchestratorState.READY)

    async def _verify_and_update(self) -> None:
        self._transition(OrchestratorState.VERIFYING_VERSION)

        try:
            installed = await probe_version(
                self.store.path, timeout=self.config.probe_timeout
            )
        except VersionProbeFailedError as e:
            logger.warning(f"{e.failure_class}: {e}; skipping update check")
            self.failure = e.failure_class
            self._transition(OrchestratorState.READY)
            return
        self.installed_version = installed

        try:
            release = await self.catalog.fetch_latest()
        except CatalogUnavailableError as e:
            logger.warning(f"{e.failure_class}: {e}; skipping update check")
            self.failure = e.failure_class
            self._transition(OrchestratorState.READY)
            return
        latest = self.latest_version = release.version

        if not latest.is_newer(installed):
            logger.debug(f"robust-lsp {installed} is up to date (latest {latest})")
            self._transition(OrchestratorState.UP_TO_DATE)
            self._transition(OrchestratorState.READY)
            return

        self._transition(OrchestratorState.UPDATING)
        choice = await self.prompter.ask(
            f"robust-lsp {installed} is installed but {latest} is available. Update now?",
            [UPDATE, CANCEL],
        )
        if choice != UPDATE:
            logger.info(f"robust-lsp update to {latest} declined, keeping {installed}")
            self._transition(OrchestratorState.READY)
            return

        try:
            await self._download_and_write(release)
        except _INSTALL_FAILURES as e:
            await self._report(e)
            self._transition(OrchestratorState.READY)
            return

        logger.info(f"Updated robust-lsp {installed} -> {latest}")
        self.installed_version = latest
        self._transition(OrchestratorState.READY)

    async def _download_and_write(self, release: ReleaseInfo) -> None:
        platform, arch = self.platform_info
        asset = resolve(release, platform, arch)
        if asset is None:
            raise AssetNotFoundError(platform, arch, supported_targets(release))

        data = await self.catalog.download(asset)
        await self.store.write_async(data)

        try:
            await self.store.mark_executable_async()
        except PermissionDeniedError as e:
            logger.warning(f"{e.failure_class}: {e}")
            await self._report(e)


async def bootstrap(
    prompter: Prompter,
    config: Optional[BootstrapConfig] = None,
    launcher: Optional[SessionLauncher] = None,
) -> BootstrapResult:
    """
    Run one install/update pass and launch the session when READY.

    Args:
        prompter: Asks the user at install/update decision points
        config: Bootstrap configuration (default: from the environment)
        launcher: Session launcher to start on READY (optional)

    Returns:
        BootstrapResult of the run
    """
    config = config or BootstrapConfig.from_env()
    orchestrator = InstallUpdateOrchestrator(prompter, config=config, launcher=launcher)
    return await orchestrator.run()
