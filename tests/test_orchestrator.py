"""Tests for robust_lsp_client.orchestrator module."""

import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from robust_lsp_client._core.catalog import ReleaseCatalog
from robust_lsp_client._core.store import BinaryStore
from robust_lsp_client._core.version import VersionTag
from robust_lsp_client.config import BootstrapConfig
from robust_lsp_client.errors import (
    CatalogUnavailableError,
    DownloadFailedError,
    LaunchError,
    PermissionDeniedError,
    VersionProbeFailedError,
)
from robust_lsp_client.orchestrator import (
    CANCEL,
    INSTALL,
    UPDATE,
    InstallUpdateOrchestrator,
    bootstrap,
)
from robust_lsp_client.types import OrchestratorState as S

LINUX_X64 = ("linux", "x86_64")
PROBE = "robust_lsp_client.orchestrator.probe_version"


@pytest.fixture
def mock_launcher():
    launcher = MagicMock()
    launcher.start = AsyncMock()
    return launcher


@pytest.fixture
def store(binary_path):
    return BinaryStore(binary_path)


@pytest.fixture
def installed_store(store):
    store.write(b"old robust-lsp")
    return store


def _orchestrator(prompter, catalog, store, launcher=None, platform_info=LINUX_X64):
    return InstallUpdateOrchestrator(
        prompter,
        config=BootstrapConfig(),
        catalog=catalog,
        store=store,
        launcher=launcher,
        platform_info=platform_info,
    )


class TestInstall:
    """Binary missing: CHECKING_PRESENCE -> INSTALLING -> READY | ABORTED."""

    @pytest.mark.asyncio
    async def test_cancel_aborts(self, mock_prompter, mock_catalog, store, mock_launcher):
        """Cancel at the install prompt aborts without network, disk or launch."""
        mock_prompter.ask.return_value = CANCEL

        result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.ABORTED
        assert result.history == [S.UNINITIALIZED, S.CHECKING_PRESENCE, S.INSTALLING, S.ABORTED]
        assert mock_prompter.ask.call_args[0][1] == [INSTALL, CANCEL]
        mock_catalog.fetch_latest.assert_not_called()
        mock_catalog.download.assert_not_called()
        mock_launcher.start.assert_not_called()
        assert store.exists() is False

    @pytest.mark.asyncio
    async def test_dismissed_prompt_aborts(self, mock_prompter, mock_catalog, store, mock_launcher):
        mock_prompter.ask.return_value = None

        result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.ABORTED
        mock_catalog.fetch_latest.assert_not_called()
        mock_launcher.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_install_success(self, mock_prompter, mock_catalog, store, mock_launcher, sample_release):
        mock_prompter.ask.return_value = INSTALL

        with patch(PROBE) as mock_probe:
            result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.READY
        assert result.history == [S.UNINITIALIZED, S.CHECKING_PRESENCE, S.INSTALLING, S.READY]
        assert result.installed_version == VersionTag(1, 3, 0)
        assert result.failure is None
        mock_catalog.download.assert_called_once_with(sample_release.assets[0])
        assert store.read() == b"\x7fELF robust-lsp"
        mock_probe.assert_not_called()
        mock_launcher.start.assert_called_once_with(store.path)

    @pytest.mark.asyncio
    async def test_install_marks_executable(self, mock_prompter, mock_catalog, store):
        if sys.platform == "win32":
            pytest.skip("Executable test not applicable on Windows")
        mock_prompter.ask.return_value = INSTALL

        await _orchestrator(mock_prompter, mock_catalog, store).run()

        assert os.access(store.path, os.X_OK)

    @pytest.mark.asyncio
    async def test_windows_asset(self, mock_prompter, mock_catalog, store, sample_release):
        mock_prompter.ask.return_value = INSTALL

        with patch("robust_lsp_client._core.store._is_windows", return_value=True):
            await _orchestrator(
                mock_prompter, mock_catalog, store, platform_info=("win32", "x64")
            ).run()

        mock_catalog.download.assert_called_once_with(sample_release.assets[1])

    @pytest.mark.asyncio
    async def test_asset_not_found_aborts(self, mock_prompter, mock_catalog, store, mock_launcher):
        mock_prompter.ask.return_value = INSTALL

        result = await _orchestrator(
            mock_prompter, mock_catalog, store, mock_launcher, platform_info=("darwin", "arm64")
        ).run()

        assert result.state == S.ABORTED
        assert result.failure == "AssetNotFound"
        mock_catalog.download.assert_not_called()
        mock_launcher.start.assert_not_called()
        assert store.exists() is False

        message = mock_prompter.inform.call_args[0][0]
        assert message.startswith("AssetNotFound:")
        assert "darwin/arm64" in message

    @pytest.mark.asyncio
    async def test_catalog_unavailable_aborts(self, mock_prompter, mock_catalog, store, mock_launcher):
        mock_prompter.ask.return_value = INSTALL
        mock_catalog.fetch_latest.side_effect = CatalogUnavailableError("offline")

        result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.ABORTED
        assert result.failure == "CatalogUnavailable"
        mock_prompter.inform.assert_called_once()
        assert "CatalogUnavailable" in mock_prompter.inform.call_args[0][0]
        mock_launcher.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_download_failed_aborts(self, mock_prompter, mock_catalog, store, mock_launcher):
        mock_prompter.ask.return_value = INSTALL
        mock_catalog.download.side_effect = DownloadFailedError("connection reset")

        result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.ABORTED
        assert result.failure == "DownloadFailed"
        assert store.exists() is False
        mock_launcher.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_permission_denied_still_ready(self, mock_prompter, mock_catalog, store, mock_launcher):
        mock_prompter.ask.return_value = INSTALL

        with patch.object(
            BinaryStore, "mark_executable", side_effect=PermissionDeniedError("read-only")
        ):
            result = await _orchestrator(mock_prompter, mock_catalog, store, mock_launcher).run()

        assert result.state == S.READY
        assert result.failure == "PermissionDenied"
        assert store.read() == b"\x7fELF robust-lsp"
        mock_launcher.start.assert_called_once()


class TestUpdate:
    """Binary present: CHECKING_PRESENCE -> VERIFYING_VERSION -> ... -> READY."""

    @pytest.mark.asyncio
    async def test_outdated_cancel_keeps_binary(
        self, mock_prompter, mock_catalog, installed_store, mock_launcher
    ):
        """1.2.0 installed, 1.3.0 released, Cancel: READY with no write."""
        mock_prompter.ask.return_value = CANCEL

        with patch(PROBE, AsyncMock(return_value=VersionTag.parse("v1.2.0"))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.history == [
            S.UNINITIALIZED,
            S.CHECKING_PRESENCE,
            S.VERIFYING_VERSION,
            S.UPDATING,
            S.READY,
        ]
        assert mock_prompter.ask.call_args[0][1] == [UPDATE, CANCEL]
        mock_catalog.download.assert_not_called()
        assert installed_store.read() == b"old robust-lsp"
        mock_launcher.start.assert_called_once_with(installed_store.path)

    @pytest.mark.asyncio
    async def test_outdated_update(self, mock_prompter, mock_catalog, installed_store, mock_launcher):
        mock_prompter.ask.return_value = UPDATE

        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 2, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.installed_version == VersionTag(1, 3, 0)
        assert result.latest_version == VersionTag(1, 3, 0)
        assert installed_store.read() == b"\x7fELF robust-lsp"
        mock_launcher.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_up_to_date(self, mock_prompter, mock_catalog, installed_store, mock_launcher):
        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 3, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert S.UP_TO_DATE in result.history
        assert S.UPDATING not in result.history
        mock_prompter.ask.assert_not_called()
        mock_launcher.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_installed_newer_than_release(self, mock_prompter, mock_catalog, installed_store):
        """A local build ahead of the release is not downgraded."""
        with patch(PROBE, AsyncMock(return_value=VersionTag(2, 0, 0))):
            result = await _orchestrator(mock_prompter, mock_catalog, installed_store).run()

        assert S.UP_TO_DATE in result.history
        mock_prompter.ask.assert_not_called()

    @pytest.mark.asyncio
    async def test_probe_failure_skips_update_check(
        self, mock_prompter, mock_catalog, installed_store, mock_launcher, caplog
    ):
        """Non-zero exit from --version: log, no prompt, straight to READY."""
        with patch(PROBE, AsyncMock(side_effect=VersionProbeFailedError("exit 1", exit_code=1))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.history == [
            S.UNINITIALIZED,
            S.CHECKING_PRESENCE,
            S.VERIFYING_VERSION,
            S.READY,
        ]
        assert result.failure == "VersionProbeFailed"
        assert "VersionProbeFailed" in caplog.text
        mock_prompter.ask.assert_not_called()
        mock_catalog.fetch_latest.assert_not_called()
        mock_launcher.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_catalog_unavailable_skips_update(
        self, mock_prompter, mock_catalog, installed_store, mock_launcher
    ):
        mock_catalog.fetch_latest.side_effect = CatalogUnavailableError("rate limited")

        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 2, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.failure == "CatalogUnavailable"
        mock_prompter.ask.assert_not_called()
        mock_launcher.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_download_failure_keeps_old_binary(
        self, mock_prompter, mock_catalog, installed_store, mock_launcher
    ):
        mock_prompter.ask.return_value = UPDATE
        mock_catalog.download.side_effect = DownloadFailedError("timeout")

        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 2, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.failure == "DownloadFailed"
        assert result.installed_version == VersionTag(1, 2, 0)
        assert installed_store.read() == b"old robust-lsp"
        mock_prompter.inform.assert_called_once()
        mock_launcher.start.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_asset_missing(self, mock_prompter, mock_catalog, installed_store):
        mock_prompter.ask.return_value = UPDATE

        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 2, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, platform_info=("linux", "arm64")
            ).run()

        assert result.state == S.READY
        assert result.failure == "AssetNotFound"
        mock_catalog.download.assert_not_called()


class TestRunContract:

    @pytest.mark.asyncio
    async def test_runs_once(self, mock_prompter, mock_catalog, store):
        mock_prompter.ask.return_value = CANCEL
        orchestrator = _orchestrator(mock_prompter, mock_catalog, store)

        await orchestrator.run()
        with pytest.raises(RuntimeError):
            await orchestrator.run()

    @pytest.mark.asyncio
    async def test_launch_error_is_reported(self, mock_prompter, mock_catalog, installed_store, mock_launcher):
        mock_launcher.start.side_effect = LaunchError("spawn failed")

        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 3, 0))):
            result = await _orchestrator(
                mock_prompter, mock_catalog, installed_store, mock_launcher
            ).run()

        assert result.state == S.READY
        assert result.failure == "LaunchError"
        mock_prompter.inform.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_launcher(self, mock_prompter, mock_catalog, installed_store):
        with patch(PROBE, AsyncMock(return_value=VersionTag(1, 3, 0))):
            result = await _orchestrator(mock_prompter, mock_catalog, installed_store).run()

        assert result.is_ready
        assert result.binary_path == installed_store.path

    @pytest.mark.asyncio
    async def test_release_fetched_once_per_run(
        self, mock_prompter, installed_store, sample_release_payload
    ):
        """The update path reuses one metadata fetch for check and download."""
        mock_prompter.ask.return_value = UPDATE

        metadata = MagicMock()
        metadata.raise_for_status = MagicMock()
        metadata.json = MagicMock(return_value=sample_release_payload)
        binary = MagicMock()
        binary.raise_for_status = MagicMock()
        binary.iter_content = MagicMock(return_value=[b"new robust-lsp"])

        with patch("requests.get", side_effect=[metadata, binary]) as mock_get:
            with patch(PROBE, AsyncMock(return_value=VersionTag(1, 2, 0))):
                result = await _orchestrator(
                    mock_prompter, ReleaseCatalog(), installed_store
                ).run()

        assert result.state == S.READY
        assert mock_get.call_count == 2
        assert installed_store.read() == b"new robust-lsp"

    @pytest.mark.asyncio
    async def test_malformed_asset_aborts_install(self, mock_prompter, store):
        """An asset without a usable name is a catalog failure, not a crash."""
        mock_prompter.ask.return_value = INSTALL

        metadata = MagicMock()
        metadata.raise_for_status = MagicMock()
        metadata.json = MagicMock(return_value={
            "tag_name": "v1.3.0",
            "assets": [{"name": None, "browser_download_url": "https://example.com/a"}],
        })

        with patch("requests.get", return_value=metadata):
            result = await _orchestrator(mock_prompter, ReleaseCatalog(), store).run()

        assert result.state == S.ABORTED
        assert result.failure == "CatalogUnavailable"
        assert not store.exists()


class TestBootstrap:

    @pytest.mark.asyncio
    async def test_uses_override_path(self, mock_prompter, tmp_path):
        mock_prompter.ask.return_value = CANCEL
        target = tmp_path / "override" / "robust-lsp"

        result = await bootstrap(
            mock_prompter,
            config=BootstrapConfig(binary_path_override=str(target)),
        )

        assert result.state == S.ABORTED
        assert result.binary_path == target
