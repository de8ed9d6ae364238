"""
Pytest configuration for robust-lsp-client tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from robust_lsp_client._core.catalog import Asset, ReleaseInfo

# Note: With pytest-asyncio in auto mode, no event_loop fixture needed


@pytest.fixture
def sample_release_payload():
    """GitHub "latest release" document as returned by the API."""
    return {
        "tag_name": "v1.3.0",
        "name": "v1.3.0",
        "draft": False,
        "assets": [
            {
                "name": "robust-lsp-linux-x86_64",
                "browser_download_url": "https://example.invalid/robust-lsp-linux-x86_64",
                "size": 1024,
            },
            {
                "name": "robust-lsp-win-x86_64.exe",
                "browser_download_url": "https://example.invalid/robust-lsp-win-x86_64.exe",
                "size": 2048,
            },
        ],
    }


@pytest.fixture
def sample_release():
    """ReleaseInfo with Linux and Windows x86_64 builds."""
    return ReleaseInfo(
        tag_name="v1.3.0",
        assets=[
            Asset("robust-lsp-linux-x86_64", "https://example.invalid/robust-lsp-linux-x86_64"),
            Asset("robust-lsp-win-x86_64.exe", "https://example.invalid/robust-lsp-win-x86_64.exe"),
        ],
    )


@pytest.fixture
def mock_prompter():
    """Prompter whose answers are set per test via ask.return_value."""
    prompter = MagicMock()
    prompter.ask = AsyncMock(return_value=None)
    prompter.inform = AsyncMock()
    return prompter


@pytest.fixture
def mock_catalog(sample_release):
    """ReleaseCatalog returning sample_release and fixed binary bytes."""
    catalog = MagicMock()
    catalog.fetch_latest = AsyncMock(return_value=sample_release)
    catalog.download = AsyncMock(return_value=b"\x7fELF robust-lsp")
    return catalog


@pytest.fixture
def binary_path(tmp_path):
    """Path for the binary inside a temporary storage directory."""
    return tmp_path / "bin" / "robust-lsp"
