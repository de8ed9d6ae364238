"""
Platform detection and release asset resolution.

Release artifacts are named ``robust-lsp-<platform>-<arch>[.exe]``. Raw
platform and machine identifiers are mapped to the canonical tokens used
in those names through the tables below, which define the full set of
supported targets.
"""

from __future__ import annotations

import logging
import platform as _platform
import sys
from typing import Dict, List, Optional, Tuple

from robust_lsp_client._core.catalog import Asset, ReleaseInfo

logger = logging.getLogger(__name__)

ASSET_DELIMITER = "-"
WINDOWS_SUFFIX = ".exe"

# Raw OS identifier (sys.platform, platform.system()) -> canonical token
PLATFORM_TOKENS: Dict[str, str] = {
    "win32": "win",
    "windows": "win",
    "cygwin": "win",
    "msys": "win",
    "linux": "linux",
    "darwin": "macos",
    "macos": "macos",
}

# Raw CPU identifier (platform.machine(), Node's process.arch) -> canonical token
ARCH_TOKENS: Dict[str, str] = {
    "x64": "x86_64",
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}


def canonical_platform(raw: str) -> Optional[str]:
    """Canonical platform token for a raw OS identifier, or None."""
    return PLATFORM_TOKENS.get((raw or "").lower())


def canonical_arch(raw: str) -> Optional[str]:
    """Canonical architecture token for a raw CPU identifier, or None."""
    return ARCH_TOKENS.get((raw or "").lower())


def detect_platform() -> Tuple[str, str]:
    """
    Determine the raw OS and architecture identifiers of this host.

    Returns:
        Tuple of (sys.platform, platform.machine()), unnormalized
    """
    return sys.platform, _platform.machine()


def executable_suffix(platform: Optional[str] = None) -> str:
    """Executable file suffix for a platform (default: this host)."""
    raw = platform if platform is not None else sys.platform
    return WINDOWS_SUFFIX if canonical_platform(raw) == "win" else ""


def _name_tokens(name: str) -> List[str]:
    if name.lower().endswith(WINDOWS_SUFFIX):
        name = name[: -len(WINDOWS_SUFFIX)]
    return name.split(ASSET_DELIMITER)


def resolve(release: ReleaseInfo, platform: str, arch: str) -> Optional[Asset]:
    """
    Pick the release asset built for a platform/architecture pair.

    Both canonical tokens must appear among the delimiter-separated parts
    of the asset name; a platform-only match does not count. The first
    matching asset wins.

    Args:
        release: Release to search
        platform: Raw OS identifier (e.g. "win32", "linux")
        arch: Raw CPU identifier (e.g. "x64", "aarch64")

    Returns:
        The matching Asset, or None if the platform is unsupported
    """
    platform_token = canonical_platform(platform)
    arch_token = canonical_arch(arch)
    if platform_token is None or arch_token is None:
        logger.debug(f"No canonical tokens for {platform}/{arch}")
        return None

    for asset in release.assets:
        parts = _name_tokens(asset.name)
        if platform_token in parts and arch_token in parts:
            logger.debug(f"Resolved {platform}/{arch} to {asset.name}")
            return asset

    return None


def supported_targets(release: ReleaseInfo) -> List[str]:
    """List the ``platform/arch`` pairs a release publishes builds for."""
    platforms = set(PLATFORM_TOKENS.values())
    arches = set(ARCH_TOKENS.values())

    targets = []
    for asset in release.assets:
        parts = _name_tokens(asset.name)
        found_platform = next((p for p in parts if p in platforms), None)
        found_arch = next((a for a in parts if a in arches), None)
        if found_platform and found_arch:
            targets.append(f"{found_platform}/{found_arch}")
    return targets
