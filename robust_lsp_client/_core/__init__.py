"""
Building blocks for managing the robust-lsp binary.

This module handles:
- Version parsing and comparison
- Release catalog fetching and asset download
- Platform detection and asset resolution
- Local binary storage
- Version probing and server process supervision
"""

from robust_lsp_client._core.version import (
    CLIENT_VERSION,
    BINARY_NAME,
    LATEST_RELEASE_URL,
    USER_AGENT,
    VersionTag,
)
from robust_lsp_client._core.catalog import (
    Asset,
    ReleaseInfo,
    ReleaseCatalog,
)
from robust_lsp_client._core.platforms import (
    detect_platform,
    resolve,
    supported_targets,
)
from robust_lsp_client._core.store import (
    BinaryStore,
    resolve_binary_path,
    default_binary_path,
)
from robust_lsp_client._core.lifecycle import (
    ProbeResult,
    probe_version,
    ServerProcessSupervisor,
    forward_stderr,
)

__all__ = [
    # Version
    "CLIENT_VERSION",
    "BINARY_NAME",
    "LATEST_RELEASE_URL",
    "USER_AGENT",
    "VersionTag",
    # Catalog
    "Asset",
    "ReleaseInfo",
    "ReleaseCatalog",
    # Platforms
    "detect_platform",
    "resolve",
    "supported_targets",
    # Store
    "BinaryStore",
    "resolve_binary_path",
    "default_binary_path",
    # Lifecycle
    "ProbeResult",
    "probe_version",
    "ServerProcessSupervisor",
    "forward_stderr",
]
