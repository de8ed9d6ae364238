"""
Local storage of the robust-lsp binary.

Handles:
- Resolving the binary path (LSP_SERVER_PATH override or the data dir)
- Presence checks
- Replacing the binary without exposing half-written files
- Setting the executable bit on POSIX systems
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import sys
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from platformdirs import user_data_dir

from robust_lsp_client._core.platforms import executable_suffix
from robust_lsp_client._core.version import BINARY_NAME
from robust_lsp_client.errors import BinaryWriteError, PermissionDeniedError

logger = logging.getLogger(__name__)

# Explicit binary location, used for both the presence check and updates
BINARY_PATH_ENV = "LSP_SERVER_PATH"

APP_NAME = "robust-lsp-client"
APP_AUTHOR = "robust-lsp"


def get_storage_dir() -> Path:
    """Get the directory where the managed binary is kept."""
    return Path(user_data_dir(APP_NAME, APP_AUTHOR)) / "bin"


def default_binary_path(platform: Optional[str] = None) -> Path:
    """
    Default binary location inside the per-user storage directory.

    Args:
        platform: Raw OS identifier (default: this host)

    Returns:
        Path to ``robust-lsp`` (``robust-lsp.exe`` on Windows)
    """
    return get_storage_dir() / f"{BINARY_NAME}{executable_suffix(platform)}"


def resolve_binary_path(
    env: Optional[Mapping[str, str]] = None,
    override: Optional[str] = None,
) -> Path:
    """
    Resolve where the binary lives.

    An explicit override (argument, then LSP_SERVER_PATH) wins over the
    default storage location.

    Args:
        env: Environment to read (default: os.environ)
        override: Explicit path from configuration

    Returns:
        Path to the binary (which may not exist yet)
    """
    env = os.environ if env is None else env
    explicit = override or env.get(BINARY_PATH_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        logger.debug(f"Using binary path override: {path}")
        return path
    return default_binary_path()


def _is_windows() -> bool:
    return sys.platform == "win32"


class BinaryStore:
    """
    The on-disk language server executable.

    Writes go to a temporary file in the destination directory which then
    replaces the target in one rename, so a concurrent ``exists()`` never
    sees partial content.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        """Whether a binary file is present (absence is not an error)."""
        try:
            return self.path.is_file()
        except OSError as e:
            logger.debug(f"Could not stat {self.path}: {e}")
            return False

    def read(self) -> bytes:
        return self.path.read_bytes()

    def write(self, data: bytes) -> Path:
        """
        Replace the binary with new content.

        Args:
            data: Complete binary content

        Returns:
            Path of the written binary

        Raises:
            BinaryWriteError: If the content cannot be written
        """
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".part",
                dir=str(self.path.parent),
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise BinaryWriteError(f"Failed to write binary to {self.path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug(f"Wrote {len(data)} bytes to {self.path}")
        return self.path

    def mark_executable(self) -> None:
        """
        Set the executable bits (POSIX only; a no-op on Windows).

        Raises:
            PermissionDeniedError: If the mode cannot be changed. The written
                content is left in place.
        """
        if _is_windows():
            return

        try:
            st = os.stat(self.path)
            os.chmod(
                self.path,
                st.st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH,
            )
        except OSError as e:
            raise PermissionDeniedError(
                f"Failed to make {self.path} executable: {e}"
            ) from e

    async def exists_async(self) -> bool:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.exists)

    async def write_async(self, data: bytes) -> Path:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.write, data)

    async def mark_executable_async(self) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.mark_executable)
