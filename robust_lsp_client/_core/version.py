"""
Version constants and comparison for robust-lsp-client.

robust-lsp-client is versioned independently from the language server:
- CLIENT_VERSION: This package's version (sent in the User-Agent)
- VersionTag: Parsed server version, from ``--version`` output or a release tag
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

# robust-lsp-client version (user-facing, independent semver)
CLIENT_VERSION = "0.1.0"

# GitHub repository publishing the language server binaries
GITHUB_REPO = "robust-lsp/robust-lsp"
BINARY_NAME = "robust-lsp"

LATEST_RELEASE_URL = f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"
USER_AGENT = f"robust-lsp-client/{CLIENT_VERSION}"

# Flag making the server print its version and exit
VERSION_FLAG = "--version"

_LEADING_DIGITS = re.compile(r"^\d+")


def _component(part: str) -> int:
    """Leading digits of one dotted component, 0 if there are none."""
    match = _LEADING_DIGITS.match(part.strip())
    if not match:
        return 0
    try:
        return int(match.group(0))
    except ValueError:
        # Longer than the interpreter's int conversion limit
        return 0


@dataclass(frozen=True)
class VersionTag:
    """
    A three-component ``major.minor.patch`` version.

    Parsing never fails: a missing or unparsable component is 0, so
    ``VersionTag.parse("1.2")`` is 1.2.0 and ``VersionTag.parse("junk")``
    is 0.0.0. Anything after the numeric part of a component is ignored,
    which drops pre-release and build suffixes like ``-beta.1``.
    """
    major: int = 0
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, text: str) -> "VersionTag":
        """
        Parse a version string such as "0.4.1" or "v0.4.1".

        Args:
            text: Version string, optionally ``v``-prefixed

        Returns:
            VersionTag with absent components defaulted to 0
        """
        text = (text or "").strip()
        if text[:1] in ("v", "V"):
            text = text[1:]

        parts = text.split(".")[:3]
        parts += [""] * (3 - len(parts))
        return cls(*(_component(part) for part in parts))

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def is_newer(self, other: "VersionTag") -> bool:
        """
        True if this version is strictly newer than ``other``.

        Major takes precedence; minor is only consulted when majors are
        equal, patch only when minors are equal too.
        """
        return self.as_tuple() > other.as_tuple()

    def compare(self, other: "VersionTag") -> int:
        """Return -1, 0 or 1 as this version is older, equal or newer."""
        mine, theirs = self.as_tuple(), other.as_tuple()
        return (mine > theirs) - (mine < theirs)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"
