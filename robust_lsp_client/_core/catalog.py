"""
Release catalog for the robust-lsp language server.

Handles:
- Fetching the latest GitHub release and its asset list
- Downloading a release asset
- Memoizing the latest release for one install/update run
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from robust_lsp_client._core.version import (
    LATEST_RELEASE_URL,
    USER_AGENT,
    VersionTag,
)
from robust_lsp_client.errors import CatalogUnavailableError, DownloadFailedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DOWNLOAD_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class Asset:
    """
    A downloadable artifact published for one platform/architecture pair.

    The name encodes both tokens, e.g. ``robust-lsp-win-x86_64.exe``.
    """
    name: str
    download_url: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """
        Build from a GitHub ``assets[]`` entry (extra fields ignored).

        Raises:
            CatalogUnavailableError: If name or download URL is missing,
                empty or not a string
        """
        if not isinstance(data, dict):
            raise CatalogUnavailableError("Malformed release asset: not a JSON object")
        name = data.get("name")
        url = data.get("browser_download_url")
        if not isinstance(name, str) or not name:
            raise CatalogUnavailableError(f"Malformed release asset: bad name {name!r}")
        if not isinstance(url, str) or not url:
            raise CatalogUnavailableError(
                f"Malformed release asset {name}: bad browser_download_url {url!r}"
            )
        return cls(name=name, download_url=url)


@dataclass(frozen=True)
class ReleaseInfo:
    """
    Metadata of the latest published release.

    Attributes:
        tag_name: Release tag, e.g. "v0.4.1"
        assets: Artifacts in the order the release lists them
    """
    tag_name: str
    assets: List[Asset] = field(default_factory=list)

    @property
    def version(self) -> VersionTag:
        """Version parsed from the tag."""
        return VersionTag.parse(self.tag_name)


def parse_release(payload: Any) -> ReleaseInfo:
    """
    Build a ReleaseInfo from a GitHub "latest release" document.

    Args:
        payload: Decoded JSON body

    Returns:
        ReleaseInfo with assets in published order

    Raises:
        CatalogUnavailableError: If required fields are missing or mistyped
    """
    if not isinstance(payload, dict):
        raise CatalogUnavailableError("Release metadata is not a JSON object")

    tag_name = payload.get("tag_name")
    if not isinstance(tag_name, str) or not tag_name:
        raise CatalogUnavailableError("Release metadata has no tag_name")

    raw_assets = payload.get("assets", [])
    if not isinstance(raw_assets, list):
        raise CatalogUnavailableError("Release metadata assets is not a list")

    assets = [Asset.from_dict(entry) for entry in raw_assets]

    return ReleaseInfo(tag_name=tag_name, assets=assets)


class ReleaseCatalog:
    """
    Latest-release metadata, fetched lazily and held for one run.

    The first successful ``fetch_latest()`` is memoized on the instance, so
    an install-time fetch and a later update check reuse one value. Failed
    fetches are not memoized. Create one catalog per orchestrator run.

    Every request has a bounded timeout and is retried once before the
    failure is surfaced.
    """

    def __init__(
        self,
        url: str = LATEST_RELEASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = 1,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.retries = max(0, retries)
        self._session = session
        self._cached: Optional[ReleaseInfo] = None

    @property
    def cached(self) -> Optional[ReleaseInfo]:
        """The memoized release, if one has been fetched."""
        return self._cached

    def clear(self) -> None:
        self._cached = None

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        get = self._session.get if self._session is not None else requests.get
        headers = {"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}
        response = get(url, headers=headers, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    def fetch_latest_sync(self) -> ReleaseInfo:
        """
        Fetch the latest release (blocking).

        Returns:
            ReleaseInfo for the latest published release

        Raises:
            CatalogUnavailableError: On network failure, non-success status
                or a malformed payload
        """
        if self._cached is not None:
            return self._cached

        last_error: Optional[requests.RequestException] = None
        for attempt in range(self.retries + 1):
            try:
                response = self._get(
                    self.url,
                    headers={"Accept": "application/vnd.github+json"},
                )
                break
            except requests.exceptions.RequestException as e:
                last_error = e
                logger.debug(f"Release fetch attempt {attempt + 1} failed: {e}")
        else:
            status = getattr(getattr(last_error, "response", None), "status_code", None)
            raise CatalogUnavailableError(
                f"Failed to fetch release metadata from {self.url}: {last_error}",
                status_code=status,
            ) from last_error

        try:
            payload = response.json()
        except ValueError as e:
            raise CatalogUnavailableError(f"Release metadata is not valid JSON: {e}") from e

        release = parse_release(payload)
        logger.debug(
            f"Latest release {release.tag_name} with {len(release.assets)} assets"
        )
        self._cached = release
        return release

    async def fetch_latest(self) -> ReleaseInfo:
        """Fetch the latest release without blocking the event loop."""
        if self._cached is not None:
            return self._cached

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.fetch_latest_sync)

    def download_sync(self, asset: Asset) -> bytes:
        """
        Download an asset's bytes (blocking).

        Args:
            asset: Asset to download

        Returns:
            The raw artifact content

        Raises:
            DownloadFailedError: If the transfer fails or returns no content
        """
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                response = self._get(asset.download_url, stream=True)
                data = bytearray()
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        data.extend(chunk)
                if not data:
                    raise DownloadFailedError(
                        f"Empty response body for {asset.name}",
                        url=asset.download_url,
                    )
                logger.debug(f"Downloaded {asset.name} ({len(data)} bytes)")
                return bytes(data)
            except (requests.exceptions.RequestException, DownloadFailedError) as e:
                last_error = e
                logger.debug(f"Download attempt {attempt + 1} of {asset.name} failed: {e}")

        raise DownloadFailedError(
            f"Failed to download {asset.name} from {asset.download_url}: {last_error}",
            url=asset.download_url,
        ) from last_error

    async def download(self, asset: Asset) -> bytes:
        """Download an asset without blocking the event loop."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.download_sync, asset)
