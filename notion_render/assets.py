"""Content-addressed asset downloading and caching."""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import logging
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

import requests
from filetype import guess

from .config import RenderConfig
from .errors import AssetFetchError
from .models import AssetReference, CachedAsset

logger = logging.getLogger("notion_render")

FALLBACK_EXTENSION = ".jpg"
CHUNK_SIZE = 64 * 1024


def asset_key(url: str) -> str:
    """Stable content key for a source URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def asset_extension(url: str) -> str:
    """Extension of the URL path with its case preserved, or the fallback."""
    extension = posixpath.splitext(urlparse(url).path)[1]
    return extension or FALLBACK_EXTENSION


def asset_filename(url: str) -> str:
    return f"{asset_key(url)}{asset_extension(url)}"


def detect_mime(path: Path) -> Optional[str]:
    """Sniff the stored file's type using filetype; None when unknown."""
    try:
        kind = guess(str(path))
    except OSError:
        return None
    return kind.mime if kind else None


class AssetCache:
    """Downloads remote assets at most once and serves them from disk."""

    def __init__(
        self,
        config: RenderConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.directory = config.cache_dir
        self._session = session or requests.Session()
        self._session.max_redirects = config.max_redirects
        self._memo: Dict[str, CachedAsset] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def public_path(self, filename: str) -> str:
        return f"/{self.config.cache_dir_name}/{filename}"

    async def resolve(self, ref: AssetReference) -> str:
        """Return the public local path for an asset reference."""
        if not ref.url:
            raise AssetFetchError("Could not extract URL from asset reference")
        asset = await self.cache_url(ref.url)
        return asset.public_path

    async def cache_url(self, url: str) -> CachedAsset:
        """Return the cached record for ``url``, downloading it if needed."""
        cached = self._memo.get(url)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(url, asyncio.Lock())
        try:
            async with lock:
                cached = self._memo.get(url)
                if cached is not None:
                    return cached
                asset = await asyncio.to_thread(self._lookup, url)
                if asset is None:
                    asset = await asyncio.to_thread(self._download, url)
                self._memo[url] = asset
                return asset
        finally:
            if self._locks.get(url) is lock:
                del self._locks[url]

    def _record(self, url: str, path: Path) -> CachedAsset:
        return CachedAsset(
            key=asset_key(url),
            source_url=url,
            filename=path.name,
            path=path,
            public_path=self.public_path(path.name),
            mime=detect_mime(path),
        )

    def _lookup(self, url: str) -> Optional[CachedAsset]:
        path = self.directory / asset_filename(url)
        if not path.is_file():
            return None
        logger.debug("Using cached asset: %s", path.name)
        return self._record(url, path)

    def _download(self, url: str) -> CachedAsset:
        filename = asset_filename(url)
        destination = self.directory / filename
        parsed = urlparse(url)
        logger.info(
            "Downloading asset from %s%s (%s)", parsed.hostname, parsed.path, filename
        )

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, part_name = tempfile.mkstemp(
                prefix=f"{filename}.", suffix=".part", dir=self.directory
            )
        except OSError as exc:
            logger.warning("Cannot prepare asset directory %s: %s", self.directory, exc)
            raise AssetFetchError(
                f"Failed to write asset {filename}: {exc}", url
            ) from exc

        part_path = Path(part_name)
        size = 0
        try:
            with os.fdopen(fd, "wb") as handle:
                with self._session.get(
                    url,
                    stream=True,
                    timeout=self.config.download_timeout,
                    headers={
                        "User-Agent": self.config.user_agent,
                        "Accept": "image/*",
                    },
                ) as resp:
                    resp.raise_for_status()
                    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            handle.write(chunk)
                            size += len(chunk)
            os.replace(part_path, destination)
        except requests.Timeout as exc:
            logger.warning("Download timeout for asset: %s", url)
            raise AssetFetchError(f"Download timeout for asset: {url}", url) from exc
        except requests.RequestException as exc:
            logger.warning("Failed to fetch asset %s: %s", url, exc)
            raise AssetFetchError(f"Failed to download asset {url}: {exc}", url) from exc
        except OSError as exc:
            logger.warning("Failed to write asset %s: %s", destination, exc)
            raise AssetFetchError(
                f"Failed to write asset {filename}: {exc}", url
            ) from exc
        finally:
            with contextlib.suppress(FileNotFoundError):
                part_path.unlink()

        asset = self._record(url, destination)
        if asset.mime and not asset.mime.startswith("image/"):
            logger.debug("Asset %s was stored with type %s", filename, asset.mime)
        logger.info("Downloaded asset (%dKB): %s", round(size / 1024), filename)
        return asset
