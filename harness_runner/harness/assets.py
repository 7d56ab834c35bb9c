"""QUnit runtime assets served to harness pages."""

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import aiohttp

log = logging.getLogger(__name__)

QUNIT_VERSION = "2.19.1"
QUNIT_BASE_URL = "https://code.jquery.com"

ASSETS: Mapping[str, tuple[str, str]] = {
    "qunit.js": (f"qunit-{QUNIT_VERSION}.js", "text/javascript"),
    "qunit.css": (f"qunit-{QUNIT_VERSION}.css", "text/css"),
}


class AssetUnavailableError(Exception):
    """Raised when an asset is neither cached nor downloadable."""


def default_cache_dir() -> Path:
    """Return the per-user cache directory for QUnit assets."""
    base = os.environ.get("XDG_CACHE_HOME") or Path.home() / ".cache"
    return Path(base) / "harness-runner" / f"qunit-{QUNIT_VERSION}"


@dataclass(kw_only=True)
class AssetStore:
    """Serves QUnit assets from a local cache, downloading them on first use.

    The store is shared by every concurrent harness request; a lock makes sure
    an asset is downloaded at most once.
    """

    cache_dir: Path = field(default_factory=default_cache_dir)
    base_url: str = QUNIT_BASE_URL
    _contents: dict[str, bytes] = field(default_factory=dict, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @staticmethod
    def content_type(name: str) -> str:
        """Content type an asset is served with."""
        return ASSETS[name][1]

    async def get(self, name: str) -> bytes:
        """Return the asset contents.

        Raises:
            KeyError: If ``name`` is not a known asset
            AssetUnavailableError: If the asset cannot be downloaded

        """
        remote_name, _ = ASSETS[name]
        if (content := self._contents.get(name)) is not None:
            return content

        async with self._lock:
            if (content := self._contents.get(name)) is not None:
                return content

            cached = self.cache_dir / remote_name
            if cached.is_file():
                content = await asyncio.to_thread(cached.read_bytes)
            else:
                content = await self.download(remote_name)
                await asyncio.to_thread(self._write_cache, cached, content)

            self._contents[name] = content
            return content

    async def download(self, remote_name: str) -> bytes:
        """Download an asset from the QUnit CDN."""
        log.info("Downloading %s from %s", remote_name, self.base_url)
        try:
            async with (
                aiohttp.ClientSession(base_url=self.base_url) as session,
                session.get(f"/qunit/{remote_name}") as response,
            ):
                if response.status != 200:
                    text = await response.text()
                    raise AssetUnavailableError(
                        f"Failed to download {remote_name}: {response.status} {text}"
                    )
                return await response.read()
        except aiohttp.ClientError as e:
            raise AssetUnavailableError(f"Failed to download {remote_name}: {e}") from e

    def _write_cache(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(content)
        tmp.replace(path)
