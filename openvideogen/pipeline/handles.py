"""Display handles: local files a player or viewer can open directly."""

from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from openvideogen.common.errors import StorageWriteError
from openvideogen.common.logging import get_logger
from openvideogen.storage.store import AssetStore

logger = get_logger(__name__)

# mimetypes has no entry for some types providers return.
_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "image/jpeg": ".jpg",
    "video/mp4": ".mp4",
}


def extension_for(content_type: str | None) -> str:
    if not content_type:
        return ".bin"
    return _EXTENSIONS.get(content_type) or mimetypes.guess_extension(content_type) or ".bin"


@dataclass(frozen=True)
class DisplayHandle:
    """A dereferenceable reference to an asset's bytes."""

    asset_id: str
    path: Path
    content_type: str | None

    @property
    def uri(self) -> str:
        return self.path.resolve().as_uri()


class DisplayHandleRegistry:
    """
    Hands out display handles and tracks how many holders each one has.

    The first acquire materialises the blob under cache_dir; the file is
    removed when the last holder releases it.
    """

    def __init__(self, store: AssetStore, cache_dir: str | Path):
        self.store = store
        self.cache_dir = Path(cache_dir).expanduser()
        self._handles: dict[str, DisplayHandle] = {}
        self._refcounts: dict[str, int] = {}
        self._lock = asyncio.Lock()

    @property
    def active(self) -> list[DisplayHandle]:
        return list(self._handles.values())

    def refcount(self, asset_id: str) -> int:
        return self._refcounts.get(asset_id, 0)

    def get(self, asset_id: str) -> DisplayHandle | None:
        return self._handles.get(asset_id)

    async def acquire(self, asset_id: str) -> DisplayHandle | None:
        """Return a handle for the asset, or None if the store lacks it."""
        async with self._lock:
            handle = self._handles.get(asset_id)
            if handle is not None:
                self._refcounts[asset_id] += 1
                return handle

            asset = await self.store.get_asset(asset_id)
            if asset is None:
                logger.warning("display_handle_missing_asset", id=asset_id)
                return None

            content_type = asset.metadata.content_type
            path = self.cache_dir / f"{asset_id}{extension_for(content_type)}"
            try:
                await asyncio.to_thread(self._write, path, asset.blob)
            except OSError as e:
                logger.error("display_handle_failed", id=asset_id, path=str(path), error=str(e))
                raise StorageWriteError(f"Failed to write display file for {asset_id}: {e}") from e

            handle = DisplayHandle(asset_id=asset_id, path=path, content_type=content_type)
            self._handles[asset_id] = handle
            self._refcounts[asset_id] = 1
            logger.debug("display_handle_created", id=asset_id, path=str(path))
            return handle

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def release(self, asset_id: str) -> None:
        """Drop one holder; the file goes away with the last one."""
        async with self._lock:
            count = self._refcounts.get(asset_id, 0)
            if count <= 1:
                self._drop(asset_id)
            else:
                self._refcounts[asset_id] = count - 1

    async def release_all(self, keep: Iterable[str] = ()) -> None:
        """Drop every handle. Files of ids in keep stay on disk, untracked."""
        kept = set(keep)
        async with self._lock:
            for asset_id in list(self._handles):
                if asset_id in kept:
                    self._handles.pop(asset_id)
                    self._refcounts.pop(asset_id, None)
                    logger.debug("display_handle_kept", id=asset_id)
                else:
                    self._drop(asset_id)

    def _drop(self, asset_id: str) -> None:
        handle = self._handles.pop(asset_id, None)
        self._refcounts.pop(asset_id, None)
        if handle is not None:
            handle.path.unlink(missing_ok=True)
            logger.debug("display_handle_released", id=asset_id)
