"""Directory-backed storage backend.

Layout under the root directory::

    assets/<asset_id>.asset    one JSON metadata line, a newline, raw bytes
    manifest/main.json         {"key": "main", "manifest": {...}}

Every file is written to a temporary sibling and moved into place with
os.replace, so readers see either the old record or the new one. Blob and
manifest writes are separate files and cannot be grouped; the store repairs
any divergence on startup.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path

from openvideogen.common.errors import StorageReadError, StorageWriteError
from openvideogen.common.logging import get_logger
from openvideogen.common.models import AssetMetadata, StoredAsset
from openvideogen.storage.backends.base import StorageBackend
from openvideogen.storage.ids import is_safe_asset_id
from openvideogen.storage.manifest import MANIFEST_KEY, AssetManifest, migrate_manifest

logger = get_logger(__name__)

ASSET_SUFFIX = ".asset"
TEMP_SUFFIX = ".tmp"


def encode_record(asset: StoredAsset) -> bytes:
    """Serialize a blob record: metadata JSON line followed by the raw bytes."""
    return asset.metadata.model_dump_json().encode("utf-8") + b"\n" + asset.blob


def decode_record(data: bytes) -> StoredAsset:
    """Inverse of encode_record."""
    header, sep, blob = data.partition(b"\n")
    if not sep:
        raise ValueError("record has no metadata header")
    metadata = AssetMetadata.model_validate_json(header)
    return StoredAsset(blob=blob, metadata=metadata)


def _write_atomic(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileSystemBackend(StorageBackend):
    """Stores each asset as one file and the manifest as a JSON document."""

    name = "filesystem"
    transactional = False

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()
        self.assets_dir = self.root / "assets"
        self.manifest_dir = self.root / "manifest"
        self.manifest_path = self.manifest_dir / f"{MANIFEST_KEY}.json"

    def _asset_path(self, asset_id: str) -> Path:
        return self.assets_dir / f"{asset_id}{ASSET_SUFFIX}"

    # Lifecycle

    def _open_sync(self) -> None:
        self.assets_dir.mkdir(parents=True, exist_ok=True)
        self.manifest_dir.mkdir(parents=True, exist_ok=True)
        # Leftovers from writes interrupted mid-way.
        for directory in (self.assets_dir, self.manifest_dir):
            for stale in directory.glob(f".*{TEMP_SUFFIX}"):
                stale.unlink(missing_ok=True)
                logger.debug("stale_temp_removed", path=str(stale))

    async def open(self) -> None:
        try:
            await asyncio.to_thread(self._open_sync)
        except OSError as e:
            raise StorageWriteError(f"Cannot prepare storage at {self.root}: {e}") from e
        logger.debug("filesystem_backend_opened", root=str(self.root))

    # Blob keyspace

    async def put_blob(self, asset: StoredAsset) -> None:
        if not is_safe_asset_id(asset.id):
            raise StorageWriteError(f"Asset id is not usable as a storage key: {asset.id!r}")
        try:
            await asyncio.to_thread(_write_atomic, self._asset_path(asset.id), encode_record(asset))
        except OSError as e:
            raise StorageWriteError(f"Failed to write asset {asset.id}: {e}") from e

    def _get_blob_sync(self, asset_id: str) -> StoredAsset | None:
        path = self._asset_path(asset_id)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        return decode_record(data)

    async def get_blob(self, asset_id: str) -> StoredAsset | None:
        if not is_safe_asset_id(asset_id):
            return None
        try:
            return await asyncio.to_thread(self._get_blob_sync, asset_id)
        except (OSError, ValueError) as e:
            raise StorageReadError(f"Failed to read asset {asset_id}: {e}") from e

    def _delete_blob_sync(self, asset_id: str) -> bool:
        try:
            self._asset_path(asset_id).unlink()
        except FileNotFoundError:
            return False
        return True

    async def delete_blob(self, asset_id: str) -> bool:
        if not is_safe_asset_id(asset_id):
            return False
        try:
            return await asyncio.to_thread(self._delete_blob_sync, asset_id)
        except OSError as e:
            raise StorageWriteError(f"Failed to delete asset {asset_id}: {e}") from e

    async def blob_ids(self) -> list[str]:
        def _list() -> list[str]:
            return sorted(p.stem for p in self.assets_dir.glob(f"*{ASSET_SUFFIX}"))

        try:
            return await asyncio.to_thread(_list)
        except OSError as e:
            raise StorageReadError(f"Failed to list assets: {e}") from e

    async def clear_blobs(self) -> None:
        def _clear() -> None:
            for path in self.assets_dir.glob(f"*{ASSET_SUFFIX}"):
                path.unlink(missing_ok=True)

        try:
            await asyncio.to_thread(_clear)
        except OSError as e:
            raise StorageWriteError(f"Failed to clear assets: {e}") from e

    # Manifest keyspace

    def _get_manifest_sync(self) -> AssetManifest | None:
        try:
            raw = self.manifest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        record = json.loads(raw)
        if record.get("key") != MANIFEST_KEY or "manifest" not in record:
            raise ValueError("unexpected manifest record layout")
        return migrate_manifest(record["manifest"])

    async def get_manifest(self) -> AssetManifest | None:
        try:
            return await asyncio.to_thread(self._get_manifest_sync)
        except (OSError, ValueError) as e:
            raise StorageReadError(f"Failed to read manifest: {e}") from e

    async def put_manifest(self, manifest: AssetManifest) -> None:
        record = {"key": MANIFEST_KEY, "manifest": manifest.model_dump(mode="json")}
        data = json.dumps(record, indent=2).encode("utf-8")
        try:
            await asyncio.to_thread(_write_atomic, self.manifest_path, data)
        except OSError as e:
            raise StorageWriteError(f"Failed to write manifest: {e}") from e

    async def clear_manifest(self) -> None:
        try:
            await asyncio.to_thread(self.manifest_path.unlink, missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Failed to clear manifest: {e}") from e

    def describe(self) -> dict:
        return {**super().describe(), "root": str(self.root)}
