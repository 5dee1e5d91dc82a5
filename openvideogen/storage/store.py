"""Asset store: blobs plus the manifest that indexes them."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from openvideogen.common.errors import (
    InvalidAssetError,
    StorageError,
    StorageNotReadyError,
)
from openvideogen.common.logging import get_logger
from openvideogen.common.models import (
    AssetDraft,
    AssetMetadata,
    AssetType,
    Clock,
    StoredAsset,
    now_ms,
)
from openvideogen.storage.backends.base import StorageBackend
from openvideogen.storage.ids import is_safe_asset_id
from openvideogen.storage.manifest import AssetManifest

logger = get_logger(__name__)


@dataclass
class ReconcileReport:
    """Outcome of a manifest/blob consistency pass."""

    dropped_entries: list[str] = field(default_factory=list)
    restored_entries: list[str] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return bool(self.dropped_entries or self.restored_entries)

    def to_dict(self) -> dict:
        return {
            "dropped_entries": self.dropped_entries,
            "restored_entries": self.restored_entries,
        }


class AssetStore:
    """
    Durable key-value store for asset blobs and their metadata.

    Every asset in the manifest has a blob under the same id and every blob
    has a manifest entry. Mutations run one at a time and wrap the blob write
    and the manifest update in the backend's transaction. Backends that
    cannot group the two writes are reconciled on init().
    """

    def __init__(self, backend: StorageBackend, clock: Clock = now_ms):
        self.backend = backend
        self._clock = clock
        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    # Lifecycle

    async def init(self) -> None:
        """Open the backend and make sure both keyspaces exist.

        Safe to call repeatedly and concurrently; all callers wait for the
        same initialization.
        """
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            await self.backend.open()
            manifest = await self.backend.get_manifest()
            if manifest is None:
                await self.backend.put_manifest(AssetManifest(last_updated=self._clock()))

            self._initialized = True
            logger.info("asset_store_initialized", **self.backend.describe())

            if not self.backend.transactional:
                await self.reconcile()

    async def close(self) -> None:
        """Close the backend. A closed store can be init()-ed again."""
        async with self._init_lock:
            if not self._initialized:
                return
            await self.backend.close()
            self._initialized = False
            logger.info("asset_store_closed", backend=self.backend.name)

    async def __aenter__(self) -> "AssetStore":
        await self.init()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _require_ready(self) -> None:
        if not self._initialized:
            raise StorageNotReadyError()

    async def _read_manifest(self) -> AssetManifest:
        manifest = await self.backend.get_manifest()
        return manifest if manifest is not None else AssetManifest(last_updated=self._clock())

    # Operations

    async def store_asset(
        self,
        asset_id: str,
        blob: bytes,
        draft: AssetDraft,
    ) -> AssetMetadata:
        """Write a blob and index it in the manifest.

        An existing asset with the same id is replaced, blob and metadata
        together.

        Raises:
            InvalidAssetError: If the id cannot be used as a storage key.
            StorageWriteError: If the backend rejects either write.
        """
        self._require_ready()
        if not is_safe_asset_id(asset_id):
            raise InvalidAssetError(f"Asset id is not usable as a storage key: {asset_id!r}")

        blob = bytes(blob)
        metadata = AssetMetadata.from_draft(
            asset_id,
            draft,
            size=len(blob),
            created_at=self._clock(),
        )

        async with self._write_lock:
            async with self.backend.transaction():
                await self.backend.put_blob(StoredAsset(blob=blob, metadata=metadata))
                manifest = await self._read_manifest()
                await self.backend.put_manifest(manifest.upsert(metadata, now=self._clock()))

        logger.info("asset_stored", **metadata.summary())
        return metadata

    async def get_asset(self, asset_id: str) -> StoredAsset | None:
        """Return the blob and metadata for asset_id, or None if absent."""
        self._require_ready()
        return await self.backend.get_blob(asset_id)

    async def has_asset(self, asset_id: str) -> bool:
        self._require_ready()
        return asset_id in await self._read_manifest()

    async def delete_asset(self, asset_id: str) -> bool:
        """Remove an asset's blob, then its manifest entry.

        Returns whether anything was removed. A manifest entry whose blob is
        already gone is still dropped.

        Raises:
            StorageWriteError: If either removal fails.
        """
        self._require_ready()
        async with self._write_lock:
            async with self.backend.transaction():
                blob_removed = await self.backend.delete_blob(asset_id)
                manifest = await self._read_manifest()
                indexed = asset_id in manifest
                if indexed:
                    await self.backend.put_manifest(manifest.remove(asset_id, now=self._clock()))

        if not blob_removed and not indexed:
            logger.debug("asset_delete_missing", id=asset_id)
            return False

        logger.info("asset_deleted", id=asset_id, stale_entry=indexed and not blob_removed)
        return True

    async def get_all_assets(self) -> list[AssetMetadata]:
        """Every asset's metadata, in manifest (insertion) order."""
        self._require_ready()
        return list((await self._read_manifest()).assets)

    async def list_assets(
        self,
        asset_type: AssetType | None = None,
        newest_first: bool = False,
    ) -> list[AssetMetadata]:
        """Manifest entries filtered by type, for gallery views."""
        self._require_ready()
        return (await self._read_manifest()).by_type(asset_type, newest_first=newest_first)

    async def newest_asset(self, asset_type: AssetType) -> AssetMetadata | None:
        self._require_ready()
        return (await self._read_manifest()).newest(asset_type)

    async def get_manifest(self) -> AssetManifest:
        self._require_ready()
        return await self._read_manifest()

    async def clear_all(self) -> None:
        """Empty both keyspaces."""
        self._require_ready()
        async with self._write_lock:
            async with self.backend.transaction():
                await self.backend.clear_blobs()
                await self.backend.clear_manifest()
        logger.info("asset_store_cleared", backend=self.backend.name)

    async def reconcile(self) -> ReconcileReport:
        """Bring the manifest back in line with the blob keyspace.

        Entries without a blob are dropped; blobs without an entry are
        re-indexed from the metadata stored alongside them.
        """
        self._require_ready()
        report = ReconcileReport()

        async with self._write_lock:
            async with self.backend.transaction():
                manifest = await self._read_manifest()
                blob_ids = set(await self.backend.blob_ids())

                for entry in list(manifest.assets):
                    if entry.id not in blob_ids:
                        manifest = manifest.remove(entry.id, now=self._clock())
                        report.dropped_entries.append(entry.id)

                indexed = manifest.ids()
                for asset_id in sorted(blob_ids - indexed):
                    try:
                        record = await self.backend.get_blob(asset_id)
                    except StorageError as e:
                        logger.warning("unreadable_blob_skipped", id=asset_id, error=str(e))
                        continue
                    if record is None:
                        continue
                    manifest = manifest.upsert(record.metadata, now=self._clock())
                    report.restored_entries.append(asset_id)

                if report.repaired:
                    await self.backend.put_manifest(manifest)

        if report.repaired:
            logger.warning("manifest_repaired", **report.to_dict())
        return report

    async def stats(self) -> dict:
        """Return summary for status displays."""
        self._require_ready()
        return {**(await self._read_manifest()).summary(), **self.backend.describe()}


async def open_store(backend: StorageBackend, clock: Clock = now_ms) -> AssetStore:
    """Create and initialize a store over the given backend."""
    store = AssetStore(backend, clock=clock)
    try:
        await store.init()
    except StorageError:
        await store.close()
        await backend.close()
        raise
    return store

