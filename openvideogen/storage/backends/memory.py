"""In-memory storage backend for tests and throwaway sessions."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from openvideogen.common.models import StoredAsset
from openvideogen.storage.backends.base import StorageBackend
from openvideogen.storage.manifest import AssetManifest


class MemoryBackend(StorageBackend):
    """Keeps both keyspaces in dictionaries.

    Transactions snapshot both keyspaces and restore them if the block raises.
    """

    name = "memory"
    transactional = True

    def __init__(self) -> None:
        self._blobs: dict[str, StoredAsset] = {}
        self._manifest: AssetManifest | None = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        blobs = dict(self._blobs)
        manifest = self._manifest
        try:
            yield
        except BaseException:
            self._blobs = blobs
            self._manifest = manifest
            raise

    async def put_blob(self, asset: StoredAsset) -> None:
        self._blobs[asset.id] = asset

    async def get_blob(self, asset_id: str) -> StoredAsset | None:
        return self._blobs.get(asset_id)

    async def delete_blob(self, asset_id: str) -> bool:
        return self._blobs.pop(asset_id, None) is not None

    async def blob_ids(self) -> list[str]:
        return list(self._blobs)

    async def clear_blobs(self) -> None:
        self._blobs.clear()

    async def get_manifest(self) -> AssetManifest | None:
        return self._manifest

    async def put_manifest(self, manifest: AssetManifest) -> None:
        self._manifest = manifest

    async def clear_manifest(self) -> None:
        self._manifest = None
