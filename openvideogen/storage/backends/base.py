"""Storage backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

from openvideogen.common.models import StoredAsset
from openvideogen.storage.manifest import AssetManifest


class StorageBackend(ABC):
    """Two keyspaces behind one handle.

    The blob keyspace maps asset id to a record holding the raw bytes and the
    asset's metadata. The manifest keyspace holds a single record under
    ``MANIFEST_KEY``. Backends translate their native failures into
    StorageReadError / StorageWriteError.
    """

    name: str = "base"

    # True when transaction() really groups blob and manifest writes.
    transactional: bool = False

    async def open(self) -> None:
        """Prepare both keyspaces, creating them if absent."""

    async def close(self) -> None:
        """Release any underlying resources."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Group the writes issued inside the block.

        The default groups nothing: each write lands on its own.
        """
        yield

    # Blob keyspace

    @abstractmethod
    async def put_blob(self, asset: StoredAsset) -> None:
        """Write (or overwrite) the record for asset.id."""

    @abstractmethod
    async def get_blob(self, asset_id: str) -> StoredAsset | None:
        """Read the record for asset_id, None if absent."""

    @abstractmethod
    async def delete_blob(self, asset_id: str) -> bool:
        """Remove the record; return whether one existed."""

    @abstractmethod
    async def blob_ids(self) -> list[str]:
        """Ids of every record in the blob keyspace."""

    @abstractmethod
    async def clear_blobs(self) -> None:
        """Empty the blob keyspace."""

    # Manifest keyspace

    @abstractmethod
    async def get_manifest(self) -> AssetManifest | None:
        """Read the manifest record, None if it was never written."""

    @abstractmethod
    async def put_manifest(self, manifest: AssetManifest) -> None:
        """Write the manifest record."""

    @abstractmethod
    async def clear_manifest(self) -> None:
        """Empty the manifest keyspace."""

    def describe(self) -> dict:
        """Return summary for logging."""
        return {"backend": self.name, "transactional": self.transactional}
