"""Asset manifest: the single index record listing every stored asset."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from openvideogen.common.errors import StorageReadError
from openvideogen.common.logging import get_logger
from openvideogen.common.models import AssetMetadata, AssetType, now_ms

logger = get_logger(__name__)

SCHEMA_VERSION = 1
MANIFEST_KEY = "main"


class AssetManifest(BaseModel):
    """Ordered listing of all asset metadata in a store.

    Order is insertion order. Every mutation returns a new manifest.
    """

    model_config = ConfigDict(frozen=True)

    version: int = SCHEMA_VERSION
    assets: list[AssetMetadata] = Field(default_factory=list)
    last_updated: int = Field(default_factory=now_ms)

    def upsert(self, metadata: AssetMetadata, now: int | None = None) -> "AssetManifest":
        """Replace the entry with the same id in place, or append it."""
        new_assets = list(self.assets)
        for index, existing in enumerate(new_assets):
            if existing.id == metadata.id:
                new_assets[index] = metadata
                break
        else:
            new_assets.append(metadata)

        return self.model_copy(update={
            "assets": new_assets,
            "last_updated": now if now is not None else now_ms(),
        })

    def remove(self, asset_id: str, now: int | None = None) -> "AssetManifest":
        """Drop the entry with the given id (no-op if absent)."""
        return self.model_copy(update={
            "assets": [a for a in self.assets if a.id != asset_id],
            "last_updated": now if now is not None else now_ms(),
        })

    def get(self, asset_id: str) -> AssetMetadata | None:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        return None

    def __contains__(self, asset_id: object) -> bool:
        return any(a.id == asset_id for a in self.assets)

    def __len__(self) -> int:
        return len(self.assets)

    def ids(self) -> set[str]:
        return {a.id for a in self.assets}

    def by_type(
        self,
        asset_type: AssetType | None = None,
        newest_first: bool = False,
    ) -> list[AssetMetadata]:
        """Entries of one type (all types when None).

        Newest-first ordering sorts on created_at; entries with equal
        timestamps keep the later-inserted one first.
        """
        entries = [
            a for a in self.assets
            if asset_type is None or a.type == asset_type
        ]
        if newest_first:
            entries = sorted(reversed(entries), key=lambda a: a.created_at, reverse=True)
        return entries

    def newest(self, asset_type: AssetType) -> AssetMetadata | None:
        """Entry of the given type with the greatest created_at."""
        entries = self.by_type(asset_type, newest_first=True)
        return entries[0] if entries else None

    def total_size(self) -> int:
        return sum(a.size for a in self.assets)

    def summary(self) -> dict:
        """Return summary for logging."""
        counts = {t.value: 0 for t in AssetType}
        for asset in self.assets:
            counts[asset.type.value] += 1
        return {
            "version": self.version,
            "total": len(self.assets),
            "bytes": self.total_size(),
            "by_type": counts,
            "last_updated": self.last_updated,
        }


def migrate_manifest(data: dict[str, Any]) -> AssetManifest:
    """Load a persisted manifest record, upgrading older schema versions.

    Raises:
        StorageReadError: If the record was written by a newer schema, has
            no usable version, or cannot be parsed.
    """
    if not isinstance(data, dict):
        raise StorageReadError(f"Corrupt manifest record: expected an object, got {type(data).__name__}")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise StorageReadError(f"Corrupt manifest record: invalid schema version {version!r}")
    if version > SCHEMA_VERSION:
        raise StorageReadError(
            f"Manifest schema version {version} is newer than supported "
            f"version {SCHEMA_VERSION}"
        )

    # Each step upgrades a record from version N to N + 1.
    while version < SCHEMA_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            raise StorageReadError(f"No migration from manifest schema version {version}")
        data = step(data)
        version += 1
        logger.info("manifest_migrated", to_version=version)

    try:
        return AssetManifest.model_validate({**data, "version": SCHEMA_VERSION})
    except ValueError as e:
        raise StorageReadError(f"Corrupt manifest record: {e}") from e


_MIGRATIONS: dict[int, Any] = {}
