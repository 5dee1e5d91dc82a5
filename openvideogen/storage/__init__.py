"""Local asset persistence: id scheme, manifest index and asset store."""

from openvideogen.storage.backends import (
    FileSystemBackend,
    MemoryBackend,
    SQLiteBackend,
    StorageBackend,
    create_backend,
)
from openvideogen.storage.ids import (
    AssetIdGenerator,
    AssetIdParts,
    generate_asset_id,
    is_safe_asset_id,
    parse_asset_id,
    prompt_hash,
)
from openvideogen.storage.manifest import (
    MANIFEST_KEY,
    SCHEMA_VERSION,
    AssetManifest,
    migrate_manifest,
)
from openvideogen.storage.store import AssetStore, ReconcileReport, open_store

__all__ = [
    # Backends
    "StorageBackend",
    "FileSystemBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "create_backend",
    # Ids
    "AssetIdGenerator",
    "AssetIdParts",
    "generate_asset_id",
    "is_safe_asset_id",
    "parse_asset_id",
    "prompt_hash",
    # Manifest
    "MANIFEST_KEY",
    "SCHEMA_VERSION",
    "AssetManifest",
    "migrate_manifest",
    # Store
    "AssetStore",
    "ReconcileReport",
    "open_store",
]
