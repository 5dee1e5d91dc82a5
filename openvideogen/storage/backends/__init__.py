"""Storage backends for the asset store."""

from __future__ import annotations

from openvideogen.common.config import Settings, get_settings
from openvideogen.storage.backends.base import StorageBackend
from openvideogen.storage.backends.filesystem import FileSystemBackend
from openvideogen.storage.backends.memory import MemoryBackend
from openvideogen.storage.backends.sqlite import SQLiteBackend


def create_backend(
    kind: str | None = None,
    settings: Settings | None = None,
) -> StorageBackend:
    """
    Factory function to get a storage backend.

    Args:
        kind: "filesystem", "sqlite" or "memory" (default from settings)
        settings: Settings to read the storage location from

    Returns:
        An unopened storage backend
    """
    settings = settings or get_settings()
    kind = kind or settings.storage_backend

    if kind == "filesystem":
        return FileSystemBackend(settings.storage_dir)
    elif kind == "sqlite":
        return SQLiteBackend(settings.storage_dir)
    elif kind == "memory":
        return MemoryBackend()
    else:
        raise ValueError(f"Unknown storage backend: {kind}")


__all__ = [
    "StorageBackend",
    "FileSystemBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "create_backend",
]
