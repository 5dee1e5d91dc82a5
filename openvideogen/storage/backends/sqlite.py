"""SQLite storage backend with real multi-key transactions."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from openvideogen.common.errors import StorageReadError, StorageWriteError
from openvideogen.common.logging import get_logger
from openvideogen.common.models import AssetMetadata, StoredAsset
from openvideogen.storage.backends.base import StorageBackend
from openvideogen.storage.manifest import (
    MANIFEST_KEY,
    SCHEMA_VERSION,
    AssetManifest,
    migrate_manifest,
)

logger = get_logger(__name__)

DEFAULT_DB_NAME = "openvideogen.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS assets (
    id TEXT PRIMARY KEY,
    metadata TEXT NOT NULL,
    blob BLOB NOT NULL
);
CREATE TABLE IF NOT EXISTS manifest (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
"""


class _Connection:
    """A sqlite3 connection that is only touched by one thread at a time."""

    def __init__(self, path: Path):
        self._conn = sqlite3.connect(
            path,
            check_same_thread=False,
            isolation_level=None,
        )
        self._lock = threading.Lock()

    def call(self, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        with self._lock:
            return fn(self._conn)

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class SQLiteBackend(StorageBackend):
    """Both keyspaces as tables in one database file.

    Writes go through one connection and are grouped with BEGIN IMMEDIATE /
    COMMIT inside transaction(). Reads use a second connection, so they only
    ever see committed state.
    """

    name = "sqlite"
    transactional = True

    def __init__(self, path: str | Path):
        path = Path(path).expanduser()
        if path.suffix != ".db":
            path = path / DEFAULT_DB_NAME
        self.path = path
        self._writer: _Connection | None = None
        self._reader: _Connection | None = None

    async def _run(self, conn: _Connection | None, fn: Callable[[sqlite3.Connection], Any]) -> Any:
        if conn is None:
            raise StorageReadError("SQLite backend is not open")
        return await asyncio.to_thread(conn.call, fn)

    async def _write(self, fn: Callable[[sqlite3.Connection], Any], what: str) -> Any:
        try:
            return await self._run(self._writer, fn)
        except sqlite3.Error as e:
            raise StorageWriteError(f"Failed to {what}: {e}") from e

    async def _read(self, fn: Callable[[sqlite3.Connection], Any], what: str) -> Any:
        try:
            return await self._run(self._reader, fn)
        except sqlite3.Error as e:
            raise StorageReadError(f"Failed to {what}: {e}") from e

    # Lifecycle

    def _open_sync(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        writer = _Connection(self.path)
        writer.call(lambda c: c.execute("PRAGMA journal_mode=WAL"))
        writer.call(lambda c: c.executescript(_SCHEMA))
        writer.call(lambda c: c.execute(f"PRAGMA user_version={SCHEMA_VERSION}"))
        self._writer = writer
        self._reader = _Connection(self.path)

    async def open(self) -> None:
        if self._writer is not None:
            return
        try:
            await asyncio.to_thread(self._open_sync)
        except (OSError, sqlite3.Error) as e:
            raise StorageWriteError(f"Cannot open database {self.path}: {e}") from e
        logger.debug("sqlite_backend_opened", path=str(self.path))

    async def close(self) -> None:
        for conn in (self._reader, self._writer):
            if conn is not None:
                await asyncio.to_thread(conn.close)
        self._reader = None
        self._writer = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        await self._write(lambda c: c.execute("BEGIN IMMEDIATE"), "begin transaction")
        try:
            yield
        except BaseException:
            await self._write(lambda c: c.execute("ROLLBACK"), "roll back transaction")
            raise
        await self._write(lambda c: c.execute("COMMIT"), "commit transaction")

    # Blob keyspace

    async def put_blob(self, asset: StoredAsset) -> None:
        metadata = asset.metadata.model_dump_json()
        await self._write(
            lambda c: c.execute(
                "INSERT OR REPLACE INTO assets (id, metadata, blob) VALUES (?, ?, ?)",
                (asset.id, metadata, sqlite3.Binary(asset.blob)),
            ),
            f"write asset {asset.id}",
        )

    async def get_blob(self, asset_id: str) -> StoredAsset | None:
        row = await self._read(
            lambda c: c.execute(
                "SELECT metadata, blob FROM assets WHERE id = ?", (asset_id,)
            ).fetchone(),
            f"read asset {asset_id}",
        )
        if row is None:
            return None
        try:
            metadata = AssetMetadata.model_validate_json(row[0])
        except ValueError as e:
            raise StorageReadError(f"Corrupt metadata for asset {asset_id}: {e}") from e
        return StoredAsset(blob=bytes(row[1]), metadata=metadata)

    async def delete_blob(self, asset_id: str) -> bool:
        cursor = await self._write(
            lambda c: c.execute("DELETE FROM assets WHERE id = ?", (asset_id,)),
            f"delete asset {asset_id}",
        )
        return cursor.rowcount > 0

    async def blob_ids(self) -> list[str]:
        rows = await self._read(
            lambda c: c.execute("SELECT id FROM assets ORDER BY id").fetchall(),
            "list assets",
        )
        return [row[0] for row in rows]

    async def clear_blobs(self) -> None:
        await self._write(lambda c: c.execute("DELETE FROM assets"), "clear assets")

    # Manifest keyspace

    async def get_manifest(self) -> AssetManifest | None:
        row = await self._read(
            lambda c: c.execute(
                "SELECT data FROM manifest WHERE key = ?", (MANIFEST_KEY,)
            ).fetchone(),
            "read manifest",
        )
        if row is None:
            return None
        try:
            return migrate_manifest(json.loads(row[0]))
        except ValueError as e:
            raise StorageReadError(f"Corrupt manifest record: {e}") from e

    async def put_manifest(self, manifest: AssetManifest) -> None:
        data = manifest.model_dump_json()
        await self._write(
            lambda c: c.execute(
                "INSERT OR REPLACE INTO manifest (key, data) VALUES (?, ?)",
                (MANIFEST_KEY, data),
            ),
            "write manifest",
        )

    async def clear_manifest(self) -> None:
        await self._write(lambda c: c.execute("DELETE FROM manifest"), "clear manifest")

    def describe(self) -> dict:
        return {**super().describe(), "path": str(self.path)}
