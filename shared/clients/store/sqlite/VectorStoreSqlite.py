"""SQLite implementation of VectorStoreInterface.

Embeddings are stored as JSON text; cosine similarity is computed in Python
by the shared top_k() scan. The connection is opened lazily by initialize()
and kept for the lifetime of the store.
"""

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from shared.clients.store.VectorStoreInterface import VectorStoreInterface
from shared.exceptions import ConfigurationError, StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.record import EmbeddingRecord

TABLE_NAME = "embeddings"
IN_MEMORY = ":memory:"

_CREATE_TABLE = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id TEXT PRIMARY KEY,
        document_id TEXT NOT NULL,
        chunk_index INTEGER NOT NULL,
        content TEXT NOT NULL,
        embedding TEXT NOT NULL,
        token_estimate INTEGER DEFAULT 0,
        source_path TEXT,
        model_id TEXT,
        updated_at TEXT
    )
"""

_CREATE_INDEX = f"CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_doc ON {TABLE_NAME}(document_id, chunk_index)"

_UPSERT = f"""
    INSERT INTO {TABLE_NAME} (id, document_id, chunk_index, content, embedding, token_estimate, source_path, model_id, updated_at)
    VALUES (:id, :document_id, :chunk_index, :content, :embedding, :token_estimate, :source_path, :model_id, :updated_at)
    ON CONFLICT(id) DO UPDATE SET
        content = excluded.content,
        embedding = excluded.embedding,
        token_estimate = excluded.token_estimate,
        source_path = excluded.source_path,
        model_id = excluded.model_id,
        updated_at = excluded.updated_at
"""

_SELECT_ALL = f"""
    SELECT id, document_id, chunk_index, content, embedding, token_estimate, source_path, model_id, updated_at
    FROM {TABLE_NAME}
    ORDER BY rowid
"""


class VectorStoreSqlite(VectorStoreInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._path = self.get_config_val("PATH", default="./data/vectors.sqlite", val_type="string")
        self._db: aiosqlite.Connection | None = None
        self._init_lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Sqlite"

    def get_path(self) -> str:
        """Returns the database location, absolute unless in-memory."""
        if self._path == IN_MEMORY:
            return self._path
        return str(Path(self._path).expanduser().resolve())

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PATH", val_type="string", default="./data/vectors.sqlite"),
        ]

    def _get_connection(self) -> aiosqlite.Connection:
        if self._db is None:
            raise ConfigurationError("Vector store not initialised. Call initialize() first.")
        return self._db

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        await self.initialize()

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def do_healthcheck(self) -> bool:
        try:
            async with self._get_connection().execute("SELECT 1") as cursor:
                return (await cursor.fetchone()) is not None
        except (ConfigurationError, sqlite3.Error) as exc:
            self.logging.warning("Healthcheck of vector store failed: %s", exc)
            return False

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._db is not None:
                return
            path = self.get_path()
            db: aiosqlite.Connection | None = None
            try:
                if path != IN_MEMORY:
                    Path(path).parent.mkdir(parents=True, exist_ok=True)
                db = await aiosqlite.connect(path)
                db.row_factory = aiosqlite.Row
                if path != IN_MEMORY:
                    await db.execute("PRAGMA journal_mode = WAL")
                await db.execute(_CREATE_TABLE)
                await db.execute(_CREATE_INDEX)
                await db.commit()
            except (OSError, sqlite3.Error) as exc:
                if db is not None:
                    await db.close()
                self.logging.error("Could not initialise vector store at %s: %s", path, exc)
                raise ConfigurationError(f"Vector store at '{path}' is unavailable: {exc}") from exc
            self._db = db
            self.logging.info("Vector store ready at %s.", path)

    ##########################################
    ########### STORAGE PRIMITIVES ###########
    ##########################################

    async def _do_upsert(self, record: EmbeddingRecord) -> None:
        db = self._get_connection()
        params = record.model_dump()
        params["embedding"] = json.dumps(record.embedding)
        params["updated_at"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            await db.execute(_UPSERT, params)
            await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Upsert of record {record.id!r} failed: {exc}") from exc

    async def _do_delete_by_document(self, document_id: str) -> int:
        db = self._get_connection()
        try:
            cursor = await db.execute(f"DELETE FROM {TABLE_NAME} WHERE document_id = ?", (document_id,))
            await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Delete of document {document_id!r} failed: {exc}") from exc
        return cursor.rowcount

    async def _do_fetch_all(self) -> list[dict[str, Any]]:
        db = self._get_connection()
        try:
            async with db.execute(_SELECT_ALL) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Scan of {TABLE_NAME} failed: {exc}") from exc
        records: list[dict[str, Any]] = []
        for row in rows:
            record = dict(row)
            record["embedding"] = json.loads(record["embedding"])
            records.append(record)
        return records

    async def count(self, document_id: str | None = None) -> int:
        db = self._get_connection()
        if document_id is None:
            query, params = f"SELECT COUNT(*) FROM {TABLE_NAME}", ()
        else:
            query, params = f"SELECT COUNT(*) FROM {TABLE_NAME} WHERE document_id = ?", (document_id,)
        try:
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Count on {TABLE_NAME} failed: {exc}") from exc
        return row[0]

    async def list_document_ids(self) -> list[str]:
        db = self._get_connection()
        try:
            async with db.execute(f"SELECT DISTINCT document_id FROM {TABLE_NAME} ORDER BY document_id") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Listing documents of {TABLE_NAME} failed: {exc}") from exc
        return [row[0] for row in rows]
