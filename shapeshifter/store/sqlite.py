"""
SQLite document store for Shapeshifter.

This module persists every collection in a single SQLite database:
- collections: registered collection names
- documents: JSON bodies keyed by (collection, document_id)

Invariants:
    - A collection row must exist before documents can be written to it
    - set() and remove() run in one transaction per batch
    - Documents are returned in first-insertion order (rowid), upserts keep position

How to change safely:
    - Schema migrations must be backward compatible
    - Use transactions for all write operations
    - Bump SCHEMA_VERSION when the table layout changes

Table schema:
    collections:
        - name TEXT PRIMARY KEY
        - created_at INTEGER (Unix ms)

    documents:
        - collection TEXT
        - document_id TEXT
        - body_json TEXT
        - updated_at INTEGER (Unix ms)
        - PRIMARY KEY (collection, document_id)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import CollectionExistsError, NotFoundError
from .base import CollectionStore, Document

logger = logging.getLogger(__name__)


class SqliteCollectionStore:
    """Handle to one collection inside a SqliteDocumentStore."""

    def __init__(self, name: str, owner: SqliteDocumentStore) -> None:
        self.name = name
        self._owner = owner

    async def get(self, document_id: str) -> Document | None:
        with self._owner._get_connection() as conn:
            row = conn.execute(
                "SELECT body_json FROM documents WHERE collection = ? AND document_id = ?",
                (self.name, document_id),
            ).fetchone()
            return json.loads(row["body_json"]) if row else None

    async def get_all(self) -> list[Document]:
        with self._owner._get_connection() as conn:
            rows = conn.execute(
                "SELECT body_json FROM documents WHERE collection = ? ORDER BY rowid",
                (self.name,),
            ).fetchall()
            return [json.loads(row["body_json"]) for row in rows]

    async def set(self, documents: list[Document]) -> None:
        if not documents:
            return
        now = int(time.time() * 1000)
        rows = [
            (self.name, document["_id"], json.dumps(document), now) for document in documents
        ]

        async with self._owner._lock:
            with self._owner._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    self._owner._require_collection(conn, self.name)
                    conn.executemany(
                        """
                        INSERT INTO documents (collection, document_id, body_json, updated_at)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT (collection, document_id)
                        DO UPDATE SET body_json = excluded.body_json,
                                      updated_at = excluded.updated_at
                        """,
                        rows,
                    )
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise

    async def remove(self, document_ids: list[str]) -> None:
        if not document_ids:
            return
        async with self._owner._lock:
            with self._owner._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.executemany(
                        "DELETE FROM documents WHERE collection = ? AND document_id = ?",
                        [(self.name, document_id) for document_id in document_ids],
                    )
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise


class SqliteDocumentStore:
    """SQLite-backed DocumentStore.

    Thread safety:
        Each operation opens its own connection.
        Writes are serialized through an asyncio lock; SQLite WAL mode
        allows reads during writes.

    Example:
        >>> store = SqliteDocumentStore("/var/lib/shapeshifter")
        >>> await store.initialize()
        >>> albums = await store.create_collection("albums")
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        db_filename: str = "shapeshifter.db",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory for the SQLite database file
            db_filename: Database file name
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_filename
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._lock = asyncio.Lock()
        self._initialized = False

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection, creating the schema on first use."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            if not self._initialized:
                self._create_schema(conn)
                self._initialized = True
            yield conn
        finally:
            conn.close()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS collections (
                name TEXT PRIMARY KEY,
                created_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                document_id TEXT NOT NULL,
                body_json TEXT NOT NULL,
                updated_at INTEGER NOT NULL,
                PRIMARY KEY (collection, document_id)
            );

            CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection);

            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES (1, strftime('%s', 'now') * 1000);
        """)

    def _require_collection(self, conn: sqlite3.Connection, name: str) -> None:
        row = conn.execute("SELECT 1 FROM collections WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise NotFoundError(f"Collection {name} not found", "collection", name)

    async def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        with self._get_connection():
            logger.info(f"Initialized document store: {self.db_path}")

    async def create_collection(self, name: str) -> CollectionStore:
        async with self._lock:
            with self._get_connection() as conn:
                try:
                    conn.execute(
                        "INSERT INTO collections (name, created_at) VALUES (?, ?)",
                        (name, int(time.time() * 1000)),
                    )
                except sqlite3.IntegrityError:
                    raise CollectionExistsError(name)
        logger.info(f"Created collection: {name}")
        return SqliteCollectionStore(name, self)

    async def get_collection(self, name: str) -> CollectionStore:
        with self._get_connection() as conn:
            self._require_collection(conn, name)
        return SqliteCollectionStore(name, self)

    async def get_all_collections(self) -> list[CollectionStore]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT name FROM collections ORDER BY name").fetchall()
        return [SqliteCollectionStore(row["name"], self) for row in rows]

    async def delete_collection(self, name: str) -> None:
        async with self._lock:
            with self._get_connection() as conn:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    conn.execute("DELETE FROM documents WHERE collection = ?", (name,))
                    conn.execute("DELETE FROM collections WHERE name = ?", (name,))
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
        logger.info(f"Deleted collection: {name}")

    async def close(self) -> None:
        """Nothing to release; connections are per-operation."""
        return None
