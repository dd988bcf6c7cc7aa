# version_ledger/storage/sqlite.py
import hashlib
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from version_ledger.core.errors import ConflictError, DocumentMissing, StoreUnreachable
from . import DocumentStore, StoredDocument


def _next_revision(previous: str, content: str) -> str:
    return hashlib.sha256(f"{previous}\n{content}".encode("utf-8")).hexdigest()


class SQLiteStore(DocumentStore):
    """SQLite-backed document store; CAS is a conditional UPDATE on the revision column."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("LEDGER_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "ledger.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        try:
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_schema()
        except sqlite3.Error as e:
            raise StoreUnreachable(f"Cannot open ledger database {self.db_path}: {e}") from e

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                path        TEXT    PRIMARY KEY,
                content     TEXT    NOT NULL,
                revision    TEXT    NOT NULL,
                message     TEXT    NOT NULL,
                updated_at  TEXT    NOT NULL
            )
        """)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnreachable("Store connection is closed")
        return self._conn

    def read(self, path: str) -> StoredDocument:
        try:
            row = self.conn.execute(
                "SELECT content, revision FROM documents WHERE path = ?", (path,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StoreUnreachable(f"Failed to read '{path}': {e}") from e
        if row is None:
            raise DocumentMissing(f"No document stored at '{path}'")
        return StoredDocument(content=row[0], revision=row[1])

    def write(self, path: str, content: str, expected_revision: Optional[str], message: str = "update ledger") -> str:
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        new_rev = _next_revision(expected_revision or "", content)
        try:
            if expected_revision is None:
                try:
                    self.conn.execute("""
                        INSERT INTO documents (path, content, revision, message, updated_at)
                        VALUES (?, ?, ?, ?, ?)
                    """, (path, content, new_rev, message, now))
                except sqlite3.IntegrityError as e:
                    raise ConflictError(f"Document '{path}' already exists") from e
                return new_rev

            cursor = self.conn.execute("""
                UPDATE documents
                SET content = ?, revision = ?, message = ?, updated_at = ?
                WHERE path = ? AND revision = ?
            """, (content, new_rev, message, now, path, expected_revision))
            if cursor.rowcount == 1:
                return new_rev

            exists = self.conn.execute("SELECT 1 FROM documents WHERE path = ?", (path,)).fetchone()
        except sqlite3.Error as e:
            raise StoreUnreachable(f"Failed to write '{path}': {e}") from e

        if exists is None:
            raise DocumentMissing(f"No document stored at '{path}'")
        raise ConflictError(f"Stale revision {expected_revision} for '{path}'")

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
