"""Per-user document store on SQLite.

Each record is stored as a JSON document under (user_id, collection), the
same namespace layout as users/{userId}/{collection}/{docId}. The store does
no schema enforcement; that is the pipeline's job.
"""

import json
import re
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any
from uuid import uuid4

from finvault.config import settings
from finvault.models import Collection

# SQL schema
SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    collection TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(user_id, collection);
"""

FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
OPERATORS = frozenset({"==", "!=", ">", ">=", "<", "<="})

# (field, operator, value), e.g. ("date", ">=", "2024-01-01")
Filter = tuple[str, str, Any]


class StorageError(Exception):
    """Raised when a document cannot be written or queried."""

    pass


def _json_path(field: str) -> str:
    if not FIELD_NAME.match(field):
        raise StorageError(f"Invalid field name: {field!r}")
    return f"$.{field}"


class DocumentStore:
    """SQLite-backed per-user document collections."""

    def __init__(self, db_path: Path | None = None):
        if db_path is None:
            settings.ensure_directories()
        self.db_path = db_path or settings.db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def insert(self, user_id: str, collection: Collection | str, record: dict[str, Any]) -> str:
        """Insert a document and return its generated id."""
        if not user_id:
            raise StorageError("A user id is required")

        collection_name = Collection(collection).value
        doc_id = uuid4().hex
        payload = json.dumps(record)

        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO documents (id, user_id, collection, data) VALUES (?, ?, ?, ?)",
                (doc_id, user_id, collection_name, payload),
            )
            conn.commit()
        return doc_id

    def list_all(
        self,
        user_id: str,
        collection: Collection | str,
        filters: Iterable[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        List a user's documents in a collection.

        Args:
            user_id: Owner of the documents
            collection: Collection name
            filters: (field, operator, value) conditions on document fields, ANDed
            order_by: Document field to sort on (insertion order when omitted)
            descending: Sort direction for `order_by`
            limit: Maximum number of documents

        Returns:
            Documents with their "id" added
        """
        query = "SELECT id, data FROM documents WHERE user_id = ? AND collection = ?"
        params: list[Any] = [user_id, Collection(collection).value]

        for field, operator, value in filters or []:
            if operator not in OPERATORS:
                raise StorageError(f"Unsupported filter operator: {operator!r}")
            sql_operator = "=" if operator == "==" else operator
            query += f" AND json_extract(data, ?) {sql_operator} ?"
            params.extend([_json_path(field), value])

        if order_by:
            query += f" ORDER BY json_extract(data, ?) {'DESC' if descending else 'ASC'}, rowid"
            params.append(_json_path(order_by))
        else:
            query += " ORDER BY rowid"

        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._get_connection() as conn:
            cursor = conn.execute(query, params)
            return [{"id": row["id"], **json.loads(row["data"])} for row in cursor.fetchall()]

    def count(self, user_id: str, collection: Collection | str) -> int:
        """Count a user's documents in a collection."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT COUNT(*) FROM documents WHERE user_id = ? AND collection = ?",
                (user_id, Collection(collection).value),
            )
            return cursor.fetchone()[0]


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    """Shared store for the running application."""
    return DocumentStore()
