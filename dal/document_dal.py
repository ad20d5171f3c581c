"""Async Data Access Layer for the DOCUMENTS table.

Provides DocumentDAL class with async CRUD operations compatible with
`utils.database_init.AsyncDatabaseInitializer`. Each row stores one JSON
document under a slash-separated collection path.
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from utils.database_init import AsyncDatabaseInitializer

TIMESTAMP_FIELD = "timestamp"

StoredDocument = Tuple[str, Dict[str, Any]]


class DocumentDAL:
    """Data access layer for JSON documents grouped by collection path.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = ("id", "collection_path", "data", "created_at")
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_document(self, collection_path: str, data: Dict[str, Any]) -> str:
        """Insert a new document and return its generated id.

        The `timestamp` field is assigned here, replacing any client value.
        """
        doc_id = uuid.uuid4().hex
        created_at = time.time()
        body = {key: value for key, value in data.items() if key != TIMESTAMP_FIELD}

        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO DOCUMENTS ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?)",
                (doc_id, collection_path, json.dumps(body), created_at),
            )
            await conn.commit()
        return doc_id

    async def get_document(self, collection_path: str, doc_id: str) -> Optional[StoredDocument]:
        """Return `(id, data)` for the document, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM DOCUMENTS WHERE collection_path = ? AND id = ?",
                (collection_path, doc_id),
            )
            row = await cur.fetchone()
            return self._row_to_document(row) if row else None

    async def list_documents(self, collection_path: str) -> List[StoredDocument]:
        """List every document in a collection, in insertion order."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM DOCUMENTS WHERE collection_path = ? ORDER BY rowid",
                (collection_path,),
            )
            rows = await cur.fetchall()
            return [self._row_to_document(r) for r in rows]

    async def update_document(self, collection_path: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """Merge `fields` into a document. Returns True if a row was changed."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT data FROM DOCUMENTS WHERE collection_path = ? AND id = ?",
                (collection_path, doc_id),
            )
            row = await cur.fetchone()
            if row is None:
                return False

            data = json.loads(row[0])
            data.update({key: value for key, value in fields.items() if key != TIMESTAMP_FIELD})
            await conn.execute(
                "UPDATE DOCUMENTS SET data = ? WHERE collection_path = ? AND id = ?",
                (json.dumps(data), collection_path, doc_id),
            )
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_document(row: Sequence[Any]) -> StoredDocument:
        """Convert a DB row tuple into `(id, data)` with the timestamp folded in."""
        data = json.loads(row[2])
        data[TIMESTAMP_FIELD] = row[3]
        return row[0], data
