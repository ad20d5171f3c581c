import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import aiosqlite

DB_FILENAME = "app.db"

_SCHEMA = (
    "PRAGMA journal_mode=WAL;",
    """
    CREATE TABLE IF NOT EXISTS DOCUMENTS (
        id TEXT PRIMARY KEY,
        collection_path TEXT NOT NULL,
        data TEXT NOT NULL,
        created_at REAL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_collection ON DOCUMENTS(collection_path)",
)


def _resolve_db_dir(db_dir: Optional[Union[Path, str]]) -> Path:
    """Pick the explicit directory or DATABASE_DIR and make sure it exists."""
    raw = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")
    if raw is None or not raw.strip():
        raise RuntimeError(
            "DATABASE_DIR must name a writable directory for the history database."
        )

    resolved = Path(raw).expanduser()
    if resolved.exists() and not resolved.is_dir():
        raise RuntimeError(f"DATABASE_DIR={raw!r} is a file, not a directory ({resolved}).")

    try:
        resolved.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create history database directory {resolved}") from exc
    return resolved


class AsyncDatabaseInitializer:
    """
    Own the SQLite file that backs the history document store.

    - The file lives at `<db_dir>/app.db`; `db_dir` defaults to DATABASE_DIR.
    - The schema is created lazily on first use and existing rows are kept,
      so history survives restarts.
    - `connection()` yields a fresh `aiosqlite.Connection` per unit of work.
    """

    def __init__(self, db_dir: Optional[Union[Path, str]] = None) -> None:
        self.db_dir = _resolve_db_dir(db_dir)
        self.db_path = self.db_dir / DB_FILENAME
        self._ready = False
        self._lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """Create the DOCUMENTS table and index if missing. Idempotent per instance."""
        if self._ready:
            return
        async with self._lock:
            if self._ready:
                return
            await self._apply_schema()
            self._ready = True

    async def _apply_schema(self, attempts: int = 3) -> None:
        for attempt in range(1, attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    for statement in _SCHEMA:
                        await db.execute(statement)
                    await db.commit()
                return
            except FileNotFoundError:
                # A freshly created directory can briefly be invisible on network filesystems.
                if attempt == attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection to the history database, creating the schema first."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
