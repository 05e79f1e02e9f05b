"""SQLite-backed history log.

The store keeps one append-only table of generation events. All methods are
async, wrapping synchronous sqlite3 calls with asyncio.to_thread, and every
statement is parameterized so prompt text is stored verbatim.

Example:
    async with HistoryStore("data/history.db") as store:
        await store.append("a cat", "Once upon a time...", "3f2a.png")
        records = await store.list_all()

For testing, use `:memory:` as the db_path.
"""

import asyncio
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from storyforge.core.errors import PersistenceFailure
from storyforge.core.logging import get_logger
from storyforge.ports.repositories import HistoryRecord

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# SQL Definitions
# =============================================================================

_CREATE_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    prompt TEXT,
    story TEXT,
    filename TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

_CREATE_HISTORY_FILENAME_INDEX = """
CREATE INDEX IF NOT EXISTS idx_history_filename ON history(filename);
"""

_SELECT_HISTORY_COLUMNS = """
PRAGMA table_info(history);
"""

_ADD_STORY_COLUMN = """
ALTER TABLE history ADD COLUMN story TEXT;
"""

_INSERT_HISTORY = """
INSERT INTO history (prompt, story, filename) VALUES (?, ?, ?);
"""

_SELECT_ALL_HISTORY = """
SELECT id, prompt, story, filename, created_at
FROM history
ORDER BY id DESC;
"""

_SELECT_FILENAMES = """
SELECT DISTINCT filename FROM history WHERE filename IS NOT NULL;
"""

_DELETE_HISTORY_BY_FILENAME = """
DELETE FROM history WHERE filename = ?;
"""


class HistoryStore:
    """Append-only history log persisted in SQLite.

    A single connection is shared across operations. Writes from overlapping
    requests are serialized by SQLite's own transaction handling.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
        """
        self._db_path = str(db_path)
        self._connection: sqlite3.Connection | None = None

    async def __aenter__(self) -> "HistoryStore":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    @property
    def db_path(self) -> str:
        return self._db_path

    async def connect(self) -> None:
        """Open the database and make sure the schema is current.

        Raises:
            PersistenceFailure: If the database cannot be opened or migrated.
        """
        logger.debug("connecting_to_database", path=self._db_path)
        try:
            self._connection = await asyncio.to_thread(self._connect_sync)
        except (sqlite3.Error, OSError) as ex:
            raise PersistenceFailure(
                f"Could not open history database: {ex}",
                operation="connect",
                original_error=ex,
            ) from ex
        await self.initialize()

    def _connect_sync(self) -> sqlite3.Connection:
        """Synchronous connection setup.

        check_same_thread=False is required because statements run on
        asyncio.to_thread workers, not on the thread that opened the connection.
        """
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    async def initialize(self) -> None:
        """Create the history table, or migrate an older one in place.

        Tables created before stories were recorded lack the `story` column;
        it is added with NULL for existing rows. Safe to run on every startup.
        """

        def init_sync(conn: sqlite3.Connection) -> bool:
            conn.execute(_CREATE_HISTORY_TABLE)
            columns = {row["name"] for row in conn.execute(_SELECT_HISTORY_COLUMNS)}
            migrated = False
            if "story" not in columns:
                conn.execute(_ADD_STORY_COLUMN)
                migrated = True
            conn.execute(_CREATE_HISTORY_FILENAME_INDEX)
            conn.commit()
            return migrated

        migrated = await self._run("initialize", init_sync)
        if migrated:
            logger.info("history_schema_migrated", added_column="story")

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            logger.debug("closing_database")
            await asyncio.to_thread(self._connection.close)
            self._connection = None

    async def _run(
        self, operation: str, func: Callable[[sqlite3.Connection], T]
    ) -> T:
        """Run a synchronous database function in a worker thread.

        Raises:
            PersistenceFailure: If the store is not connected or sqlite fails.
        """
        conn = self._connection
        if conn is None:
            raise PersistenceFailure(
                "History store not connected. Call connect() or use async context manager.",
                operation=operation,
            )
        try:
            return await asyncio.to_thread(func, conn)
        except sqlite3.Error as ex:
            raise PersistenceFailure(
                f"History {operation} failed: {ex}",
                operation=operation,
                original_error=ex,
            ) from ex

    async def append(self, prompt: str, story: str | None, filename: str) -> int:
        """Insert a new record and return its id."""

        def insert_sync(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(_INSERT_HISTORY, (prompt, story, filename))
            conn.commit()
            return cursor.lastrowid or 0

        record_id = await self._run("append", insert_sync)
        logger.debug("history_appended", record_id=record_id, filename=filename)
        return record_id

    async def list_all(self) -> list[HistoryRecord]:
        """Return every record, newest first by insertion order."""

        def query_sync(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(_SELECT_ALL_HISTORY).fetchall()

        rows = await self._run("list", query_sync)
        return [
            HistoryRecord(
                id=row["id"],
                prompt=row["prompt"],
                story=row["story"],
                filename=row["filename"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def list_filenames(self) -> set[str]:
        """Return the set of filenames referenced by any record."""

        def query_sync(conn: sqlite3.Connection) -> set[str]:
            return {row["filename"] for row in conn.execute(_SELECT_FILENAMES)}

        return await self._run("list_filenames", query_sync)

    async def delete_by_filename(self, filename: str) -> int:
        """Delete records whose filename matches exactly.

        Returns:
            Number of records removed; 0 if none matched.
        """

        def delete_sync(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(_DELETE_HISTORY_BY_FILENAME, (filename,))
            conn.commit()
            return cursor.rowcount

        deleted = await self._run("delete", delete_sync)
        if deleted:
            logger.debug("history_deleted", filename=filename, count=deleted)
        return deleted

    async def ping(self) -> None:
        """Run a trivial query to prove the connection is usable."""

        def ping_sync(conn: sqlite3.Connection) -> None:
            conn.execute("SELECT 1").fetchone()

        await self._run("ping", ping_sync)
