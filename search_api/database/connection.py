"""
SQLite connection management for the reference search backend.

Every operation opens a short-lived connection in WAL mode, so searches
can read while items are being indexed. The backend needs an SQLite build
with the FTS5 extension and the JSON functions; check_features() verifies
both up front.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..core import get_config_or_defaults, get_logger, DatabaseError

logger = get_logger(__name__)


class DatabaseManager:
    """
    Opens connections to the backend's SQLite file.

    Attributes:
        db_path: Location of the database file.
    """

    def __init__(self, db_path: Path = None):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file. Defaults to the configured
                     "paths.database_path".
        """
        if db_path is None:
            db_path = get_config_or_defaults().paths.database_path
        self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _create_connection(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )

            conn.row_factory = sqlite3.Row

            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA temp_store=MEMORY")

            return conn

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to connect to database: {e}", {"path": str(self.db_path)})

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Read-only style access: nothing is committed on exit.

        Yields:
            SQLite connection with Row factory enabled.
        """
        conn = self._create_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def cursor(self, commit: bool = True) -> Generator[sqlite3.Cursor, None, None]:
        """
        Transactional access, rolled back if the block raises.

        Args:
            commit: Whether to commit on successful exit.

        Yields:
            SQLite cursor for query execution.
        """
        conn = self._create_connection()
        cursor = conn.cursor()

        try:
            yield cursor
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def check_features(self) -> None:
        """
        Verify that this SQLite build can run the backend.

        Raises:
            DatabaseError: If FTS5 or the JSON functions are missing.
        """
        with self.connection() as conn:
            try:
                conn.execute("CREATE VIRTUAL TABLE temp.search_api_feature_check USING fts5(body)")
                conn.execute("DROP TABLE temp.search_api_feature_check")
                conn.execute("SELECT value FROM json_each('[1]')").fetchall()
            except sqlite3.OperationalError as e:
                raise DatabaseError(
                    f"SQLite {sqlite3.sqlite_version} lacks a required feature: {e}",
                    {"path": str(self.db_path), "sqlite_version": sqlite3.sqlite_version}
                )

        logger.debug(f"SQLite {sqlite3.sqlite_version} supports FTS5 and JSON")


if __name__ == "__main__":
    import tempfile

    with tempfile.TemporaryDirectory() as tmpdir:
        manager = DatabaseManager(Path(tmpdir) / "items.db")
        manager.check_features()

        with manager.cursor() as cur:
            cur.execute("CREATE TABLE item (id INTEGER PRIMARY KEY, data TEXT)")
            cur.execute("INSERT INTO item (data) VALUES (?)", ('{"tags": ["a", "b"]}',))

        with manager.connection() as conn:
            for row in conn.execute("SELECT item.id, j.value FROM item, json_each(item.data, '$.tags') j"):
                print(f"  id={row['id']}, tag={row['value']}")
