"""
Database schema definitions for the reference search backend.

Items of every index share one table holding their field data as JSON.
Each index with fulltext fields gets its own FTS5 virtual table, one
column per fulltext field, sharing rowids with the item table.
"""

import re
import sqlite3
from typing import Iterable

from ..core import get_logger, DatabaseError, SearchError
from .connection import DatabaseManager

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ITEMS_TABLE = """
CREATE TABLE IF NOT EXISTS search_api_item (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    index_id TEXT NOT NULL,
    item_id TEXT NOT NULL,
    language TEXT,
    data TEXT NOT NULL,
    indexed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(index_id, item_id)
)
"""

ITEMS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_search_api_item_index ON search_api_item(index_id)",
    "CREATE INDEX IF NOT EXISTS idx_search_api_item_language ON search_api_item(index_id, language)"
]


def validate_identifier(name: str, kind: str = "identifier") -> str:
    """
    Check that a name can be used verbatim as an SQL identifier.

    Raises:
        SearchError: If the name contains anything but letters, digits
                     and underscores, or starts with a digit.
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise SearchError(f"Invalid {kind} name: {name!r}", details={"kind": kind})
    return name


def fts_table_name(index_id: str) -> str:
    return f"search_api_fts_{validate_identifier(index_id, 'index')}"


def init_schema(manager: DatabaseManager) -> None:
    """Create the shared item table and its indexes if missing."""
    with manager.cursor() as cur:
        cur.execute(ITEMS_TABLE)
        for index_sql in ITEMS_INDEXES:
            cur.execute(index_sql)


def create_index_table(
    manager: DatabaseManager,
    index_id: str,
    fulltext_fields: Iterable[str],
    tokenizer: str = "unicode61"
) -> bool:
    """
    Create the FTS5 table of an index.

    Args:
        manager: Database to create the table in.
        index_id: Index machine name.
        fulltext_fields: One FTS5 column is created per field.
        tokenizer: FTS5 tokenizer specification.

    Returns:
        False if the index has no fulltext fields, True otherwise.
    """
    fields = [validate_identifier(field, "field") for field in fulltext_fields]
    if not fields:
        return False

    table = fts_table_name(index_id)
    columns = ", ".join(f'"{field}"' for field in fields)
    tokenizer = tokenizer.replace("'", "''")

    with manager.cursor() as cur:
        try:
            cur.execute(
                f"CREATE VIRTUAL TABLE IF NOT EXISTS {table} "
                f"USING fts5({columns}, tokenize='{tokenizer}')"
            )
        except sqlite3.OperationalError as e:
            raise DatabaseError(f"Failed to create FTS table: {e}", {"index": index_id})

    logger.info(f"Created fulltext table for index '{index_id}' ({', '.join(fields)})")
    return True


def has_index_table(manager: DatabaseManager, index_id: str) -> bool:
    with manager.connection() as conn:
        row = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (fts_table_name(index_id),)
        ).fetchone()
        return row is not None


def drop_index_tables(manager: DatabaseManager, index_id: str) -> None:
    """
    Drop the FTS5 table of an index and delete its items.

    Warning: This deletes all indexed data of the index.
    """
    logger.warning(f"Removing index '{index_id}' - all of its items will be deleted")

    with manager.cursor() as cur:
        cur.execute(f"DROP TABLE IF EXISTS {fts_table_name(index_id)}")
        cur.execute("DELETE FROM search_api_item WHERE index_id = ?", (index_id,))


def get_statistics(manager: DatabaseManager) -> dict:
    """
    Get per-index item counts.

    Returns:
        Dictionary mapping index ids to item counts, plus a "total" key.
    """
    with manager.connection() as conn:
        rows = conn.execute(
            "SELECT index_id, COUNT(*) AS count FROM search_api_item GROUP BY index_id"
        ).fetchall()

    stats = {row["index_id"]: row["count"] for row in rows}
    stats["total"] = sum(stats.values())
    return stats
