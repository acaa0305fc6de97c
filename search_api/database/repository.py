"""
Item repository for the reference search backend.

Stores item field data as JSON and keeps each index's FTS5 table in sync.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from ..core import get_logger
from .connection import DatabaseManager
from .schema import fts_table_name, validate_identifier

logger = get_logger(__name__)

LANGUAGE_FIELD = "search_api_language"


def fulltext_value(value: Any) -> str:
    """Flatten a field value into the text stored in the FTS5 table."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(fulltext_value(v) for v in value)
    return str(value)


class ItemRepository:
    """
    Repository for item CRUD operations.

    Provides methods for saving, fetching and deleting the items of an
    index.
    """

    def __init__(self, manager: DatabaseManager):
        self.manager = manager

    def save_items(
        self,
        index_id: str,
        fulltext_fields: Iterable[str],
        items: Dict[str, Dict[str, Any]]
    ) -> List[str]:
        """
        Insert or replace items in a single transaction.

        Args:
            index_id: Index the items belong to.
            fulltext_fields: Fields copied into the FTS5 table. Empty if the
                             index has no FTS5 table.
            items: Field values keyed by item id. The language is read from
                   the "search_api_language" field.

        Returns:
            Ids of the saved items.
        """
        fields = [validate_identifier(field, "field") for field in fulltext_fields]
        table = fts_table_name(index_id) if fields else None
        saved = []

        with self.manager.cursor() as cur:
            for item_id, values in items.items():
                cur.execute("""
                    INSERT INTO search_api_item (index_id, item_id, language, data)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(index_id, item_id) DO UPDATE SET
                        language = excluded.language,
                        data = excluded.data,
                        indexed_at = CURRENT_TIMESTAMP
                """, (index_id, str(item_id), values.get(LANGUAGE_FIELD), json.dumps(values, default=str)))

                rowid = cur.execute(
                    "SELECT id FROM search_api_item WHERE index_id = ? AND item_id = ?",
                    (index_id, str(item_id))
                ).fetchone()["id"]

                if table:
                    columns = ", ".join(f'"{field}"' for field in fields)
                    placeholders = ", ".join("?" for _ in fields)
                    cur.execute(f"DELETE FROM {table} WHERE rowid = ?", (rowid,))
                    cur.execute(
                        f"INSERT INTO {table} (rowid, {columns}) VALUES (?, {placeholders})",
                        (rowid, *(fulltext_value(values.get(field)) for field in fields))
                    )

                saved.append(str(item_id))

        return saved

    def delete_items(self, index_id: str, item_ids: Iterable[str], has_fulltext: bool) -> int:
        """
        Delete items of an index.

        Returns:
            Number of items deleted.
        """
        item_ids = [str(item_id) for item_id in item_ids]
        if not item_ids:
            return 0

        placeholders = ", ".join("?" for _ in item_ids)
        with self.manager.cursor() as cur:
            if has_fulltext:
                cur.execute(f"""
                    DELETE FROM {fts_table_name(index_id)} WHERE rowid IN (
                        SELECT id FROM search_api_item
                        WHERE index_id = ? AND item_id IN ({placeholders})
                    )
                """, (index_id, *item_ids))
            cur.execute(
                f"DELETE FROM search_api_item WHERE index_id = ? AND item_id IN ({placeholders})",
                (index_id, *item_ids)
            )
            deleted = cur.rowcount

        if deleted > 0:
            logger.debug(f"Deleted {deleted} items from index '{index_id}'")

        return deleted

    def delete_all(self, index_id: str, has_fulltext: bool) -> int:
        """Delete every item of an index. Returns the number deleted."""
        with self.manager.cursor() as cur:
            if has_fulltext:
                cur.execute(f"DELETE FROM {fts_table_name(index_id)}")
            cur.execute("DELETE FROM search_api_item WHERE index_id = ?", (index_id,))
            return cur.rowcount

    def get_item(self, index_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the stored field values of an item.

        Returns:
            Field values dict, or None if the item is not indexed.
        """
        with self.manager.connection() as conn:
            row = conn.execute(
                "SELECT data FROM search_api_item WHERE index_id = ? AND item_id = ?",
                (index_id, str(item_id))
            ).fetchone()
            return json.loads(row["data"]) if row else None

    def count(self, index_id: str) -> int:
        with self.manager.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM search_api_item WHERE index_id = ?",
                (index_id,)
            ).fetchone()
            return row["count"]
