"""
Reference search backend using SQLite FTS5.

Executes keyword searches with BM25 ranking, applies condition trees to
the stored field data, generates excerpts and handles pagination.
"""

import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, List

from ..core import get_config_or_defaults, get_logger, SearchError
from ..database import (
    DatabaseManager,
    ItemRepository,
    create_index_table,
    drop_index_tables,
    fts_table_name,
    has_index_table,
    init_schema,
)
from ..query.result_set import ResultItem
from .base import SearchBackend
from .sql_builder import build_condition_sql, build_match_expression, build_order_by

logger = get_logger(__name__)

SUPPORTED_FEATURES = frozenset([
    "search_api_conditions",
    "search_api_languages",
    "search_api_excerpt",
])


class SqliteBackend(SearchBackend):
    """
    Search server storing items in a SQLite database.

    Each index gets an FTS5 table over its fulltext fields; relevance is
    the negated BM25 score, so higher is better.
    """

    def __init__(self, db_path: Path = None, excerpt_tokens: int = 16):
        """
        Initialize the backend.

        Args:
            db_path: SQLite database file. Defaults to the configured path.
            excerpt_tokens: Maximum tokens per generated excerpt.
        """
        config = get_config_or_defaults()
        self.manager = DatabaseManager(db_path)
        self.repository = ItemRepository(self.manager)
        self.tokenizer = config.search.tokenizer
        self.default_limit = config.search.default_limit
        self.max_limit = config.search.max_limit
        self.excerpt_tokens = excerpt_tokens

        self.manager.check_features()
        init_schema(self.manager)

    def supports_feature(self, feature: str) -> bool:
        return feature in SUPPORTED_FEATURES

    def add_index(self, index) -> None:
        create_index_table(self.manager, index.id(), index.get_fulltext_fields(), self.tokenizer)

    def remove_index(self, index) -> None:
        drop_index_tables(self.manager, index.id())

    def index_items(self, index, items: Dict[str, Dict[str, Any]]) -> List[str]:
        if not has_index_table(self.manager, index.id()):
            self.add_index(index)
        return self.repository.save_items(index.id(), self._stored_fields(index), items)

    def delete_items(self, index, item_ids: List[str]) -> None:
        self.repository.delete_items(index.id(), item_ids, bool(index.get_fulltext_fields()))

    def delete_all_items(self, index) -> None:
        self.repository.delete_all(index.id(), bool(index.get_fulltext_fields()))

    def _stored_fields(self, index) -> List[str]:
        return list(index.get_fulltext_fields()) if has_index_table(self.manager, index.id()) else []

    def search(self, query) -> None:
        """
        Execute a query and fill its result set.

        Args:
            query: Query to execute.

        Raises:
            SearchError: If the fulltext fields are invalid or SQLite
                         rejects the query (e.g. bad "direct" syntax).
        """
        start_time = time.time()

        index = query.get_index()
        results = query.get_results()
        index_fields = index.get_fulltext_fields()

        match = self._match_expression(query, index_fields)
        table = fts_table_name(index.id()) if match else None

        select = ["i.item_id", "i.language"]
        if table:
            select.append(f"-bm25({table}) AS score")
            select.append(
                f"snippet({table}, -1, '<strong>', '</strong>', '…', {self.excerpt_tokens}) AS excerpt"
            )
        else:
            select.append("1.0 AS score")

        from_sql = "search_api_item i"
        if table:
            from_sql += f" JOIN {table} ON {table}.rowid = i.id"

        where = ["i.index_id = ?"]
        params: list = [index.id()]

        if table:
            where.append(f"{table} MATCH ?")
            params.append(match)

        languages = query.get_languages()
        if languages is not None:
            placeholders = ", ".join("?" for _ in languages)
            where.append(f"i.language IN ({placeholders})")
            params.extend(languages)

        condition_sql, condition_params = build_condition_sql(query.get_condition_group())
        if condition_sql:
            where.append(f"({condition_sql})")
            params.extend(condition_params)

        where_sql = " AND ".join(where)
        order_sql, order_params = build_order_by(query.get_sorts(), bool(table))

        offset = query.get_option("offset") or 0
        limit = query.get_option("limit")
        limit = min(limit if limit is not None else self.default_limit, self.max_limit)

        sql = f"""
            SELECT {', '.join(select)}
            FROM {from_sql}
            WHERE {where_sql}
            ORDER BY {order_sql}
            LIMIT ? OFFSET ?
        """

        try:
            with self.manager.connection() as conn:
                rows = conn.execute(sql, params + order_params + [limit, offset]).fetchall()

                if query.get_option("skip result count"):
                    count = None
                else:
                    count = conn.execute(
                        f"SELECT COUNT(*) AS count FROM {from_sql} WHERE {where_sql}",
                        params
                    ).fetchone()["count"]
        except sqlite3.Error as e:
            logger.error(f"Search failed: {e}")
            raise SearchError(f"Search execution failed: {e}", query=match)

        for row in rows:
            extra_data = {"language": row["language"]}
            if table and row["excerpt"]:
                extra_data["excerpt"] = row["excerpt"]
            results.add_result_item(ResultItem(row["item_id"], row["score"], extra_data))

        if count is not None:
            results.set_result_count(count)

        execution_time = (time.time() - start_time) * 1000
        results.set_extra_data("execution_time_ms", round(execution_time, 2))

        logger.debug(
            f"Search on '{index.id()}': {len(rows)} of {count} results in {execution_time:.1f}ms"
        )

    def _match_expression(self, query, index_fields: List[str]):
        """Return the MATCH expression, or None for a filter-only search."""
        keys = query.get_keys()
        if keys is None:
            return None

        if not index_fields or not has_index_table(self.manager, query.get_index().id()):
            self._ignore_keys(query, keys, "The index has no fulltext fields, search keys were ignored")
            return None

        fields = query.get_fulltext_fields()
        if fields is not None:
            if not fields:
                self._ignore_keys(query, keys, "No fulltext fields were selected, search keys were ignored")
                return None
            unknown = [field for field in fields if field not in index_fields]
            if unknown:
                raise SearchError(
                    f"Unknown fulltext fields: {', '.join(unknown)}",
                    details={"fields": unknown}
                )

        return build_match_expression(keys, fields)

    @staticmethod
    def _ignore_keys(query, keys, message: str) -> None:
        results = query.get_results()
        results.add_warning(message)
        for term in ([keys] if isinstance(keys, str) else keys.terms()):
            results.add_ignored_search_key(term)
        logger.warning(f"{message} (index '{query.get_index().id()}')")


if __name__ == "__main__":
    import tempfile

    from ..index import Index

    with tempfile.TemporaryDirectory() as tmpdir:
        backend = SqliteBackend(Path(tmpdir) / "demo.db")
        index = Index("news", server=backend, fulltext_fields=["title", "body"])
        backend.add_index(index)

        index.index_items({
            "1": {"title": "Aviation civile", "body": "Règlement de l'aviation civile", "year": 2021},
            "2": {"title": "Sécurité maritime", "body": "Navigation et sécurité", "year": 2023},
            "3": {"title": "Contrôle aérien", "body": "Espace aérien et aviation", "year": 2024},
        })

        query = index.query().keys("aviation").sort("year", "DESC")
        for item in query.execute():
            print(f"  - {item.id} (score: {item.score:.2f}) {item.extra_data.get('excerpt', '')}")
