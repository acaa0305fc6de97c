"""
Backend module: search servers executing queries.

Provides the abstract SearchBackend interface and a reference
implementation on SQLite FTS5.
"""

from .base import SearchBackend
from .sql_builder import (
    ID_FIELD,
    LANGUAGE_FIELD,
    RELEVANCE_FIELD,
    build_match_expression,
    build_condition_sql,
    build_order_by
)
from .sqlite_backend import SqliteBackend

__all__ = [
    "SearchBackend",
    "ID_FIELD",
    "LANGUAGE_FIELD",
    "RELEVANCE_FIELD",
    "build_match_expression",
    "build_condition_sql",
    "build_order_by",
    "SqliteBackend"
]
