"""
Database module for SQLite persistence with FTS5 full-text search.

Provides connection management, schema definitions, and CRUD operations
for the reference search backend.
"""

from .connection import DatabaseManager
from .schema import (
    init_schema,
    create_index_table,
    has_index_table,
    drop_index_tables,
    get_statistics,
    fts_table_name,
    validate_identifier
)
from .repository import ItemRepository, LANGUAGE_FIELD

__all__ = [
    "DatabaseManager",
    "init_schema",
    "create_index_table",
    "has_index_table",
    "drop_index_tables",
    "get_statistics",
    "fts_table_name",
    "validate_identifier",
    "ItemRepository",
    "LANGUAGE_FIELD"
]
