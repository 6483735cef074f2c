"""Database schema management.

Contains the schema catalog: table discovery, column metadata and sample rows.
"""

from .catalog import CacheEntry, ColumnInfo, SchemaCatalog, SchemaSnapshot

__all__ = [
    "CacheEntry",
    "ColumnInfo",
    "SchemaCatalog",
    "SchemaSnapshot",
]
