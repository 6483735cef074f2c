"""Schema introspection with an explicit, invalidatable cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
import time
from types import MappingProxyType
from typing import Any, Callable, ContextManager, Hashable, Mapping, Sequence

from ..core.config import Settings
from ..core.db import fetch_dicts, get_db_connection
from ..core.exceptions import DatabaseError
from ..security.sql_guard import quote_identifier

logger = logging.getLogger(__name__)

TABLES_QUERY = """
SELECT table_name
FROM information_schema.tables
WHERE table_schema = ?
  AND table_type = 'BASE TABLE'
ORDER BY table_name
"""

COLUMNS_QUERY = """
SELECT column_name, data_type, is_nullable, column_default
FROM information_schema.columns
WHERE table_schema = ? AND table_name = ?
ORDER BY ordinal_position
"""

Row = dict[str, Any]
ConnectionFactory = Callable[[], ContextManager[Any]]


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    data_type: str
    nullable: bool = True
    default: str | None = None

    def describe(self) -> str:
        """Render as `type [NOT NULL] [DEFAULT x]`."""
        text = self.data_type
        if not self.nullable:
            text += " NOT NULL"
        if self.default is not None:
            text += f" DEFAULT {self.default}"
        return text


@dataclass(frozen=True)
class SchemaSnapshot:
    """Tables, their columns and sample rows as seen at fetch time."""
    tables: tuple[str, ...]
    columns: Mapping[str, Sequence[ColumnInfo]] = field(default_factory=dict)
    samples: Mapping[str, Sequence[Row]] = field(default_factory=dict)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    fetched_at: float


class SchemaCatalog:
    """Introspects table names, column metadata and sample rows.

    Results are cached per operation and table list. Entries live until
    `invalidate()` is called or, when `schema_cache_ttl` is positive,
    until they are older than the TTL. Population runs under a lock so
    concurrent first access introspects each key once.
    """

    def __init__(
        self,
        settings: Settings,
        connection_factory: ConnectionFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self._connect = connection_factory or (lambda: get_db_connection(settings))
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[Hashable, CacheEntry] = {}
        self.loaded_at: datetime | None = None

    # --- cache plumbing ---

    def _fresh(self, key: Hashable) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        ttl = self.settings.schema_cache_ttl
        if ttl > 0 and self._clock() - entry.fetched_at >= ttl:
            logger.info(f"Schema cache entry expired: {key[0]}")
            del self._entries[key]
            return None
        return entry

    def _store(self, key: Hashable, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())
        self.loaded_at = datetime.now(timezone.utc)

    def invalidate(self) -> None:
        """Drop every cached entry; the next access re-introspects."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self.loaded_at = None
        logger.info(f"Schema cache invalidated ({count} entries dropped)")

    # --- introspection ---

    def list_tables(self) -> list[str]:
        """Base tables of the configured schema, ordered by name.

        Never raises: an introspection failure logs and returns [].
        Empty results are not cached.
        """
        key = ("tables",)
        with self._lock:
            entry = self._fresh(key)
            if entry is not None:
                return list(entry.value)

            try:
                with self._connect() as conn:
                    rows = fetch_dicts(conn, TABLES_QUERY, [self.settings.db_schema])
            except DatabaseError as e:
                logger.error(f"Error fetching table names: {e}")
                return []

            tables = [_first_value(row) for row in rows]
            logger.info(f"Available tables: {tables}")
            if tables:
                self._store(key, tuple(tables))
            return tables

    def describe_tables(self, tables: Sequence[str]) -> dict[str, list[ColumnInfo]]:
        """Column metadata per table, in ordinal order.

        A table whose metadata cannot be read maps to an empty list.
        """
        key = ("columns", tuple(tables))
        with self._lock:
            entry = self._fresh(key)
            if entry is not None:
                return dict(entry.value)

            schemas: dict[str, list[ColumnInfo]] = {}
            try:
                with self._connect() as conn:
                    for table in tables:
                        try:
                            rows = fetch_dicts(conn, COLUMNS_QUERY, [self.settings.db_schema, table])
                            schemas[table] = [_column_from_row(row) for row in rows]
                        except DatabaseError as e:
                            logger.error(f"Error fetching columns for table {table}: {e}")
                            schemas[table] = []
            except DatabaseError as e:
                logger.error(f"Error fetching table schemas: {e}")
                return {table: schemas.get(table, []) for table in tables}

            self._store(key, schemas)
            return dict(schemas)

    def sample_tables(self, tables: Sequence[str]) -> dict[str, list[Row]]:
        """Up to `max_sample_rows` rows per table.

        Only names reported by `list_tables()` are queried; anything else
        maps to an empty list, as does a table that cannot be read.
        """
        key = ("samples", tuple(tables))
        with self._lock:
            entry = self._fresh(key)
            if entry is not None:
                return dict(entry.value)

            known = set(self.list_tables())
            limit = int(self.settings.max_sample_rows)
            samples: dict[str, list[Row]] = {}
            try:
                with self._connect() as conn:
                    for table in tables:
                        if table not in known:
                            logger.warning(f"Refusing to sample unknown table: {table!r}")
                            samples[table] = []
                            continue
                        try:
                            sql = f"SELECT * FROM {quote_identifier(table)} LIMIT {limit}"
                            samples[table] = fetch_dicts(conn, sql)
                        except DatabaseError as e:
                            logger.error(f"Error fetching sample data for {table}: {e}")
                            samples[table] = []
            except DatabaseError as e:
                logger.error(f"Error fetching sample data: {e}")
                return {table: samples.get(table, []) for table in tables}

            self._store(key, samples)
            return dict(samples)

    def snapshot(self, tables: Sequence[str] | None = None) -> SchemaSnapshot:
        """Read-only view of tables, columns and samples for one request.

        Sample rows are copied, so the snapshot never aliases the cache.
        """
        names = list(tables) if tables is not None else self.list_tables()
        columns = self.describe_tables(names)
        samples = self.sample_tables(names)
        return SchemaSnapshot(
            tables=tuple(names),
            columns=MappingProxyType({t: tuple(columns.get(t, [])) for t in names}),
            samples=MappingProxyType(
                {t: tuple(MappingProxyType(dict(row)) for row in samples.get(t, [])) for t in names}
            ),
        )


def _first_value(row: Row) -> str:
    return str(next(iter(row.values())))


def _column_from_row(row: Row) -> ColumnInfo:
    lowered = {str(k).lower(): v for k, v in row.items()}
    default = lowered.get("column_default")
    return ColumnInfo(
        name=str(lowered.get("column_name")),
        data_type=str(lowered.get("data_type")),
        nullable=str(lowered.get("is_nullable", "YES")).upper() != "NO",
        default=str(default) if default is not None else None,
    )
