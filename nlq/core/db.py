"""Source database connections and read-only row fetching."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, Generator, Iterable

import pyodbc

from .config import Settings
from .exceptions import DatabaseError

logger = logging.getLogger(__name__)


def get_connection(settings: Settings) -> pyodbc.Connection:
    """Open a connection to the introspected database.

    Raises:
        DatabaseError: If the connection cannot be established
    """
    try:
        return pyodbc.connect(settings.db_connection_string, timeout=settings.db_timeout)
    except pyodbc.Error as e:
        logger.error(f"Failed to connect to database: {e}")
        raise DatabaseError(f"Failed to connect to database: {e}") from e


@contextmanager
def get_db_connection(settings: Settings) -> Generator[pyodbc.Connection, None, None]:
    """Context manager for database connections.

    Example:
        with get_db_connection(settings) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
    """
    conn = get_connection(settings)
    try:
        yield conn
    finally:
        conn.close()


def _normalize_value(value: Any) -> Any:
    """Normalize database values for JSON serialization."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, memoryview):
        return bytes(value).hex()
    return value


def fetch_dicts(conn: Any, sql: str, params: Iterable[Any] | None = None) -> list[dict[str, Any]]:
    """Run a query on an open connection and return rows as column->value dicts.

    Column order follows the cursor description.

    Raises:
        DatabaseError: If the query fails
    """
    logger.debug(f"Executing SQL: {sql.strip()[:200]}")
    try:
        cursor = conn.cursor()
        cursor.execute(sql, list(params or []))
        columns = [col[0] for col in cursor.description] if cursor.description else []
        rows = cursor.fetchall()
    except pyodbc.ProgrammingError as e:
        logger.error(f"SQL programming error: {e}")
        raise DatabaseError(f"Invalid SQL query: {e}") from e
    except pyodbc.Error as e:
        logger.error(f"Database error: {e}")
        raise DatabaseError(f"Database error: {e}") from e

    return [
        {column: _normalize_value(value) for column, value in zip(columns, row)}
        for row in rows
    ]
