"""Query execution against the Metabase dataset API."""

from .metabase import CONNECTIVITY_TEST_SQL, SESSION_HEADER, QueryExecutor

__all__ = ["CONNECTIVITY_TEST_SQL", "SESSION_HEADER", "QueryExecutor"]
