from __future__ import annotations

import logging
import re

import sqlparse

from ..core.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

# Mutating keywords; matched as plain substrings of the lowercased text
DANGEROUS_KEYWORDS = ("drop", "delete", "truncate", "alter", "create", "insert", "update")

READ_ONLY_PREFIXES = ("select", "with")

_LIMIT_RE = re.compile(r"\blimit\b\s*\d+", re.IGNORECASE)


def quote_identifier(identifier: str) -> str:
    """Double-quote an identifier, doubling any embedded quotes."""
    return '"' + identifier.replace('"', '""') + '"'


def starts_read_only(sql: str | None) -> bool:
    """True if the trimmed text begins with SELECT or WITH (any case)."""
    if not sql or not sql.strip():
        return False
    return sql.strip().lower().startswith(READ_ONLY_PREFIXES)


def has_limit(sql: str) -> bool:
    return _LIMIT_RE.search(sql) is not None


def apply_row_limit(sql: str, max_rows: int) -> str:
    """Append `LIMIT n` unless a `LIMIT <n>` clause is already present."""
    if has_limit(sql):
        return sql
    return f"{sql} LIMIT {max_rows}"


class SQLValidator:
    """Read-only safety policy for candidate SQL.

    Rejects blank input, any text containing a mutating keyword as a
    substring (identifiers and literals included), more than one
    statement, and anything not starting with SELECT or WITH.
    """

    def check(self, sql: str | None) -> tuple[bool, str]:
        """Validate SQL and return (is_safe, error_reason)."""
        if sql is None or not sql.strip():
            return False, "Empty SQL"

        lowered = sql.strip().lower()
        for keyword in DANGEROUS_KEYWORDS:
            if keyword in lowered:
                logger.warning(f"Potentially dangerous SQL detected: {sql}")
                return False, f"Dangerous keyword: {keyword}"

        if not lowered.startswith(READ_ONLY_PREFIXES):
            return False, "Statement must start with SELECT or WITH"

        statements = [stmt for stmt in sqlparse.split(sql) if stmt.strip()]
        if len(statements) != 1:
            return False, f"Expected 1 statement, got {len(statements)}"

        return True, ""

    def validate(self, sql: str | None) -> bool:
        ok, _ = self.check(sql)
        return ok

    def ensure_valid(self, sql: str | None) -> str:
        """Return the SQL unchanged, or raise ValidationFailed."""
        ok, reason = self.check(sql)
        if not ok:
            logger.warning(f"Generated SQL failed validation ({reason}): {sql}")
            raise ValidationFailed("Generated SQL query failed validation")
        return sql
