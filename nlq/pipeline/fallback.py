from __future__ import annotations

import logging
import re
from typing import Sequence

from ..security.sql_guard import quote_identifier

logger = logging.getLogger(__name__)

EMPTY_CATALOG_SQL = "SELECT 1 as result LIMIT 1"

_FIRST_N_RE = re.compile(r"first\s+(\d{1,3})", re.IGNORECASE)


class FallbackGenerator:
    """Deterministic SQL used when no model produced usable output."""

    def __init__(self, default_limit: int = 100) -> None:
        self.default_limit = default_limit

    def generate(self, question: str, tables: Sequence[str]) -> str:
        if not tables:
            logger.warning("No tables available for default SQL")
            return EMPTY_CATALOG_SQL

        lowered = question.lower()
        table = next((t for t in tables if t.lower() in lowered), tables[0])

        match = _FIRST_N_RE.search(lowered)
        limit = int(match.group(1)) if match else self.default_limit

        sql = f"SELECT * FROM {quote_identifier(table)} LIMIT {limit}"
        logger.debug(f"Generated default SQL: {sql}")
        return sql
