"""Heuristic extraction of a SQL statement from free-form model output.

Strategies are tried in order and the first accepted candidate wins:

1. the first fenced code block (optionally tagged ``sql``);
2. an inline statement: a run starting at SELECT (or a leading CTE)
   and ending at the end of the text or at a blank-line gap;
3. a line scan that drops conversational noise and joins every line
   from the first SELECT/WITH line onwards.

Accepted candidates are normalised: whitespace collapsed, trailing
semicolon removed, default LIMIT appended when none is present.
"""

from __future__ import annotations

import logging
import re

from ..security.sql_guard import apply_row_limit, starts_read_only

logger = logging.getLogger(__name__)

_FENCED_RE = re.compile(r"```(?:sql)?\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
_LEADING_CTE_RE = re.compile(
    r"^\s*(with\s+(?:recursive\s+)?[\w\"]+\s*(?:\([^)]*\)\s*)?as\s*\(\s*select\s.*?)(?:$|\n{2,})",
    re.IGNORECASE | re.DOTALL,
)
_INLINE_SELECT_RE = re.compile(r"(select\s+.*?)(?:$|\n{2,})", re.IGNORECASE | re.DOTALL)
_FENCE_MARKERS_RE = re.compile(r"```(?:sql)?|```|`", re.IGNORECASE)

NOISE_PREFIXES = ("here's", "sql:", "query:", "answer:")
NOISE_WORDS = ("convert", "question")
MAX_PLAIN_LINE_LENGTH = 50


def is_noise_line(line: str) -> bool:
    """Conversational filler the line scan ignores."""
    lowered = line.lower()
    return (
        lowered.startswith(NOISE_PREFIXES)
        or any(word in lowered for word in NOISE_WORDS)
        or (len(lowered) > MAX_PLAIN_LINE_LENGTH and "select" not in lowered)
    )


class ResponseExtractor:
    def __init__(self, default_limit: int = 100) -> None:
        self.default_limit = default_limit

    def extract(self, raw_text: str | None) -> str | None:
        """Return formatted SQL, or None when the text holds nothing usable."""
        if raw_text is None or not raw_text.strip():
            logger.warning("LLM returned null or empty response")
            return None

        logger.debug(f"Raw LLM response: {raw_text[:200]}")

        for strategy in (self._from_fenced_block, self._from_inline_statement, self._from_lines):
            candidate = strategy(raw_text)
            if starts_read_only(candidate):
                logger.debug(f"Extracted SQL via {strategy.__name__}: {candidate[:200]}")
                return self.format_sql(candidate)

        logger.warning(f"No valid SQL found in response: {raw_text[:200]}")
        return None

    def format_sql(self, sql: str) -> str:
        sql = re.sub(r"\s+", " ", sql).strip()
        sql = re.sub(r";$", "", sql).rstrip()
        return apply_row_limit(sql, self.default_limit)

    @staticmethod
    def _from_fenced_block(text: str) -> str | None:
        match = _FENCED_RE.search(text)
        return match.group(1).strip() if match else None

    @staticmethod
    def _from_inline_statement(text: str) -> str | None:
        match = _LEADING_CTE_RE.search(text) or _INLINE_SELECT_RE.search(text)
        return match.group(1).strip() if match else None

    @staticmethod
    def _from_lines(text: str) -> str | None:
        cleaned = _FENCE_MARKERS_RE.sub("", text).strip()
        collected: list[str] = []
        found = False
        for line in cleaned.split("\n"):
            line = line.strip()
            if not line or is_noise_line(line):
                continue
            if found or starts_read_only(line):
                found = True
                collected.append(line)
        return " ".join(collected) or None
