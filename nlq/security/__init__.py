"""Security and validation module.

Contains SQL validation and guardrails.
"""

from .sql_guard import (
    DANGEROUS_KEYWORDS,
    SQLValidator,
    apply_row_limit,
    has_limit,
    quote_identifier,
    starts_read_only,
)

__all__ = [
    "DANGEROUS_KEYWORDS",
    "SQLValidator",
    "apply_row_limit",
    "has_limit",
    "quote_identifier",
    "starts_read_only",
]
