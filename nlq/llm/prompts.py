"""Prompt templates for SQL generation."""

from __future__ import annotations

from typing import Any

from ..schema.catalog import SchemaSnapshot

SQL_GENERATION_PREAMBLE = (
    "You are a PostgreSQL expert. Convert the following natural language question to a valid PostgreSQL query. "
    "Return ONLY the SQL query, no explanations, no markdown, no code blocks, no extra text. "
    "Use the exact table and column names provided below. Ensure the query is safe and matches the user's intent.\n\n"
    "Instructions:\n"
    "- For queries requesting a specific number of rows (e.g., 'first five employees'), "
    "use LIMIT with the exact number (e.g., LIMIT 5).\n"
    "- For filters (e.g., 'employees where age > 30'), include a WHERE clause (e.g., WHERE age > 30).\n"
    "- For sorting (e.g., 'top 5 employees by salary'), use ORDER BY with DESC/ASC and LIMIT "
    "(e.g., ORDER BY salary DESC LIMIT 5).\n"
    "- Use table and column names exactly as listed in the schema.\n\n"
)

SQL_QUERY_RULES = """
Rules:
- Return only the SQL query
- No markdown, no code blocks, no explanations
- Use exact table and column names from the schema
- Include LIMIT for specific row counts (e.g., 'first 5' -> LIMIT 5), otherwise use LIMIT {default_limit}
- Use WHERE for filters (e.g., 'age > 30' -> WHERE age > 30)
- Use ORDER BY for sorting (e.g., 'top 5 by salary' -> ORDER BY salary DESC LIMIT 5)
- No semicolon at end
- Ensure the query matches the user's intent (e.g., use 'employees' table for queries about employees)

"""

# Sample values shown per table
MAX_SAMPLE_VALUES = 3


def _format_value(value: Any) -> str:
    return "null" if value is None else str(value)


class PromptBuilder:
    """Renders the natural-language-to-SQL prompt.

    Output depends only on the question and the snapshot; identical
    inputs give byte-identical prompts.
    """

    def __init__(self, default_limit: int = 100) -> None:
        self.default_limit = default_limit

    def build(self, question: str, snapshot: SchemaSnapshot) -> str:
        parts = [SQL_GENERATION_PREAMBLE, self._schema_section(snapshot)]
        parts.append(SQL_QUERY_RULES.format(default_limit=self.default_limit))
        parts.append(f"Question: {question}\nSQL:")
        return "".join(parts)

    def _schema_section(self, snapshot: SchemaSnapshot) -> str:
        lines = ["Database schema:\n"]
        for table in snapshot.tables:
            lines.append(f"\nTable: {table}\nColumns:\n")
            for column in snapshot.columns.get(table, ()):
                lines.append(f"  - {column.name} ({column.describe()})\n")

            rows = snapshot.samples.get(table, ())
            if rows:
                pairs = [f"{key}={_format_value(value)}" for key, value in rows[0].items()]
                lines.append("Sample data: " + ", ".join(pairs[:MAX_SAMPLE_VALUES]) + "\n")
        return "".join(lines)
