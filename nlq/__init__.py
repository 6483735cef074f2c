"""Natural-language query service.

Translates free-text questions into read-only PostgreSQL queries with a
local Ollama model and executes them through Metabase.

Package Structure:
    core/       - Core infrastructure (config, db, models, exceptions)
    schema/     - Schema catalog (tables, columns, sample rows) with cache
    llm/        - Prompt builder, Ollama gateway, SQL extraction
    security/   - SQL validation and guardrails
    execution/  - Metabase native-query executor
    pipeline/   - Deterministic fallback SQL and the orchestrator
"""

from .core.config import Settings, get_cached_settings, get_settings
from .core.exceptions import (
    ExecutionFailed,
    InputError,
    LLMError,
    NLQError,
    SchemaUnavailable,
    ValidationFailed,
)
from .execution.metabase import QueryExecutor
from .llm.client import ModelGateway, ModelRequest
from .llm.extractor import ResponseExtractor
from .llm.prompts import PromptBuilder
from .pipeline.fallback import FallbackGenerator
from .pipeline.orchestrator import NLQService, Provenance, SQLCandidate
from .schema.catalog import ColumnInfo, SchemaCatalog, SchemaSnapshot
from .security.sql_guard import SQLValidator, quote_identifier

__all__ = [
    # Core
    "Settings",
    "get_settings",
    "get_cached_settings",
    "NLQError",
    "InputError",
    "SchemaUnavailable",
    "LLMError",
    "ValidationFailed",
    "ExecutionFailed",
    # Components
    "SchemaCatalog",
    "SchemaSnapshot",
    "ColumnInfo",
    "PromptBuilder",
    "ModelGateway",
    "ModelRequest",
    "ResponseExtractor",
    "SQLValidator",
    "quote_identifier",
    "FallbackGenerator",
    "QueryExecutor",
    # Pipeline
    "NLQService",
    "Provenance",
    "SQLCandidate",
]
