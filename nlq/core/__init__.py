"""Core infrastructure module.

Contains configuration, database connection, response models, and exceptions.
"""

from .config import Settings, clear_settings_cache, get_cached_settings, get_settings
from .db import fetch_dicts, get_connection, get_db_connection
from .exceptions import (
    DatabaseError,
    ExecutionFailed,
    ExtractionFailed,
    InputError,
    LLMError,
    ModelMalformedResponse,
    ModelNonSuccessStatus,
    ModelUnhealthy,
    ModelUnreachable,
    NLQError,
    SchemaUnavailable,
    ValidationFailed,
)
from .models import ErrorEnvelope, QueryRequest, SuccessEnvelope, error_response, now_millis

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "get_cached_settings",
    "clear_settings_cache",
    # Database
    "fetch_dicts",
    "get_connection",
    "get_db_connection",
    # Exceptions
    "NLQError",
    "InputError",
    "SchemaUnavailable",
    "DatabaseError",
    "LLMError",
    "ModelUnreachable",
    "ModelNonSuccessStatus",
    "ModelMalformedResponse",
    "ModelUnhealthy",
    "ExtractionFailed",
    "ValidationFailed",
    "ExecutionFailed",
    # Models
    "QueryRequest",
    "SuccessEnvelope",
    "ErrorEnvelope",
    "error_response",
    "now_millis",
]
