"""Application configuration."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=True)

_DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:3001,http://127.0.0.1:3000"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Built once and handed to every component; nothing reads the
    environment after startup.
    """
    # Metabase (query execution)
    metabase_sql_api_url: str = "http://localhost:3000/api/dataset"
    metabase_session_token: str = ""
    metabase_database_id: int = 4
    metabase_timeout: float = 30.0

    # Ollama (generation)
    llm_url: str = "http://localhost:11434/api/generate"
    llm_model: str = "codellama:7b"
    llm_fallback_model: str = "tinyllama"
    llm_temperature: float = 0.1
    llm_primary_max_tokens: int = 50
    llm_fallback_max_tokens: int = 25
    llm_attempt_timeout: float = 30.0
    llm_total_timeout: float = 60.0

    # Query settings
    max_sample_rows: int = 3
    default_limit: int = 100

    # Source database (introspection)
    db_connection_string: str = ""
    db_schema: str = "public"
    db_timeout: int = 10
    schema_cache_ttl: float = 0.0

    cors_origins: tuple[str, ...] = tuple(_DEFAULT_CORS_ORIGINS.split(","))

    @property
    def llm_tags_url(self) -> str:
        """Model listing endpoint next to the generation endpoint."""
        return self.llm_url.replace("/api/generate", "/api/tags")

    @property
    def masked_session_token(self) -> str:
        return self.metabase_session_token[:8] + "..."


def _build_connection_string() -> str:
    conn_str = os.getenv("DB_CONNECTION_STRING", "")
    if conn_str:
        return conn_str
    trust = "yes" if _env_bool("DB_TRUST_CERT", "yes") else "no"
    return (
        f"DRIVER={{{os.getenv('DB_DRIVER', 'PostgreSQL Unicode')}}};"
        f"SERVER={os.getenv('DB_HOST', 'localhost')};"
        f"PORT={os.getenv('DB_PORT', '5432')};"
        f"DATABASE={os.getenv('DB_NAME', 'postgres')};"
        f"UID={os.getenv('DB_USER', 'postgres')};"
        f"PWD={os.getenv('DB_PASSWORD', '')};"
        f"TrustServerCertificate={trust};"
    )


def get_settings() -> Settings:
    """Load settings from environment variables."""
    cors = os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS)
    return Settings(
        # Metabase
        metabase_sql_api_url=os.getenv("METABASE_SQL_API_URL", "http://localhost:3000/api/dataset"),
        metabase_session_token=os.getenv("METABASE_SESSION_TOKEN", ""),
        metabase_database_id=int(os.getenv("METABASE_DATABASE_ID", "4")),
        metabase_timeout=float(os.getenv("METABASE_TIMEOUT", "30")),

        # Ollama
        llm_url=os.getenv("LLM_URL", "http://localhost:11434/api/generate").rstrip("/"),
        llm_model=os.getenv("LLM_MODEL", "codellama:7b"),
        llm_fallback_model=os.getenv("LLM_FALLBACK_MODEL", "tinyllama"),
        llm_temperature=float(os.getenv("NLQ_LLM_TEMPERATURE", "0.1")),
        llm_primary_max_tokens=int(os.getenv("LLM_PRIMARY_MAX_TOKENS", "50")),
        llm_fallback_max_tokens=int(os.getenv("LLM_FALLBACK_MAX_TOKENS", "25")),
        llm_attempt_timeout=float(os.getenv("LLM_ATTEMPT_TIMEOUT", "30")),
        llm_total_timeout=float(os.getenv("LLM_TOTAL_TIMEOUT", "60")),

        # Query settings
        max_sample_rows=int(os.getenv("NLQ_MAX_SAMPLE_ROWS", "3")),
        default_limit=int(os.getenv("NLQ_DEFAULT_LIMIT", "100")),

        # Source database
        db_connection_string=_build_connection_string(),
        db_schema=os.getenv("DB_SCHEMA", "public"),
        db_timeout=int(os.getenv("DB_TIMEOUT", "10")),
        schema_cache_ttl=float(os.getenv("SCHEMA_CACHE_TTL", "0")),

        cors_origins=tuple(origin.strip() for origin in cors.split(",") if origin.strip()),
    )


# Singleton for caching settings
_settings_cache: Optional[Settings] = None


def get_cached_settings() -> Settings:
    """Get cached settings (loads once)."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = get_settings()
    return _settings_cache


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    global _settings_cache
    _settings_cache = None
