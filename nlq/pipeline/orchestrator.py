"""Translate a question to SQL, validate it and run it through Metabase.

Decision policy: primary model, then fallback model, then the
deterministic generator. Model-side failures only advance the chain;
everything else ends the request with an error envelope.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Any, Callable, Sequence

from ..core.config import Settings
from ..core.exceptions import (
    ExecutionFailed,
    ExtractionFailed,
    InputError,
    LLMError,
    ModelUnhealthy,
    ModelUnreachable,
    NLQError,
    SchemaUnavailable,
)
from ..core.models import SuccessEnvelope, error_response
from ..execution.metabase import QueryExecutor
from ..llm.client import ModelGateway, response_text
from ..llm.extractor import ResponseExtractor
from ..schema.catalog import SchemaCatalog
from ..security.sql_guard import SQLValidator
from .fallback import FallbackGenerator

logger = logging.getLogger(__name__)

MEMORY_ERROR_MARKER = "more system memory"


class Provenance(str, Enum):
    PRIMARY_MODEL = "model:primary"
    FALLBACK_MODEL = "model:fallback"
    DETERMINISTIC = "fallback"


@dataclass(frozen=True)
class SQLCandidate:
    sql: str
    provenance: Provenance


class Deadline:
    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._end = clock() + seconds

    def remaining(self) -> float:
        return self._end - self._clock()

    def require(self) -> float:
        """Seconds left, or ModelUnreachable when the deadline has passed."""
        left = self.remaining()
        if left <= 0:
            raise ModelUnreachable("LLM attempt deadline elapsed")
        return left


class NLQService:
    """Natural-language query pipeline.

    Collaborators default to instances built from `settings`; tests and
    callers may pass their own.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: SchemaCatalog | None = None,
        gateway: ModelGateway | None = None,
        extractor: ResponseExtractor | None = None,
        validator: SQLValidator | None = None,
        fallback: FallbackGenerator | None = None,
        executor: QueryExecutor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.catalog = catalog or SchemaCatalog(settings)
        self.gateway = gateway or ModelGateway(settings)
        self.extractor = extractor or ResponseExtractor(settings.default_limit)
        self.validator = validator or SQLValidator()
        self.fallback = fallback or FallbackGenerator(settings.default_limit)
        self.executor = executor or QueryExecutor(settings)
        self._clock = clock

    def close(self) -> None:
        self.gateway.close()
        self.executor.close()

    # --- main operation ---

    def translate_and_execute(self, question: str | None) -> dict[str, Any]:
        """Return a success envelope with `data`, or an error envelope.

        Never raises.
        """
        try:
            return self._translate_and_execute(question)
        except NLQError as e:
            logger.warning(f"Query failed: {e}")
            return error_response(str(e))
        except Exception as e:
            logger.error(f"Error in translate_and_execute: {e}", exc_info=True)
            return error_response(f"Failed to process query: {e}")

    def _translate_and_execute(self, question: str | None) -> dict[str, Any]:
        if question is None or not question.strip():
            raise InputError("Input query cannot be empty")

        logger.info(f"Processing natural language query: {question[:200]}")

        tables = self.catalog.list_tables()
        if not tables:
            raise SchemaUnavailable("No tables found in database")

        candidate = self.produce_sql(question, tables)
        logger.info(f"Generated SQL ({candidate.provenance.value}): {candidate.sql}")

        self.validator.ensure_valid(candidate.sql)

        try:
            data = self.executor.execute(candidate.sql)
        except ExecutionFailed as e:
            raise ExecutionFailed(f"Failed to execute query in Metabase: {e}") from e

        return SuccessEnvelope(
            sql=candidate.sql,
            availableTables=list(tables),
            data=data,
            provenance=candidate.provenance.value,
        ).model_dump()

    def produce_sql(self, question: str, tables: Sequence[str]) -> SQLCandidate:
        """Walk the primary -> fallback -> deterministic chain. Never fails."""
        budget = Deadline(self.settings.llm_total_timeout, self._clock)
        attempts = (
            (Provenance.PRIMARY_MODEL, self.settings.llm_model, self.settings.llm_primary_max_tokens),
            (Provenance.FALLBACK_MODEL, self.settings.llm_fallback_model, self.settings.llm_fallback_max_tokens),
        )

        for provenance, model, max_tokens in attempts:
            if budget.remaining() <= 0:
                logger.warning(f"LLM time budget exhausted before trying {model}")
                break
            logger.debug(f"Attempting LLM call with {provenance.name.lower()} {model}")
            sql = self._attempt_model(question, tables, model, max_tokens, budget)
            if sql is not None:
                return SQLCandidate(sql, provenance)

        logger.warning("Falling back to default SQL query due to LLM failure")
        return SQLCandidate(self.fallback.generate(question, tables), Provenance.DETERMINISTIC)

    def _attempt_model(
        self,
        question: str,
        tables: Sequence[str],
        model: str,
        max_tokens: int,
        budget: Deadline,
    ) -> str | None:
        deadline = Deadline(min(self.settings.llm_attempt_timeout, budget.remaining()), self._clock)
        try:
            deadline.require()
            if not self.gateway.probe_health(model, time_left=deadline.remaining):
                raise ModelUnhealthy(f"LLM service unavailable for model {model}")

            snapshot = self.catalog.snapshot(tables)
            raw = self.gateway.generate(question, snapshot, model, max_tokens, timeout=deadline.require())

            sql = self.extractor.extract(raw)
            if sql is None:
                raise ExtractionFailed(f"Model {model} produced no usable SQL")
            return sql
        except LLMError as e:
            logger.error(f"Model {model} failed: {e}")
            if MEMORY_ERROR_MARKER in str(e):
                logger.warning(f"Memory error detected for model {model}")
            return None

    # --- diagnostics ---

    def list_tables(self) -> list[str]:
        return self.catalog.list_tables()

    def describe_database(self) -> dict[str, Any]:
        try:
            tables = self.catalog.list_tables()
            schemas = self.catalog.describe_tables(tables)
            return {
                "tables": tables,
                "detailedSchemas": {
                    table: {column.name: column.describe() for column in columns}
                    for table, columns in schemas.items()
                },
                "metabaseToken": self.settings.masked_session_token,
                "databaseId": self.settings.metabase_database_id,
                "status": "success",
            }
        except Exception as e:
            logger.error(f"Failed to get database info: {e}", exc_info=True)
            return error_response(f"Failed to get database info: {e}")

    def check_backend_connectivity(self) -> dict[str, Any]:
        return self.executor.check_connectivity()

    def refresh_schema(self) -> dict[str, Any]:
        self.catalog.invalidate()
        tables = self.catalog.list_tables()
        return {
            "tables": len(tables),
            "loaded_at": self.catalog.loaded_at.isoformat() if self.catalog.loaded_at else "",
        }

    def debug_model_response(self, question: str) -> dict[str, Any]:
        """Run both models without probing and report every stage."""
        try:
            tables = self.catalog.list_tables()
            snapshot = self.catalog.snapshot(tables)
            result: dict[str, Any] = {
                "prompt": self.gateway.prompt_builder.build(question, snapshot),
                "tables": tables,
            }
            attempts = (
                ("Primary", self.settings.llm_model, self.settings.llm_primary_max_tokens),
                ("Fallback", self.settings.llm_fallback_model, self.settings.llm_fallback_max_tokens),
            )
            for label, model, max_tokens in attempts:
                try:
                    request = self.gateway.build_request(question, snapshot, model, max_tokens)
                    body = self.gateway.send(request)
                    result[f"llmRawResponse{label}"] = body
                    raw = response_text(body)
                except LLMError as e:
                    result[f"error{label}"] = str(e)
                    continue
                cleaned = self.extractor.extract(raw)
                result[f"rawText{label}"] = raw
                result[f"cleanedSQL{label}"] = cleaned
                result[f"isValid{label}"] = cleaned is not None and self.validator.validate(cleaned)
            return result
        except Exception as e:
            logger.error(f"Debug LLM response failed: {e}", exc_info=True)
            return error_response(f"Debug failed: {e}")
