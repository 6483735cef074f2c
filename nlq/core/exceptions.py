"""Custom exceptions for the application."""

from __future__ import annotations


class NLQError(Exception):
    """Base class for errors raised inside the translation pipeline."""

    pass


class InputError(NLQError):
    """Raised when the question is missing or blank."""

    pass


class SchemaUnavailable(NLQError):
    """Raised when no tables can be introspected."""

    pass


class DatabaseError(NLQError):
    """Raised when a database operation fails."""

    pass


class LLMError(NLQError):
    """Raised when LLM returns unexpected response format or fails."""

    pass


class ModelUnreachable(LLMError):
    """Transport failure or timeout talking to the generation service."""

    pass


class ModelNonSuccessStatus(LLMError):
    """Generation service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelMalformedResponse(LLMError):
    """Generation service answered without the expected field."""

    pass


class ModelUnhealthy(LLMError):
    """Model is not listed or failed its liveness probe."""

    pass


class ExtractionFailed(LLMError):
    """Model text contained no usable SQL."""

    pass


class ValidationFailed(NLQError):
    """Raised when SQL fails the read-only safety policy."""

    pass


class ExecutionFailed(NLQError):
    """Raised when the query-execution backend reports an error."""

    pass
