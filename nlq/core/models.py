from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, Field


def now_millis() -> int:
    return int(time.time() * 1000)


class QueryRequest(BaseModel):
    query: str | None = None


class SuccessEnvelope(BaseModel):
    sql: str
    availableTables: list[str] = Field(default_factory=list)
    data: Any = None
    provenance: str
    status: Literal["success"] = "success"
    timestamp: int = Field(default_factory=now_millis)


class ErrorEnvelope(BaseModel):
    error: str
    status: Literal["error"] = "error"
    timestamp: int = Field(default_factory=now_millis)


def error_response(message: str) -> dict[str, Any]:
    """Uniform error envelope: error message, status and timestamp only."""
    return ErrorEnvelope(error=message).model_dump()
