"""Shared fixtures: in-memory database doubles and HTTP stubs."""

from __future__ import annotations

from contextlib import contextmanager
import json
import threading
import time
from typing import Any

import httpx
import pyodbc
import pytest

from nlq.core.config import Settings
from nlq.core.exceptions import DatabaseError
from nlq.execution.metabase import QueryExecutor
from nlq.llm.client import ModelGateway
from nlq.pipeline.orchestrator import NLQService
from nlq.schema.catalog import SchemaCatalog


EMPLOYEES_COLUMNS = [
    ("id", "integer", "NO", "nextval('employees_id_seq'::regclass)"),
    ("name", "character varying", "NO", None),
    ("salary", "numeric", "YES", None),
    ("department_id", "integer", "YES", None),
]
DEPARTMENTS_COLUMNS = [
    ("id", "integer", "NO", None),
    ("title", "text", "YES", None),
]


class FakeCursor:
    def __init__(self, db: "FakeDatabase") -> None:
        self.db = db
        self.description: list[tuple[str]] | None = None
        self._rows: list[tuple[Any, ...]] = []

    def execute(self, sql: str, params: list[Any] | None = None) -> None:
        params = list(params or [])
        with self.db.lock:
            self.db.queries.append((sql, params))
        if self.db.delay:
            time.sleep(self.db.delay)
        columns, rows = self.db.answer(sql, params)
        self.description = [(column,) for column in columns]
        self._rows = rows

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._rows)


class FakeConnection:
    def __init__(self, db: "FakeDatabase") -> None:
        self.db = db

    def cursor(self) -> FakeCursor:
        return FakeCursor(self.db)


class FakeDatabase:
    """Answers the three introspection queries and sample selects."""

    def __init__(
        self,
        tables: dict[str, dict[str, Any]] | None = None,
        broken: tuple[str, ...] = (),
        unreachable: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.tables = tables if tables is not None else default_tables()
        self.broken = set(broken)
        self.unreachable = unreachable
        self.delay = delay
        self.queries: list[tuple[str, list[Any]]] = []
        self.connects = 0
        self.lock = threading.Lock()

    def answer(self, sql: str, params: list[Any]) -> tuple[list[str], list[tuple[Any, ...]]]:
        if "information_schema.tables" in sql:
            return ["table_name"], [(name,) for name in sorted(self.tables)]
        if "information_schema.columns" in sql:
            table = params[1]
            if table in self.broken:
                raise pyodbc.ProgrammingError("42501", f"permission denied for table {table}")
            return (
                ["column_name", "data_type", "is_nullable", "column_default"],
                list(self.tables.get(table, {}).get("columns", [])),
            )
        for name, table in self.tables.items():
            if f'FROM "{name}"' in sql:
                if name in self.broken:
                    raise pyodbc.ProgrammingError("42501", f"permission denied for table {name}")
                rows = table.get("rows", [])
                columns = list(rows[0].keys()) if rows else []
                return columns, [tuple(row.values()) for row in rows]
        raise pyodbc.ProgrammingError("42P01", f"unexpected query: {sql}")

    @contextmanager
    def connect(self):
        with self.lock:
            self.connects += 1
        if self.unreachable:
            raise DatabaseError("Failed to connect to database: connection refused")
        yield FakeConnection(self)

    def count(self, fragment: str) -> int:
        return sum(1 for sql, _ in self.queries if fragment in sql)


def default_tables() -> dict[str, dict[str, Any]]:
    return {
        "employees": {
            "columns": EMPLOYEES_COLUMNS,
            "rows": [
                {"id": 1, "name": "Ada", "salary": 5200, "department_id": 10},
                {"id": 2, "name": "Linus", "salary": None, "department_id": 20},
            ],
        },
        "departments": {
            "columns": DEPARTMENTS_COLUMNS,
            "rows": [{"id": 10, "title": "Research"}],
        },
    }


class OllamaStub:
    """Scriptable /api/tags and /api/generate endpoints."""

    def __init__(self, models: tuple[str, ...] = ("codellama:7b", "tinyllama")) -> None:
        self.models = list(models)
        self.replies: dict[str, Any] = {}
        self.probe_status: dict[str, int] = {}
        self.tags_status = 200
        self.tags_body: Any = None
        self.generate_calls: list[dict[str, Any]] = []
        self.probe_calls: list[str] = []
        self.requests = 0

    def reply(self, model: str, text: str | None = None, status: int = 200, body: Any = None) -> None:
        self.replies[model] = (status, body if body is not None else {"model": model, "response": text, "done": True})

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        if request.url.path == "/api/tags":
            if self.tags_status != 200:
                return httpx.Response(self.tags_status, text="unavailable")
            if self.tags_body is not None:
                return httpx.Response(200, json=self.tags_body)
            return httpx.Response(200, json={"models": [{"name": name} for name in self.models]})

        payload = json.loads(request.content)
        model = payload["model"]
        if "options" not in payload:
            self.probe_calls.append(model)
            status = self.probe_status.get(model, 200)
            return httpx.Response(status, json={"model": model, "response": "1"})

        self.generate_calls.append(payload)
        reply = self.replies.get(model)
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            return httpx.Response(500, json={"error": f"model '{model}' not loaded"})
        status, body = reply
        return httpx.Response(status, json=body)


class MetabaseStub:
    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []
        self.status = 200
        self.body: Any = {"data": {"cols": [{"name": "id"}], "rows": [[1]]}, "row_count": 1}
        self.error: Exception | None = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status, json=self.body)


@pytest.fixture
def settings() -> Settings:
    return Settings(metabase_session_token="0123456789abcdef")


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def catalog(settings: Settings, fake_db: FakeDatabase) -> SchemaCatalog:
    return SchemaCatalog(settings, connection_factory=fake_db.connect)


@pytest.fixture
def ollama() -> OllamaStub:
    return OllamaStub()


@pytest.fixture
def metabase() -> MetabaseStub:
    return MetabaseStub()


@pytest.fixture
def gateway(settings: Settings, ollama: OllamaStub) -> ModelGateway:
    return ModelGateway(settings, http_client=httpx.Client(transport=httpx.MockTransport(ollama.handle)))


@pytest.fixture
def executor(settings: Settings, metabase: MetabaseStub) -> QueryExecutor:
    return QueryExecutor(settings, http_client=httpx.Client(transport=httpx.MockTransport(metabase.handle)))


@pytest.fixture
def service(
    settings: Settings,
    catalog: SchemaCatalog,
    gateway: ModelGateway,
    executor: QueryExecutor,
) -> NLQService:
    return NLQService(settings, catalog=catalog, gateway=gateway, executor=executor)
