from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core import QueryRequest, Settings, get_cached_settings
from .pipeline import NLQService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

EXAMPLE_QUERIES = {
    "basic_queries": [
        "List all regions",
        "Show all employees",
        "What are the job titles?",
        "List all countries",
        "Show departments",
    ],
    "complex_queries": [
        "How many employees are in each department?",
        "Which regions have the most countries?",
        "Show employees with their job titles",
        "List countries by region",
        "What is the average salary by department?",
    ],
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(service: NLQService | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or (service.settings if service else get_cached_settings())
    service = service or NLQService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service.close()

    app = FastAPI(title="NLQ Service", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.post("/api/nlq")
    def handle_query(body: QueryRequest) -> Any:
        if body.query is None or not body.query.strip():
            return _error(400, "Query parameter is required and cannot be empty")
        logger.info(f"Query request: {body.query[:100]}")
        return service.translate_and_execute(body.query.strip())

    @app.get("/api/nlq/database-info")
    def database_info() -> dict[str, Any]:
        return service.describe_database()

    @app.get("/api/nlq/tables")
    def tables() -> dict[str, Any]:
        return {"tables": service.list_tables()}

    @app.get("/api/nlq/test-metabase")
    def test_metabase() -> dict[str, Any]:
        return service.check_backend_connectivity()

    @app.get("/api/nlq/examples")
    def examples() -> dict[str, list[str]]:
        return EXAMPLE_QUERIES

    @app.post("/api/nlq/debug")
    def debug(body: QueryRequest) -> Any:
        if body.query is None or not body.query.strip():
            return _error(400, "Query parameter is required and cannot be empty")
        return service.debug_model_response(body.query.strip())

    @app.post("/api/nlq/schema/refresh")
    def schema_refresh() -> dict[str, Any]:
        logger.info("Refreshing schema...")
        return service.refresh_schema()

    @app.get("/api/nlq/health")
    def health() -> Any:
        table_count = len(service.list_tables())
        metabase = service.check_backend_connectivity()
        status = "healthy" if table_count and metabase.get("status") == "connected" else "unhealthy"
        content = {
            "database": "connected" if table_count else "no tables",
            "tableCount": table_count,
            "metabase": metabase.get("status"),
            "status": status,
        }
        if status != "healthy":
            return JSONResponse(status_code=503, content=content)
        return content

    return app
