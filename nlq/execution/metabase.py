"""Native-query execution through the Metabase dataset API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..core.config import Settings
from ..core.exceptions import ExecutionFailed

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Metabase-Session"
CONNECTIVITY_TEST_SQL = "SELECT 1 as test_column"


class QueryExecutor:
    def __init__(self, settings: Settings, http_client: httpx.Client | None = None) -> None:
        self.settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def build_payload(self, sql: str) -> dict[str, Any]:
        return {
            "type": "native",
            "native": {"query": sql},
            "database": self.settings.metabase_database_id,
        }

    def _headers(self) -> dict[str, str]:
        return {
            SESSION_HEADER: self.settings.metabase_session_token,
            "Content-Type": "application/json",
        }

    def execute(self, sql: str) -> dict[str, Any]:
        """Run SQL and return Metabase's response body verbatim.

        Raises:
            ExecutionFailed: on transport failure, non-2xx status, an
                undecodable body, or a body carrying an `error` field
        """
        logger.debug(f"Submitting native query to Metabase: {sql[:200]}")
        try:
            response = self._client.post(
                self.settings.metabase_sql_api_url,
                json=self.build_payload(sql),
                headers=self._headers(),
                timeout=self.settings.metabase_timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Error executing query in Metabase: {e.response.status_code} - {e.response.text[:200]}")
            raise ExecutionFailed(f"Metabase returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Error executing query in Metabase: {e}")
            raise ExecutionFailed(str(e)) from e
        except json.JSONDecodeError as e:
            logger.error(f"Metabase returned invalid JSON: {response.text[:200]}")
            raise ExecutionFailed("Metabase returned invalid JSON") from e

        if isinstance(body, dict) and "error" in body:
            logger.error(f"Metabase query error: {body['error']}")
            raise ExecutionFailed(f"Metabase query error: {body['error']}")

        return body

    def check_connectivity(self) -> dict[str, Any]:
        """Run a trivial query; never raises."""
        try:
            body = self.execute(CONNECTIVITY_TEST_SQL)
        except ExecutionFailed as e:
            logger.error(f"Metabase connection test failed: {e}")
            return {"status": "failed", "error": str(e)}
        return {"status": "connected", "response": body}
