"""Ollama API client for SQL generation."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any, Callable

import httpx

from ..core.config import Settings
from ..core.exceptions import (
    LLMError,
    ModelMalformedResponse,
    ModelNonSuccessStatus,
    ModelUnreachable,
)
from ..schema.catalog import SchemaSnapshot
from .prompts import PromptBuilder

logger = logging.getLogger(__name__)

__all__ = ["LLMError", "ModelGateway", "ModelRequest", "STOP_SEQUENCES"]

STOP_SEQUENCES = ("\n\n", "Question:", "question:", "QUESTION:")
TOP_P = 0.9
HEALTH_PROBE_PROMPT = "SELECT 1"


@dataclass(frozen=True)
class ModelRequest:
    model: str
    prompt: str
    temperature: float
    num_predict: int
    top_p: float = TOP_P
    stop: tuple[str, ...] = STOP_SEQUENCES

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "prompt": self.prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.num_predict,
                "top_p": self.top_p,
                "stop": list(self.stop),
            },
        }


class ModelGateway:
    """Availability checks and single-shot generation against Ollama.

    `is_model_available` and `probe_health` never raise. `generate`
    raises `ModelUnreachable`, `ModelNonSuccessStatus` or
    `ModelMalformedResponse`, all subclasses of `LLMError`.
    """

    def __init__(
        self,
        settings: Settings,
        prompt_builder: PromptBuilder | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings
        self.prompt_builder = prompt_builder or PromptBuilder(settings.default_limit)
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client()

    def close(self) -> None:
        """Close the HTTP client if this gateway created it."""
        if self._owns_client:
            self._client.close()

    def _timeout(self, timeout: float | None) -> float:
        return self.settings.llm_attempt_timeout if timeout is None else timeout

    def is_model_available(self, model: str, timeout: float | None = None) -> bool:
        """True iff `model` is listed by the service (exact name match)."""
        try:
            response = self._client.get(self.settings.llm_tags_url, timeout=self._timeout(timeout))
            response.raise_for_status()
            models = response.json().get("models") or []
        except (httpx.HTTPError, json.JSONDecodeError, AttributeError) as e:
            logger.error(f"Failed to check model availability: {e}")
            return False

        if not isinstance(models, list):
            logger.error(f"Unexpected model listing: {str(models)[:200]}")
            return False

        if any(isinstance(m, dict) and m.get("name") == model for m in models):
            logger.debug(f"Model {model} is available")
            return True
        logger.warning(f"Model {model} not found in available models")
        return False

    def probe_health(
        self,
        model: str,
        timeout: float | None = None,
        time_left: Callable[[], float] | None = None,
    ) -> bool:
        """Listed and able to answer a minimal generation request.

        With `time_left`, each of the two calls is bounded by what it
        returns at the moment the call is made; the probe is skipped once
        no time is left.
        """
        def call_timeout() -> float:
            return time_left() if time_left is not None else self._timeout(timeout)

        if not self.is_model_available(model, call_timeout()):
            logger.warning(f"Model {model} is not available in LLM service")
            return False

        remaining = call_timeout()
        if remaining <= 0:
            logger.warning(f"No time left to probe model {model}")
            return False

        payload = {"model": model, "prompt": HEALTH_PROBE_PROMPT, "stream": False}
        try:
            response = self._client.post(self.settings.llm_url, json=payload, timeout=remaining)
        except httpx.HTTPError as e:
            logger.warning(f"LLM service test request for model {model} failed: {e}")
            return False

        healthy = response.is_success
        logger.debug(f"LLM test request for model {model}: {'Successful' if healthy else 'Failed'}")
        return healthy

    def build_request(self, question: str, snapshot: SchemaSnapshot, model: str, max_tokens: int) -> ModelRequest:
        prompt = self.prompt_builder.build(question, snapshot)
        logger.debug(f"LLM prompt for model {model}: {prompt[:200]}...")
        return ModelRequest(
            model=model,
            prompt=prompt,
            temperature=self.settings.llm_temperature,
            num_predict=max_tokens,
        )

    def generate(
        self,
        question: str,
        snapshot: SchemaSnapshot,
        model: str,
        max_tokens: int,
        timeout: float | None = None,
    ) -> str:
        """Return the model's raw `response` text, unmodified."""
        request = self.build_request(question, snapshot, model, max_tokens)
        body = self.send(request, timeout)
        return response_text(body)

    def send(self, request: ModelRequest, timeout: float | None = None) -> dict[str, Any]:
        """POST a generation request and return the decoded JSON body."""
        effective_timeout = self._timeout(timeout)
        logger.debug(f"Calling LLM at {self.settings.llm_url} with model={request.model}, num_predict={request.num_predict}")

        try:
            response = self._client.post(self.settings.llm_url, json=request.to_payload(), timeout=effective_timeout)
        except httpx.TimeoutException as e:
            logger.error(f"LLM request for {request.model} timed out after {effective_timeout}s")
            raise ModelUnreachable(f"LLM request timed out after {effective_timeout}s") from e
        except httpx.HTTPError as e:
            logger.error(f"Error calling LLM with model {request.model}: {e}")
            raise ModelUnreachable(f"Failed to connect to LLM: {e}") from e

        logger.debug(f"LLM response status: {response.status_code}")
        if not response.is_success:
            logger.error(f"LLM HTTP error: {response.status_code} - {response.text[:200]}")
            raise ModelNonSuccessStatus(
                f"LLM request failed with status {response.status_code}: {response.text[:200]}",
                response.status_code,
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse LLM response as JSON: {response.text[:200]}")
            raise ModelMalformedResponse("LLM returned invalid JSON") from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected response type: {type(data)}")
            raise ModelMalformedResponse("Invalid response from LLM: response body is not an object")
        return data


def response_text(body: dict[str, Any]) -> str:
    """The designated text field of a generation response."""
    text = body.get("response")
    if not isinstance(text, str):
        logger.error(f"LLM response missing 'response' key. Body: {str(body)[:200]}")
        raise ModelMalformedResponse("Invalid response from LLM: missing 'response' field")
    return text
