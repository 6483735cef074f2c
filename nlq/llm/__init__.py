"""LLM interaction module.

Contains the prompt builder, the Ollama gateway and SQL extraction from
model output.
"""

from .client import STOP_SEQUENCES, LLMError, ModelGateway, ModelRequest, response_text
from .extractor import ResponseExtractor, is_noise_line
from .prompts import SQL_GENERATION_PREAMBLE, SQL_QUERY_RULES, PromptBuilder

__all__ = [
    "STOP_SEQUENCES",
    "LLMError",
    "ModelGateway",
    "ModelRequest",
    "response_text",
    "ResponseExtractor",
    "is_noise_line",
    "SQL_GENERATION_PREAMBLE",
    "SQL_QUERY_RULES",
    "PromptBuilder",
]
