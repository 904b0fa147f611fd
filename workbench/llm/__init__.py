"""Prompt engine implementations and LLM response helpers."""

from workbench.llm.backends import (
    AnthropicBackend,
    GeminiBackend,
    LLMCallResult,
    ModelBackend,
)
from workbench.llm.client import parse_llm_json_response
from workbench.llm.engine import BackendPromptEngine, PromptEngine, PromptOutcome
from workbench.llm.factory import get_backend

__all__ = [
    "AnthropicBackend",
    "BackendPromptEngine",
    "GeminiBackend",
    "LLMCallResult",
    "ModelBackend",
    "PromptEngine",
    "PromptOutcome",
    "get_backend",
    "parse_llm_json_response",
]
