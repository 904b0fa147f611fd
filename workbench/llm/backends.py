"""Hosted model backends behind the prompt engine.

Every backend exposes the same synchronous ``execute_sync()`` call and
returns an LLMCallResult. Provider subclasses only implement client
construction and a single ``_generate()`` round trip; timing, logging and
the empty-response check live in the shared base class.

Errors are raised, not returned. BackendPromptEngine (engine.py) turns
them into failure outcomes.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Text and usage from one backend call."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


@runtime_checkable
class ModelBackend(Protocol):
    """A hosted model that completes one user message."""

    @property
    def model_id(self) -> str: ...

    def execute_sync(
        self,
        user_message: str,
        *,
        max_tokens: int,
        system_prompt: Optional[str] = None,
        label: str = "",
    ) -> LLMCallResult: ...


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"LLM service unavailable. Set {name} environment variable.")
    return value


class _HostedBackend:
    provider = "model"

    def __init__(self, model_id: str):
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    def _generate(
        self,
        user_message: str,
        max_tokens: int,
        system_prompt: Optional[str],
    ) -> tuple[str, Optional[int], Optional[int]]:
        """Return (text, input_tokens, output_tokens); token counts may be None."""
        raise NotImplementedError

    def execute_sync(
        self,
        user_message: str,
        *,
        max_tokens: int,
        system_prompt: Optional[str] = None,
        label: str = "",
    ) -> LLMCallResult:
        label = label or self._model_id
        logger.info(
            f"[{label}] {self.provider} call: ~{len(user_message) // 4:,} input tokens, "
            f"max_tokens={max_tokens}"
        )

        started = time.time()
        text, input_tokens, output_tokens = self._generate(
            user_message, max_tokens, system_prompt
        )
        duration_ms = int((time.time() - started) * 1000)

        text = (text or "").strip()
        if not text:
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        result = LLMCallResult(
            content=text,
            model_id=self._model_id,
            input_tokens=input_tokens if input_tokens is not None else len(user_message) // 4,
            output_tokens=output_tokens if output_tokens is not None else len(text) // 4,
            duration_ms=duration_ms,
        )
        logger.info(
            f"[{label}] {self.provider} done: {result.input_tokens}+{result.output_tokens} "
            f"tokens, {duration_ms}ms, {len(text):,} chars"
        )
        return result


class AnthropicBackend(_HostedBackend):
    """Claude via the Anthropic messages API. Needs ANTHROPIC_API_KEY."""

    provider = "Anthropic"

    def __init__(self, model_id: str = "claude-sonnet-4-6"):
        super().__init__(model_id)
        self._anthropic = None

    def _client(self):
        """Create the client on first use and reuse it afterwards."""
        if self._anthropic is None:
            api_key = _require_env("ANTHROPIC_API_KEY")

            import httpx
            from anthropic import Anthropic

            # No wall-clock limit on a call; only socket silence is bounded.
            self._anthropic = Anthropic(
                api_key=api_key,
                timeout=httpx.Timeout(connect=60.0, read=300.0, write=60.0, pool=60.0),
            )
        return self._anthropic

    def _generate(self, user_message, max_tokens, system_prompt):
        request: dict[str, Any] = {
            "model": self._model_id,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user_message}],
        }
        if system_prompt:
            request["system"] = system_prompt

        response = self._client().messages.create(**request)
        text = "".join(getattr(block, "text", "") for block in response.content)
        return text, response.usage.input_tokens, response.usage.output_tokens


class GeminiBackend(_HostedBackend):
    """Gemini via google-genai (the ``gemini`` extra). Needs GEMINI_API_KEY."""

    provider = "Gemini"

    def __init__(self, model_id: str = "gemini-2.5-pro"):
        super().__init__(model_id)

    def _generate(self, user_message, max_tokens, system_prompt):
        try:
            from google import genai
        except ImportError:
            raise RuntimeError(
                "google-genai is not installed. Install with: pip install 'agent-workbench[gemini]'"
            )

        client = genai.Client(api_key=_require_env("GEMINI_API_KEY"))
        generation: dict[str, Any] = {"max_output_tokens": max_tokens}
        if system_prompt:
            generation["system_instruction"] = system_prompt

        response = client.models.generate_content(
            model=self._model_id,
            contents=user_message,
            config=genai.types.GenerateContentConfig(**generation),
        )
        usage = getattr(response, "usage_metadata", None)
        return (
            getattr(response, "text", None) or "",
            getattr(usage, "prompt_token_count", None),
            getattr(usage, "candidates_token_count", None),
        )
