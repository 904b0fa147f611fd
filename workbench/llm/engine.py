"""The prompt engine: one text prompt in, one outcome out.

Orchestration code only ever talks to a PromptEngine. An outcome is either
a success carrying the generated text or a failure carrying the reported
error detail; provider exceptions never escape ``complete()``.
"""

import logging
from typing import Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from workbench.config import DEFAULT_MAX_TOKENS, DEFAULT_MODEL
from workbench.llm.backends import ModelBackend
from workbench.llm.factory import get_backend

logger = logging.getLogger(__name__)


class PromptOutcome(BaseModel):
    """Result of a single prompt engine call."""

    status: Literal["success", "failure"]
    text: str = ""
    error_detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, text: str) -> "PromptOutcome":
        return cls(status="success", text=text)

    @classmethod
    def failure(cls, error_detail: str) -> "PromptOutcome":
        return cls(status="failure", error_detail=error_detail)


@runtime_checkable
class PromptEngine(Protocol):
    """Anything that can complete a prompt."""

    def complete(self, prompt: str) -> PromptOutcome: ...


class BackendPromptEngine:
    """PromptEngine backed by a hosted model."""

    def __init__(
        self,
        backend: Optional[ModelBackend] = None,
        *,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self.backend = backend or get_backend(model_id)
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> PromptOutcome:
        try:
            result = self.backend.execute_sync(
                prompt,
                max_tokens=self.max_tokens,
                label=self.backend.model_id,
            )
        except Exception as e:
            logger.error(f"Prompt engine call failed ({self.backend.model_id}): {e}")
            return PromptOutcome.failure(str(e) or e.__class__.__name__)
        return PromptOutcome.success(result.content)
