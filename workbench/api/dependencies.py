"""Shared FastAPI dependencies: the workspace document store and prompt engine."""

import logging
from functools import lru_cache

from workbench import config
from workbench.executor.document_store import FileDocumentStore
from workbench.llm.engine import BackendPromptEngine, PromptEngine

logger = logging.getLogger(__name__)


def get_document_store() -> FileDocumentStore:
    return FileDocumentStore(config.docs_root())


def get_settings() -> dict:
    return config.load_settings()


def get_instructions() -> str:
    return config.read_instructions()


@lru_cache(maxsize=1)
def _prompt_engine(model_id: str, max_tokens: int) -> BackendPromptEngine:
    logger.info(f"Prompt engine: {model_id} (max_tokens={max_tokens})")
    return BackendPromptEngine(model_id=model_id, max_tokens=max_tokens)


def get_prompt_engine() -> PromptEngine:
    settings = get_settings()
    return _prompt_engine(settings["model"], settings["max_tokens"])
