import json

import pytest

from workbench.executor import run_manager
from workbench.executor.document_store import FileDocumentStore
from workbench.llm.engine import PromptOutcome


class ScriptedPromptEngine:
    """Prompt engine that replays canned outcomes and records every prompt.

    ``script`` is either a list of outcomes/strings consumed in order, or a
    callable taking the prompt and returning an outcome or string.
    """

    def __init__(self, script=None, default="notes"):
        self.script = script if script is not None else []
        self.default = default
        self.prompts = []

    @property
    def calls(self):
        return len(self.prompts)

    def complete(self, prompt):
        self.prompts.append(prompt)
        if callable(self.script):
            result = self.script(prompt)
        elif self.script:
            result = self.script.pop(0)
        else:
            result = self.default
        if isinstance(result, PromptOutcome):
            return result
        return PromptOutcome.success(result)


def artifacts_json(*pairs):
    return json.dumps({"artifacts": [{"path": p, "content": c} for p, c in pairs]})


@pytest.fixture
def engine():
    return ScriptedPromptEngine()


@pytest.fixture
def store(tmp_path):
    store = FileDocumentStore(tmp_path / "docs")
    store.ensure_root()
    return store


@pytest.fixture(autouse=True)
def _clear_runs():
    yield
    with run_manager._runs_lock:
        run_manager._runs.clear()


@pytest.fixture
def scripted_engine():
    return ScriptedPromptEngine


@pytest.fixture
def artifacts_response():
    return artifacts_json
