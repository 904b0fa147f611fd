import pytest

from workbench.llm.backends import AnthropicBackend, GeminiBackend, LLMCallResult
from workbench.llm.engine import BackendPromptEngine, PromptOutcome
from workbench.llm.factory import get_backend


class FakeBackend:
    model_id = "claude-fake"

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def execute_sync(self, user_message, *, max_tokens, system_prompt=None, label=""):
        self.calls.append((user_message, max_tokens))
        if self.error:
            raise self.error
        return LLMCallResult(
            content=self.content,
            model_id=self.model_id,
            input_tokens=1,
            output_tokens=1,
            duration_ms=0,
        )


def test_get_backend_by_prefix():
    assert isinstance(get_backend("claude-sonnet-4-6"), AnthropicBackend)
    assert isinstance(get_backend("gemini-2.5-pro"), GeminiBackend)
    with pytest.raises(ValueError):
        get_backend("gpt-4o")


def test_engine_success():
    backend = FakeBackend(content="hello")
    engine = BackendPromptEngine(backend, max_tokens=42)

    outcome = engine.complete("prompt")

    assert outcome == PromptOutcome.success("hello")
    assert outcome.ok
    assert backend.calls == [("prompt", 42)]


def test_engine_turns_exceptions_into_failures():
    engine = BackendPromptEngine(FakeBackend(error=RuntimeError("overloaded")))
    outcome = engine.complete("prompt")
    assert not outcome.ok
    assert outcome.error_detail == "overloaded"


def test_missing_api_key_is_a_failure_outcome(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    outcome = BackendPromptEngine(model_id="claude-sonnet-4-6").complete("prompt")
    assert outcome.status == "failure"
    assert "ANTHROPIC_API_KEY" in outcome.error_detail


def test_anthropic_client_reused_across_calls(monkeypatch):
    created = []

    class FakeAnthropic:
        def __init__(self, **kwargs):
            created.append(kwargs)
            self.messages = self

        def create(self, **request):
            block = type("Block", (), {"text": "reply"})()
            usage = type("Usage", (), {"input_tokens": 3, "output_tokens": 1})()
            return type("Response", (), {"content": [block], "usage": usage})()

    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setattr("anthropic.Anthropic", FakeAnthropic)
    backend = AnthropicBackend("claude-sonnet-4-6")

    first = backend.execute_sync("one", max_tokens=10)
    second = backend.execute_sync("two", max_tokens=10)

    assert first.content == second.content == "reply"
    assert second.input_tokens == 3
    assert len(created) == 1
    assert created[0]["api_key"] == "test-key"
