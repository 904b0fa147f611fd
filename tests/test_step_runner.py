import pytest

from workbench.executor.errors import RunCancelled, StepFailed, TurnBudgetExceeded
from workbench.executor.run_context import RunContext
from workbench.executor.runner import run_agent
from workbench.executor.schemas import WorkspaceDocument
from workbench.executor.step_runner import build_step_prompt, execute_steps
from workbench.llm.engine import PromptOutcome
from workbench.orchestrator.normalizer import build_fallback_plan, normalize_plan
from workbench.orchestrator.schemas import PlanAgent, PlanStep, RunPlan


def _two_step_plan():
    return normalize_plan(
        RunPlan(
            interpreted_goal="Goal",
            agents=[PlanAgent(name="Riley", role="Researcher"), PlanAgent(name="Sam", role="Writer")],
            steps=[
                PlanStep(title="Gather", description="Read", agent="Riley"),
                PlanStep(title="Draft", description="Write", agent="Sam"),
            ],
        ),
        "prompt",
    )


def test_step_prompt_contents():
    plan = _two_step_plan()
    docs = [WorkspaceDocument(path="notes.md", content="launch in March")]
    prompt = build_step_prompt(plan.steps[1], plan, docs)

    assert prompt.startswith("You are Sam, acting as a Writer sub-agent.")
    assert "Step title: Draft" in prompt
    assert "1. Gather (Riley)\n2. Draft (Sam)" in prompt
    assert "---\nDocument: notes.md\nlaunch in March" in prompt


def test_steps_run_in_order(scripted_engine):
    engine = scripted_engine(["first notes", "second notes"])
    context = RunContext(_two_step_plan(), max_turns=5)
    started = []

    results = execute_steps(context, engine, [], on_step_start=lambda s: started.append(s.id))

    assert started == ["step-1", "step-2"]
    assert [(r.step_id, r.agent, r.output) for r in results] == [
        ("step-1", "Riley", "first notes"),
        ("step-2", "Sam", "second notes"),
    ]
    assert context.turns_used == 2


def test_starting_step_index_skips_done_steps(scripted_engine):
    engine = scripted_engine()
    context = RunContext(_two_step_plan())

    results = execute_steps(context, engine, [], starting_step_index=1)

    assert [r.step_id for r in results] == ["step-2"]
    assert engine.calls == 1


def test_engine_failure_raises_step_failed(scripted_engine):
    engine = scripted_engine(["ok", PromptOutcome.failure("model overloaded")])
    context = RunContext(_two_step_plan())

    with pytest.raises(StepFailed) as exc_info:
        execute_steps(context, engine, [])

    assert exc_info.value.step_id == "step-2"
    assert str(exc_info.value) == "model overloaded"
    assert len(context.step_results) == 1


def test_turn_budget_checked_before_call(scripted_engine):
    engine = scripted_engine()
    context = RunContext(build_fallback_plan("prompt"), max_turns=2)

    with pytest.raises(TurnBudgetExceeded):
        execute_steps(context, engine, [])

    assert engine.calls == 2
    assert context.turns_used == 2


def test_budget_covers_artifact_assembly(store, scripted_engine):
    engine = scripted_engine()

    with pytest.raises(TurnBudgetExceeded) as exc_info:
        run_agent("prompt", _two_step_plan(), store, engine, max_turns=2)

    assert exc_info.value.max_turns == 2
    assert engine.calls == 2
    assert store.list_documents() == []


def test_cancellation_polled_before_each_step(scripted_engine):
    engine = scripted_engine()
    cancelled = {"flag": False}

    def cancel_after_first(result):
        cancelled["flag"] = True

    context = RunContext(
        build_fallback_plan("prompt"),
        cancellation_check=lambda: cancelled["flag"],
    )

    with pytest.raises(RunCancelled):
        execute_steps(context, engine, [], on_step_complete=cancel_after_first)

    assert engine.calls == 1
    assert [r.step_id for r in context.step_results] == ["step-1"]


def test_cancelled_before_start_makes_no_calls(store, scripted_engine):
    engine = scripted_engine()

    with pytest.raises(RunCancelled):
        run_agent("prompt", _two_step_plan(), store, engine, cancellation_check=lambda: True)

    assert engine.calls == 0


def test_step_finishing_after_cancellation_is_dropped(scripted_engine):
    cancelled = {"flag": False}

    def cancel_mid_call(prompt):
        cancelled["flag"] = True
        return "late notes"

    engine = scripted_engine(cancel_mid_call)
    completed = []
    context = RunContext(
        build_fallback_plan("prompt"),
        cancellation_check=lambda: cancelled["flag"],
    )

    with pytest.raises(RunCancelled):
        execute_steps(context, engine, [], on_step_complete=completed.append)

    assert engine.calls == 1
    assert context.step_results == []
    assert completed == []
