from workbench.executor import run_manager
from workbench.llm.engine import PromptOutcome
from workbench.orchestrator.normalizer import build_fallback_plan
from workbench.orchestrator.schemas import StartRunRequest


def _event_names(run_id):
    return [e["event"] for e in run_manager.events_since(run_id, 0)]


def test_background_run_completes(store, scripted_engine, artifacts_response):
    engine = scripted_engine(["s1", "s2", "s3", "s4", artifacts_response(("Brief.md", "# Brief"))])
    request = StartRunRequest(prompt="Write a brief", plan=build_fallback_plan("Write a brief"))

    run = run_manager.start_run(request, store, engine)
    run.thread.join(timeout=10)

    assert run.status == "done"
    names = _event_names(run.run_id)
    assert names[0] == "started"
    assert names[-1] == "done"
    assert names.count("step_completed") == 4
    assert names.count("artifact_written") == 4

    done = run_manager.events_since(run.run_id, 0)[-1]["data"]
    assert done["mainArtifact"] == "Brief.md"
    assert done["turnsUsed"] == 5
    assert store.read("Brief.md") == "# Brief"


def test_run_without_plan_synthesizes_one(store, scripted_engine):
    engine = scripted_engine(["not json"])
    run = run_manager.create_run("Summarize")

    run_manager.execute_run(run.run_id, StartRunRequest(prompt="Summarize"), store, engine)

    events = run_manager.events_since(run.run_id, 0)
    plan_event = next(e for e in events if e["event"] == "plan")
    assert len(plan_event["data"]["steps"]) == 4
    assert events[-1]["event"] == "done"
    assert engine.calls == 6


def test_cancellation_during_step(store, scripted_engine):
    run = run_manager.create_run("prompt")

    def script(prompt):
        run_manager.request_cancellation(run.run_id)
        return "notes"

    engine = scripted_engine(script)
    request = StartRunRequest(prompt="prompt", plan=build_fallback_plan("prompt"))
    run_manager.execute_run(run.run_id, request, store, engine)

    assert run.status == "cancelled"
    assert engine.calls == 1
    assert _event_names(run.run_id)[-1] == "cancelled"
    assert "step_completed" not in _event_names(run.run_id)
    assert store.list_documents() == []


def test_step_failure_reported_as_error(store, scripted_engine):
    engine = scripted_engine([PromptOutcome.failure("quota exceeded")])
    run = run_manager.create_run("prompt")
    request = StartRunRequest(prompt="prompt", plan=build_fallback_plan("prompt"))

    run_manager.execute_run(run.run_id, request, store, engine)

    assert run.status == "error"
    assert run.error == "quota exceeded"
    last = run_manager.events_since(run.run_id, 0)[-1]
    assert last == {"event": "error", "data": {"message": "quota exceeded", "kind": "StepFailed"}}


def test_turn_budget_reported_as_error(store, scripted_engine):
    run = run_manager.create_run("prompt")
    request = StartRunRequest(prompt="prompt", plan=build_fallback_plan("prompt"))

    run_manager.execute_run(run.run_id, request, store, scripted_engine(), max_turns=3)

    last = run_manager.events_since(run.run_id, 0)[-1]
    assert last["data"]["kind"] == "TurnBudgetExceeded"


def test_cancel_rules():
    assert run_manager.request_cancellation("missing") is False

    run = run_manager.create_run("prompt")
    assert run_manager.request_cancellation(run.run_id) is True
    assert run_manager.is_cancelled(run.run_id) is True

    run_manager._finish(run.run_id, "cancelled", "cancelled", {"message": "Run cancelled."})
    assert run_manager.request_cancellation(run.run_id) is False


def test_list_runs_summaries():
    first = run_manager.create_run("one")
    run_manager.create_run("two")

    summaries = run_manager.list_runs()
    assert {s["prompt"] for s in summaries} == {"one", "two"}
    assert all(s["status"] == "running" for s in summaries)
    assert run_manager.get_run(first.run_id).summary()["eventCount"] == 1


def test_delete_run_only_when_finished():
    run = run_manager.create_run("prompt")
    assert run_manager.delete_run(run.run_id) is False

    run_manager._finish(run.run_id, "done", "done", {"message": "Done"})
    assert run_manager.delete_run(run.run_id) is True
    assert run_manager.get_run(run.run_id) is None
    assert run_manager.delete_run(run.run_id) is False


def test_oldest_finished_runs_evicted(monkeypatch):
    monkeypatch.setattr(run_manager, "MAX_FINISHED_RUNS", 1)
    first = run_manager.create_run("one")
    second = run_manager.create_run("two")
    running = run_manager.create_run("three")

    run_manager._finish(first.run_id, "done", "done", {"message": "Done"})
    run_manager._finish(second.run_id, "error", "error", {"message": "boom"})

    assert run_manager.get_run(first.run_id) is None
    assert run_manager.get_run(second.run_id) is second
    assert run_manager.get_run(running.run_id) is running
