import pytest
from fastapi.testclient import TestClient

from workbench.api.dependencies import (
    get_document_store,
    get_instructions,
    get_prompt_engine,
    get_settings,
)
from workbench.api.main import app
from workbench.executor import run_manager
from workbench.orchestrator.normalizer import build_fallback_plan


@pytest.fixture
def client(store, engine):
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_prompt_engine] = lambda: engine
    app.dependency_overrides[get_instructions] = lambda: ""
    app.dependency_overrides[get_settings] = lambda: {
        "model": "claude-test",
        "max_turns": 12,
        "max_tokens": 1000,
    }
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_document_crud(client, store):
    resp = client.post("/v1/file", json={"path": "notes/a.md", "content": "alpha launch"})
    assert resp.status_code == 200

    assert client.get("/v1/files").json() == {"files": ["notes/a.md"]}
    assert client.get("/v1/file", params={"path": "notes/a.md"}).json()["content"] == "alpha launch"

    resp = client.patch("/v1/file", json={"path": "notes/a.md", "newPath": "b.md"})
    assert resp.status_code == 200
    assert store.read("b.md") == "alpha launch"

    results = client.get("/v1/search", params={"query": "launch"}).json()["results"]
    assert results == [{"path": "b.md", "snippet": "alpha launch"}]

    assert client.delete("/v1/file", params={"path": "b.md"}).status_code == 200
    assert client.get("/v1/file", params={"path": "b.md"}).status_code == 404


def test_invalid_document_paths(client):
    assert client.get("/v1/file", params={"path": "../etc.md"}).status_code == 400
    assert client.post("/v1/file", json={"path": "x.txt", "content": ""}).status_code == 400
    assert client.post("/v1/file", json={"path": "  ", "content": ""}).status_code == 400
    assert client.patch("/v1/file", json={"path": "missing.md", "newPath": "b.md"}).status_code == 404


def test_plan_endpoint_falls_back(client, engine):
    engine.default = "no json"
    resp = client.post("/v1/plan", json={"prompt": "Summarize the notes"})
    assert resp.status_code == 200
    plan = resp.json()["plan"]
    assert plan["interpretedGoal"] == "Summarize the notes"
    assert len(plan["steps"]) == 4

    assert client.post("/v1/plan", json={"prompt": "  "}).status_code == 400


def test_run_lifecycle_and_event_stream(client, store):
    plan = build_fallback_plan("Write a brief").model_dump(by_alias=True)
    resp = client.post("/v1/runs", json={"prompt": "Write a brief", "plan": plan})
    assert resp.status_code == 200
    run_id = resp.json()["runId"]
    run_manager.get_run(run_id).thread.join(timeout=10)

    status = client.get(f"/v1/runs/{run_id}").json()
    assert status["status"] == "done"
    assert [r["runId"] for r in client.get("/v1/runs").json()["runs"]] == [run_id]

    body = client.get(f"/v1/runs/{run_id}/events").text
    assert body.startswith("event: started\n")
    assert "event: step_completed" in body
    assert body.rstrip().split("\n\n")[-1].startswith("event: done\n")
    assert sorted(store.list_documents()) == sorted(
        ["Brief.md", "Next Actions.md", "Open Questions.md", "Sources.md"]
    )

    resp = client.post(f"/v1/runs/{run_id}/cancel")
    assert resp.status_code == 400

    assert client.delete(f"/v1/runs/{run_id}").json() == {"runId": run_id, "deleted": True}
    assert client.get(f"/v1/runs/{run_id}").status_code == 404


def test_run_errors(client):
    assert client.post("/v1/runs", json={"prompt": ""}).status_code == 400
    assert client.get("/v1/runs/nope").status_code == 404
    assert client.post("/v1/runs/nope/cancel").status_code == 404
    assert client.get("/v1/runs/nope/events").status_code == 404
    assert client.delete("/v1/runs/nope").status_code == 404
    assert client.post(
        "/v1/runs", json={"prompt": "x", "startingStepIndex": -1}
    ).status_code == 422
