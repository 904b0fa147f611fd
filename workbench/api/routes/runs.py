"""Planning and run routes.

Endpoints:
    POST /v1/plan                    Synthesize a plan for a prompt
    POST /v1/runs                    Start a run in the background
    GET  /v1/runs                    List runs
    GET  /v1/runs/{run_id}           Poll status and event count
    POST /v1/runs/{run_id}/cancel    Request cooperative cancellation
    DELETE /v1/runs/{run_id}         Forget a finished run
    GET  /v1/runs/{run_id}/events    Server-sent event stream (replays the log)
"""

import asyncio
import json
import logging
import time

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from workbench.api.dependencies import (
    get_document_store,
    get_instructions,
    get_prompt_engine,
    get_settings,
)
from workbench.executor import run_manager
from workbench.executor.document_store import FileDocumentStore
from workbench.executor.runner import create_plan
from workbench.llm.engine import PromptEngine
from workbench.orchestrator.schemas import PlanRequest, StartRunRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["runs"])

EVENT_POLL_SECONDS = 0.25
PING_INTERVAL_SECONDS = 15.0


@router.post("/plan")
def plan_run(
    request: PlanRequest,
    store: FileDocumentStore = Depends(get_document_store),
    engine: PromptEngine = Depends(get_prompt_engine),
    instructions: str = Depends(get_instructions),
):
    """Synthesize a plan. Falls back to the default plan rather than failing."""
    prompt = request.prompt.strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required.")
    plan = create_plan(prompt, store, engine, instructions=instructions)
    return {"plan": plan.model_dump(by_alias=True)}


@router.post("/runs")
async def start_run(
    request: StartRunRequest,
    store: FileDocumentStore = Depends(get_document_store),
    engine: PromptEngine = Depends(get_prompt_engine),
    instructions: str = Depends(get_instructions),
    settings: dict = Depends(get_settings),
):
    """Start a run. Poll GET /runs/{run_id} or stream /runs/{run_id}/events."""
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Prompt is required.")

    run = run_manager.start_run(
        request,
        store,
        engine,
        instructions=instructions,
        max_turns=settings["max_turns"],
    )
    return {"runId": run.run_id, "status": run.status}


@router.get("/runs")
async def list_runs():
    return {"runs": run_manager.list_runs()}


@router.get("/runs/{run_id}")
async def get_run(run_id: str):
    run = run_manager.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return run.summary()


@router.post("/runs/{run_id}/cancel")
async def cancel_run(run_id: str):
    run = run_manager.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    if not run_manager.request_cancellation(run_id):
        raise HTTPException(
            status_code=400,
            detail=f"Run {run_id} is not running (status: {run.status})",
        )
    return {"runId": run_id, "cancelRequested": True}


@router.delete("/runs/{run_id}")
async def delete_run(run_id: str):
    """Forget a finished run and its event log."""
    run = run_manager.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    if not run_manager.delete_run(run_id):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete run {run_id}: status is {run.status}",
        )
    return {"runId": run_id, "deleted": True}


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def _event_stream(run_id: str):
    index = 0
    last_ping = time.monotonic()
    while True:
        events = run_manager.events_since(run_id, index)
        for item in events:
            yield format_sse(item["event"], item["data"])
            if item["event"] in run_manager.TERMINAL_EVENTS:
                return
        index += len(events)
        if not events and run_manager.get_run(run_id) is None:
            return

        if time.monotonic() - last_ping >= PING_INTERVAL_SECONDS:
            yield format_sse("ping", {})
            last_ping = time.monotonic()
        await asyncio.sleep(EVENT_POLL_SECONDS)


@router.get("/runs/{run_id}/events")
async def stream_run_events(run_id: str):
    """Stream a run's events as SSE, ending after done, error or cancelled."""
    if run_manager.get_run(run_id) is None:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return StreamingResponse(
        _event_stream(run_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
