"""Run lifecycle management.

Handles:
- Run creation and the in-process run registry
- Event log per run (replayed to late subscribers)
- Cancellation (flag-based, polled by the run between units of work)
- Background thread execution

Nothing here is persisted; a run exists only as long as the process does,
and only the newest MAX_FINISHED_RUNS finished runs are kept. The documents
a run writes are its only durable output.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from workbench.llm.engine import PromptEngine
from workbench.orchestrator.schemas import StartRunRequest

from .document_store import FileDocumentStore
from .errors import RunCancelled, StepFailed, TurnBudgetExceeded
from .run_context import MAX_TURNS
from .runner import create_plan, run_agent

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = frozenset({"done", "error", "cancelled"})

# Finished runs kept in memory; the oldest are evicted past this.
MAX_FINISHED_RUNS = 50


@dataclass
class RunState:
    """In-memory state of one run."""

    run_id: str
    prompt: str
    status: str = "running"
    events: list[dict[str, Any]] = field(default_factory=list)
    cancel_requested: bool = False
    error: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    completed_at: Optional[str] = None
    thread: Optional[threading.Thread] = field(default=None, repr=False)

    def summary(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "prompt": self.prompt,
            "status": self.status,
            "error": self.error,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "eventCount": len(self.events),
        }


_runs: dict[str, RunState] = {}
_runs_lock = threading.Lock()


def create_run(prompt: str) -> RunState:
    run = RunState(run_id=str(uuid.uuid4()), prompt=prompt)
    with _runs_lock:
        _runs[run.run_id] = run
        _evict_finished_runs()
    emit_event(run.run_id, "started", {"message": "Started"})
    logger.info(f"Created run {run.run_id}")
    return run


def _evict_finished_runs() -> None:
    """Drop the oldest finished runs beyond MAX_FINISHED_RUNS. Caller holds the lock."""
    finished = sorted(
        (run for run in _runs.values() if run.status != "running"),
        key=lambda r: r.completed_at or r.created_at,
    )
    for run in finished[:max(0, len(finished) - MAX_FINISHED_RUNS)]:
        del _runs[run.run_id]
        logger.info(f"Evicted finished run {run.run_id}")


def delete_run(run_id: str) -> bool:
    """Forget a finished run and its event log.

    Running runs are not deleted; cancel them first.
    """
    with _runs_lock:
        run = _runs.get(run_id)
        if run is None:
            return False
        if run.status == "running":
            logger.warning(f"Cannot delete running run {run_id}")
            return False
        del _runs[run_id]
    logger.info(f"Deleted run {run_id}")
    return True


def get_run(run_id: str) -> Optional[RunState]:
    with _runs_lock:
        return _runs.get(run_id)


def list_runs() -> list[dict[str, Any]]:
    with _runs_lock:
        runs = list(_runs.values())
    return [run.summary() for run in sorted(runs, key=lambda r: r.created_at, reverse=True)]


def emit_event(run_id: str, event: str, data: dict[str, Any]) -> None:
    with _runs_lock:
        run = _runs.get(run_id)
        if run is None:
            return
        run.events.append({"event": event, "data": data})


def events_since(run_id: str, index: int) -> list[dict[str, Any]]:
    """Events at positions >= ``index`` in the run's log."""
    with _runs_lock:
        run = _runs.get(run_id)
        return list(run.events[index:]) if run else []


def _finish(run_id: str, status: str, event: str, data: dict[str, Any]) -> None:
    with _runs_lock:
        run = _runs.get(run_id)
        if run is None:
            return
        run.events.append({"event": event, "data": data})
        run.status = status
        run.error = data.get("message") if status == "error" else None
        run.completed_at = datetime.utcnow().isoformat()
        _evict_finished_runs()
    logger.info(f"Run {run_id} status → {status}")


# --- Cancellation ---

def request_cancellation(run_id: str) -> bool:
    """Ask a running run to stop at its next poll point.

    Returns True if the run was running and is now being cancelled.
    """
    with _runs_lock:
        run = _runs.get(run_id)
        if run is None:
            return False
        if run.status != "running":
            logger.warning(f"Cannot cancel run {run_id}: status is {run.status}")
            return False
        run.cancel_requested = True
    logger.info(f"Cancellation requested for run {run_id}")
    return True


def is_cancelled(run_id: str) -> bool:
    with _runs_lock:
        run = _runs.get(run_id)
        return bool(run and run.cancel_requested)


# --- Execution ---

def execute_run(
    run_id: str,
    request: StartRunRequest,
    store: FileDocumentStore,
    engine: PromptEngine,
    *,
    instructions: str = "",
    max_turns: int = MAX_TURNS,
) -> None:
    """Execute a run to a terminal event. Called from a background thread."""

    def on_status(message: str) -> None:
        emit_event(run_id, "progress", {"message": message})

    try:
        plan = request.plan
        if plan is None:
            plan = create_plan(
                request.prompt, store, engine,
                instructions=instructions, on_status=on_status,
            )
            emit_event(run_id, "plan", plan.model_dump(by_alias=True))

        result = run_agent(
            request.prompt,
            plan,
            store,
            engine,
            instructions=instructions,
            starting_step_index=request.starting_step_index,
            clarifications=request.clarifications,
            prior_artifacts=request.prior_artifacts,
            max_turns=max_turns,
            cancellation_check=lambda: is_cancelled(run_id),
            on_status=on_status,
            on_step_start=lambda step: emit_event(
                run_id, "step_started", step.model_dump()
            ),
            on_step_complete=lambda step_result: emit_event(
                run_id, "step_completed", step_result.model_dump(by_alias=True)
            ),
            on_artifact_written=lambda artifact: emit_event(
                run_id, "artifact_written", artifact.model_dump(by_alias=True)
            ),
        )
    except RunCancelled as e:
        _finish(run_id, "cancelled", "cancelled", {"message": str(e)})
    except (TurnBudgetExceeded, StepFailed) as e:
        logger.error(f"Run {run_id} failed: {e}")
        _finish(run_id, "error", "error", {"message": str(e), "kind": e.__class__.__name__})
    except Exception as e:
        logger.error(f"Run {run_id} crashed: {e}", exc_info=True)
        _finish(run_id, "error", "error", {"message": str(e) or "Run failed", "kind": "RunFailed"})
    else:
        _finish(
            run_id,
            "done",
            "done",
            {"message": "Done", **result.model_dump(by_alias=True, mode="json")},
        )


def start_run(
    request: StartRunRequest,
    store: FileDocumentStore,
    engine: PromptEngine,
    *,
    instructions: str = "",
    max_turns: int = MAX_TURNS,
) -> RunState:
    """Register a run and spawn a background thread to execute it.

    The thread is kept on the returned RunState (for testing). In production,
    the caller doesn't need to join; progress arrives through the event log.
    """
    run = create_run(request.prompt)
    thread = threading.Thread(
        target=execute_run,
        args=(run.run_id, request, store, engine),
        kwargs={"instructions": instructions, "max_turns": max_turns},
        name=f"run-{run.run_id}",
        daemon=True,
    )
    run.thread = thread
    thread.start()
    logger.info(f"Started execution thread for run {run.run_id}")
    return run
