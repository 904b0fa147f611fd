"""Top-level entry points: synthesize a plan, run a plan.

``run_agent()`` is the whole run in one call:

1. Re-normalizes the plan (caller edits are not trusted)
2. Reads every workspace document once
3. Executes the remaining steps against a fresh RunContext
4. Polls for cancellation, then reconciles the artifact bundle
5. Writes the bundle and selects the main artifact

It runs synchronously; the run manager calls it from a background thread.
"""

import logging
from typing import Callable, Optional, Sequence

from workbench.llm.engine import PromptEngine
from workbench.orchestrator.normalizer import normalize_plan
from workbench.orchestrator.planner import generate_plan
from workbench.orchestrator.schemas import PlanStep, PriorArtifact, RunPlan

from .artifact_reconciler import reconcile, select_main_artifact, write_artifacts
from .document_store import FileDocumentStore
from .run_context import MAX_TURNS, RunContext
from .schemas import ArtifactResult, RunResult, StepResult
from .step_runner import execute_steps

logger = logging.getLogger(__name__)


def create_plan(
    prompt: str,
    store: FileDocumentStore,
    engine: PromptEngine,
    *,
    instructions: str = "",
    on_status: Optional[Callable[[str], None]] = None,
) -> RunPlan:
    """Synthesize a plan for ``prompt`` against the store's documents."""
    store.ensure_root()
    if on_status:
        on_status("Planning run")
    return generate_plan(prompt, store.list_documents(), engine, instructions=instructions)


def run_agent(
    prompt: str,
    plan: RunPlan,
    store: FileDocumentStore,
    engine: PromptEngine,
    *,
    instructions: str = "",
    starting_step_index: int = 0,
    clarifications: Optional[str] = None,
    prior_artifacts: Optional[Sequence[PriorArtifact]] = None,
    max_turns: int = MAX_TURNS,
    cancellation_check: Optional[Callable[[], bool]] = None,
    on_status: Optional[Callable[[str], None]] = None,
    on_step_start: Optional[Callable[[PlanStep], None]] = None,
    on_step_complete: Optional[Callable[[StepResult], None]] = None,
    on_artifact_written: Optional[Callable[[ArtifactResult], None]] = None,
) -> RunResult:
    """Execute ``plan`` and write its artifact bundle.

    Raises:
        RunCancelled, TurnBudgetExceeded, StepFailed: The run stopped early.
            Artifacts written before the failure are left in place.
    """
    normalized_plan = normalize_plan(plan, prompt)
    store.ensure_root()
    docs = store.read_all()
    sources = [doc.path for doc in docs]

    context = RunContext(
        normalized_plan,
        max_turns=max_turns,
        cancellation_check=cancellation_check,
    )
    logger.info(
        f"Starting run: {len(normalized_plan.steps)} steps, "
        f"{len(sources)} workspace documents, budget {max_turns} turns"
    )

    execute_steps(
        context,
        engine,
        docs,
        starting_step_index=starting_step_index,
        instructions=instructions,
        on_status=on_status,
        on_step_start=on_step_start,
        on_step_complete=on_step_complete,
    )

    specs = reconcile(
        context,
        engine,
        sources,
        clarifications=clarifications,
        prior_artifacts=prior_artifacts,
        instructions=instructions,
        on_status=on_status,
    )
    artifacts = write_artifacts(
        store,
        specs,
        context=context,
        on_artifact_written=on_artifact_written,
    )

    main_artifact = select_main_artifact(artifacts)
    logger.info(
        f"Run complete: {len(artifacts)} artifacts, main={main_artifact}, "
        f"{context.turns_used}/{max_turns} turns"
    )

    return RunResult(
        artifacts=artifacts,
        steps=list(context.step_results),
        sources=sources,
        main_artifact=main_artifact,
        outputs=list(normalized_plan.outputs),
        plan=normalized_plan,
        turns_used=context.turns_used,
    )
