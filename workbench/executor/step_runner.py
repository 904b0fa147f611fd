"""Sequential step execution.

Walks ``plan.steps[starting_step_index:]`` in order, one prompt engine call
per step. Before each step the run is polled for cancellation and one turn
is taken from the shared budget. The run is polled again when the call
returns, so a step finishing after cancellation is never recorded. A
failed engine call aborts the run.
Steps before the starting index are assumed done by an earlier run.
"""

import logging
from typing import Callable, Optional, Sequence

from workbench.llm.engine import PromptEngine
from workbench.orchestrator.planner import with_instructions
from workbench.orchestrator.schemas import PlanStep, RunPlan

from .errors import StepFailed
from .run_context import RunContext
from .schemas import StepResult, WorkspaceDocument

logger = logging.getLogger(__name__)


def build_step_prompt(
    step: PlanStep,
    plan: RunPlan,
    docs: Sequence[WorkspaceDocument],
) -> str:
    """Build the prompt for one step: persona, task, plan overview, documents."""
    role = next((a.role for a in plan.agents if a.name == step.agent), "Writer")
    lines = [
        f"You are {step.agent}, acting as a {role} sub-agent.",
        "Your job is to produce concise markdown notes for this step.",
        "Use only the workspace documents and prior notes provided.",
        "Do not reference any information outside the workspace.",
        f"Step title: {step.title}",
        f"Step description: {step.description}",
        "Plan steps:",
    ]
    lines.extend(
        f"{i}. {item.title} ({item.agent})" for i, item in enumerate(plan.steps, 1)
    )
    lines.append("Workspace documents:")
    lines.extend(f"---\nDocument: {doc.path}\n{doc.content}" for doc in docs)
    return "\n".join(lines)


def execute_steps(
    context: RunContext,
    engine: PromptEngine,
    docs: Sequence[WorkspaceDocument],
    *,
    starting_step_index: int = 0,
    instructions: str = "",
    on_status: Optional[Callable[[str], None]] = None,
    on_step_start: Optional[Callable[[PlanStep], None]] = None,
    on_step_complete: Optional[Callable[[StepResult], None]] = None,
) -> list[StepResult]:
    """Run the remaining steps of ``context.plan``.

    Raises:
        RunCancelled: Cancellation was requested before a step started or
            while its engine call was in flight.
        TurnBudgetExceeded: A step would exceed the run's turn budget.
        StepFailed: The prompt engine reported a failure for a step.
    """
    plan = context.plan
    steps_to_run = plan.steps[max(0, starting_step_index):]
    logger.info(
        f"Executing {len(steps_to_run)}/{len(plan.steps)} steps "
        f"from index {starting_step_index}"
    )

    for step in steps_to_run:
        context.check_cancelled(f"step {step.id}")
        context.consume_turn()

        if on_status:
            on_status(f"Agent {step.agent} working on {step.title}")
        if on_step_start:
            on_step_start(step)

        prompt = with_instructions(instructions, build_step_prompt(step, plan, docs))
        outcome = engine.complete(prompt)
        # A result that lands after cancellation is dropped unrecorded.
        context.check_cancelled(f"recording {step.id}")

        if not outcome.ok:
            logger.error(f"Step {step.id} ({step.title}) failed: {outcome.error_detail}")
            raise StepFailed(step.id, outcome.error_detail)

        result = StepResult(
            step_id=step.id,
            title=step.title,
            agent=step.agent,
            output=outcome.text,
        )
        context.record_step(result)
        logger.info(
            f"Step {step.id} completed by {step.agent} "
            f"({len(outcome.text):,} chars, turn {context.turns_used}/{context.max_turns})"
        )
        if on_step_complete:
            on_step_complete(result)

    return list(context.step_results)
