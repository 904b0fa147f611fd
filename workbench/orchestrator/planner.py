"""LLM-powered plan synthesis.

Calls the prompt engine with the user prompt, the workspace document names
and the plan constraints, and returns a normalized RunPlan.

Synthesis never fails: if the engine call fails or its response holds no
parseable JSON object, the deterministic fallback plan is returned instead.
Callers cannot tell the two apart except by content.
"""

import logging
from typing import Optional, Sequence

from workbench.llm.client import parse_llm_json_response
from workbench.llm.engine import PromptEngine

from .normalizer import build_fallback_plan, coerce_plan_payload, normalize_plan
from .schemas import (
    AGENT_ARCHETYPES,
    MAX_AGENTS,
    MAX_QUESTIONS,
    MAX_STEPS,
    REQUIRED_OUTPUTS,
    RunPlan,
)

logger = logging.getLogger(__name__)


def build_plan_prompt(prompt: str, doc_names: Sequence[str]) -> str:
    """Build the planning prompt with constraints and available documents."""
    lines = [
        "You are a planning assistant for a document workflow app.",
        "Return only valid JSON with the shape:",
        "{",
        '  "interpretedGoal": string,',
        '  "steps": [{"title": string, "description": string, "agent": string}],',
        '  "agents": [{"name": string, "role": string}],',
        '  "outputs": [string],',
        '  "questions": [string]',
        "}",
        f"Constraints: steps <= {MAX_STEPS}, agents <= {MAX_AGENTS}, "
        f"questions <= {MAX_QUESTIONS}.",
        f"Use only these agent archetypes: {', '.join(AGENT_ARCHETYPES)}.",
        "Outputs must be markdown files under workspace/docs (e.g., Brief.md).",
        "Outputs must include a main deliverable plus: "
        f"{', '.join(REQUIRED_OUTPUTS)}.",
        f"If details are missing, ask up to {MAX_QUESTIONS} clarifying questions.",
        f"Workspace documents available: {', '.join(doc_names) if doc_names else 'None'}.",
        f"User prompt: {prompt}",
    ]
    return "\n".join(lines)


def with_instructions(instructions: str, body: str) -> str:
    """Prefix a prompt with the workspace's agent instructions."""
    return "\n".join(["Follow these instructions:", instructions or "", body])


def generate_plan(
    prompt: str,
    doc_names: Sequence[str],
    engine: PromptEngine,
    instructions: Optional[str] = None,
) -> RunPlan:
    """Synthesize a plan for ``prompt``.

    1. Builds the planning prompt (instructions + constraints + documents)
    2. Calls the prompt engine once
    3. Extracts the JSON object between the first '{' and the last '}'
    4. Coerces and normalizes it

    Any failure along the way yields the fallback plan.
    """
    plan_prompt = with_instructions(instructions or "", build_plan_prompt(prompt, doc_names))

    logger.info(f"Generating plan ({len(doc_names)} workspace documents)")
    outcome = engine.complete(plan_prompt)

    if not outcome.ok:
        logger.warning(
            f"Plan synthesis failed, using fallback plan: {outcome.error_detail}"
        )
        return build_fallback_plan(prompt, [])

    parsed = parse_llm_json_response(outcome.text)
    if parsed is None:
        logger.warning(
            f"Plan response was not parseable JSON, using fallback plan. "
            f"First 200 chars: {outcome.text[:200]}"
        )
        return build_fallback_plan(prompt, [])

    plan = normalize_plan(coerce_plan_payload(parsed), prompt)
    logger.info(
        f"Plan ready: {len(plan.steps)} steps, {len(plan.agents)} agents, "
        f"outputs={plan.outputs}"
    )
    return plan
