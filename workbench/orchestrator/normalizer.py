"""Plan normalization.

Every plan that reaches the executor passes through ``normalize_plan()``,
whether it came from the prompt engine, from the fallback builder or from
a user who edited it in the UI. The function is total and idempotent:

- agents are deduplicated case-insensitively, clamped to MAX_AGENTS and
  given a known archetype role (a default Writer is added when none survive)
- steps are clamped to MAX_STEPS; steps whose agent is unknown are
  reassigned round-robin by position
- an empty step list is replaced by the fixed four-step fallback plan
- outputs are sanitized into markdown names, deduplicated, and always
  include the required files plus at least one main deliverable
- questions are trimmed to at most MAX_QUESTIONS non-empty entries
"""

import logging
from typing import Any, Iterable, Optional

from .schemas import (
    AGENT_ARCHETYPES,
    DEFAULT_MAIN_OUTPUT,
    GOAL_PREVIEW_CHARS,
    MAX_AGENTS,
    MAX_QUESTIONS,
    MAX_STEPS,
    OPTIONAL_OUTPUTS,
    REQUIRED_OUTPUTS,
    PlanAgent,
    PlanStep,
    RunPlan,
)

logger = logging.getLogger(__name__)

RESERVED_OUTPUTS = frozenset(
    name.lower() for name in (*REQUIRED_OUTPUTS, *OPTIONAL_OUTPUTS)
)

# (title, description) for each fallback step, one per archetype in order
FALLBACK_STEPS = [
    (
        "Review workspace context",
        "Scan the workspace documents for relevant facts and context.",
    ),
    (
        "Draft outline and key points",
        "Outline the main deliverable and capture key points to address the prompt.",
    ),
    (
        "Critique and refine",
        "Surface risks, gaps, and questions to improve the final outputs.",
    ),
    (
        "Assemble artifacts",
        "Compile the deliverable, next actions, open questions, and sources.",
    ),
]


def normalize_doc_name(value: str) -> str:
    """Turn a candidate file name into a safe markdown name, or '' if unusable.

    Trailing slashes are dropped. A name whose last segment is blank, '.' or
    a bare '.md' names no file and is unusable.
    """
    trimmed = (value or "").strip().replace("\\", "/")
    if not trimmed:
        return ""
    stripped = trimmed.strip("/")
    if not stripped or ".." in stripped:
        return ""
    basename = stripped.rsplit("/", 1)[-1]
    if basename.strip().lower() in ("", ".", ".md"):
        return ""
    return stripped if basename.lower().endswith(".md") else f"{stripped}.md"


def is_reserved_output(name: str) -> bool:
    """True for the required/optional outputs that never count as the main deliverable."""
    return name.lower() in RESERVED_OUTPUTS


def unique_by_lowercase(values: Iterable[str]) -> list[str]:
    """Drop empties and case-insensitive duplicates, keeping the first spelling."""
    seen: dict[str, str] = {}
    for value in values:
        if not value:
            continue
        key = value.lower()
        if key not in seen:
            seen[key] = value
    return list(seen.values())


def build_outputs(outputs: Iterable[str]) -> list[str]:
    """Normalize output names and enforce the required/main-deliverable invariant."""
    normalized = unique_by_lowercase(normalize_doc_name(o) for o in outputs)

    lowered = {o.lower() for o in normalized}
    for required in REQUIRED_OUTPUTS:
        if required.lower() not in lowered:
            normalized.append(required)
            lowered.add(required.lower())

    if not any(not is_reserved_output(o) for o in normalized):
        normalized.insert(0, DEFAULT_MAIN_OUTPUT)

    return unique_by_lowercase(normalized)


def build_fallback_plan(prompt: str, outputs: Optional[Iterable[str]] = None) -> RunPlan:
    """Deterministic plan used when synthesis fails or a plan has no steps."""
    agents = [PlanAgent(name=role, role=role) for role in AGENT_ARCHETYPES][:MAX_AGENTS]

    steps = []
    for index, (title, description) in enumerate(FALLBACK_STEPS[:MAX_STEPS]):
        agent = agents[index % len(agents)]
        steps.append(
            PlanStep(
                id=f"step-{index + 1}",
                title=title,
                description=description,
                agent=agent.name,
            )
        )

    return RunPlan(
        interpreted_goal=(prompt or "")[:GOAL_PREVIEW_CHARS],
        steps=steps,
        agents=agents,
        outputs=build_outputs(outputs or []),
        questions=[],
    )


def _canonical_role(role: str) -> Optional[str]:
    for archetype in AGENT_ARCHETYPES:
        if (role or "").strip().lower() == archetype.lower():
            return archetype
    return None


def _normalize_agents(candidates: list[PlanAgent]) -> list[PlanAgent]:
    first_by_key: dict[str, PlanAgent] = {}
    for agent in candidates:
        name = (agent.name or "").strip()
        if name and name.lower() not in first_by_key:
            first_by_key[name.lower()] = PlanAgent(name=name, role=agent.role)

    agents = []
    for index, agent in enumerate(first_by_key.values()):
        role = _canonical_role(agent.role) or AGENT_ARCHETYPES[index % len(AGENT_ARCHETYPES)]
        agents.append(PlanAgent(name=agent.name, role=role))

    agents = agents[:MAX_AGENTS]
    if not agents:
        agents.append(PlanAgent(name="Writer", role="Writer"))
    return agents


def _normalize_steps(candidates: list[PlanStep], agents: list[PlanAgent]) -> list[PlanStep]:
    by_key = {agent.name.lower(): agent.name for agent in agents}

    steps = []
    for index, step in enumerate(candidates[:MAX_STEPS]):
        agent_name = by_key.get((step.agent or "").strip().lower())
        if agent_name is None:
            agent_name = agents[index % len(agents)].name
            logger.warning(
                f"Step {index + 1} references unknown agent '{step.agent}', "
                f"reassigned to '{agent_name}'"
            )
        steps.append(
            PlanStep(
                id=step.id or f"step-{index + 1}",
                title=step.title if step.title.strip() else f"Step {index + 1}",
                description=step.description or "",
                agent=agent_name,
            )
        )
    return steps


def normalize_plan(plan: RunPlan, prompt: str) -> RunPlan:
    """Return a copy of ``plan`` that satisfies every plan invariant."""
    agents = _normalize_agents(plan.agents)
    steps = _normalize_steps(plan.steps, agents)

    if not steps:
        logger.info("Plan has no steps, substituting fallback plan")
        return build_fallback_plan(prompt, plan.outputs)

    questions = [q.strip() for q in plan.questions if q and q.strip()][:MAX_QUESTIONS]

    return RunPlan(
        interpreted_goal=(
            plan.interpreted_goal
            if plan.interpreted_goal.strip()
            else (prompt or "")[:GOAL_PREVIEW_CHARS]
        ),
        steps=steps,
        agents=agents,
        outputs=build_outputs(plan.outputs),
        questions=questions,
    )


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def coerce_plan_payload(data: dict) -> RunPlan:
    """Coerce loosely-typed JSON into a candidate RunPlan.

    Missing arrays become empty and missing strings become ''. Step ids are
    always reassigned by position. The result still needs normalize_plan().
    """
    raw_steps = data.get("steps")
    raw_agents = data.get("agents")
    raw_outputs = data.get("outputs")
    raw_questions = data.get("questions")

    steps = []
    if isinstance(raw_steps, list):
        for index, item in enumerate(raw_steps):
            item = item if isinstance(item, dict) else {}
            steps.append(
                PlanStep(
                    id=f"step-{index + 1}",
                    title=_as_text(item.get("title")),
                    description=_as_text(item.get("description")),
                    agent=_as_text(item.get("agent")),
                )
            )

    agents = []
    if isinstance(raw_agents, list):
        for item in raw_agents:
            item = item if isinstance(item, dict) else {}
            role = item.get("role")
            agents.append(
                PlanAgent(
                    name=_as_text(item.get("name")),
                    role="Writer" if role is None else str(role),
                )
            )

    outputs = [_as_text(o) for o in raw_outputs] if isinstance(raw_outputs, list) else []
    questions = (
        [q for q in (_as_text(q) for q in raw_questions) if q]
        if isinstance(raw_questions, list)
        else []
    )

    return RunPlan(
        interpreted_goal=_as_text(data.get("interpretedGoal")),
        steps=steps,
        agents=agents,
        outputs=outputs,
        questions=questions,
    )
