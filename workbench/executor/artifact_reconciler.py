"""Artifact bundle assembly.

After the steps finish, one more prompt engine call asks for the whole
bundle as ``{"artifacts": [{"path", "content"}]}``. Whatever comes back is
reconciled against the plan so that every planned output appears exactly
once, in plan order:

1. the engine's artifact for that name (case-insensitive, written under
   the planned spelling), else
2. the deterministic fallback template for that name, else
3. an empty document.

If the call fails or yields no usable artifacts, the fallback templates
are used for the entire bundle.
"""

import logging
from typing import Callable, Optional, Sequence

from workbench.llm.client import parse_llm_json_response
from workbench.llm.engine import PromptEngine
from workbench.orchestrator.normalizer import is_reserved_output, normalize_doc_name
from workbench.orchestrator.planner import with_instructions
from workbench.orchestrator.schemas import DEFAULT_MAIN_OUTPUT, PriorArtifact, RunPlan

from .document_store import DocumentStore
from .run_context import RunContext
from .schemas import ArtifactResult, ArtifactSpec, StepResult

logger = logging.getLogger(__name__)


def build_artifact_prompt(
    plan: RunPlan,
    step_results: Sequence[StepResult],
    sources: Sequence[str],
    clarifications: Optional[str] = None,
    prior_artifacts: Optional[Sequence[PriorArtifact]] = None,
) -> str:
    """Build the assembly prompt for the Organizer."""
    lines = [
        "You are the Organizer sub-agent assembling final artifacts.",
        "Return ONLY valid JSON with this shape:",
        '{ "artifacts": [{"path": string, "content": string}] }',
        "Only include markdown files under workspace/docs.",
        f"Planned outputs: {', '.join(plan.outputs)}.",
        "Ensure Sources.md lists the workspace documents referenced.",
        "Include headings and clear structure.",
    ]
    if clarifications:
        lines.append(f"Clarifications from the user: {clarifications}")
    if prior_artifacts:
        lines.append("Existing artifacts to refine:")
        lines.extend(f"---\n{a.path}\n{a.content}" for a in prior_artifacts)
    lines.append("Step notes:")
    lines.extend(f"---\n{s.title} ({s.agent})\n{s.output}" for s in step_results)
    lines.append("Sources list:")
    lines.append("\n".join(sources))
    return "\n".join(lines)


def _bullets(items: Sequence[str], empty: str) -> str:
    return "\n".join(f"- {item}" for item in items) if items else f"- {empty}"


def build_fallback_artifacts(
    plan: RunPlan,
    step_results: Sequence[StepResult],
    sources: Sequence[str],
    clarifications: Optional[str] = None,
) -> list[ArtifactSpec]:
    """Deterministic content for every planned output."""
    notes = "\n\n".join(f"## {s.title}\n{s.output}" for s in step_results)

    artifacts = []
    for output in plan.outputs:
        key = output.lower()
        if key == "sources.md":
            content = f"# Sources\n\n{_bullets(sources, 'None')}"
        elif key == "next actions.md":
            content = (
                "# Next Actions\n\n"
                "- Draft next steps based on the brief.\n"
                "- Validate open questions with stakeholders."
            )
        elif key == "open questions.md":
            content = f"# Open Questions\n\n{_bullets(plan.questions, 'None noted.')}"
        elif key == "outline.md":
            content = f"# Outline\n\n{notes}"
        elif key == "critique.md":
            content = (
                "# Critique\n\n"
                "- Review the brief for gaps or assumptions.\n"
                "- Confirm alignment with the prompt."
            )
        else:
            heading = output[:-3] if key.endswith(".md") else output
            content = "\n".join([
                f"# {heading}",
                f"\n**Goal:** {plan.interpreted_goal}" if plan.interpreted_goal else "",
                f"\n**Clarifications:** {clarifications}" if clarifications else "",
                "\n## Notes",
                notes or "No notes available.",
            ])
        artifacts.append(ArtifactSpec(path=output, content=content))
    return artifacts


def parse_artifacts_payload(raw_text: str) -> list[ArtifactSpec]:
    """Extract artifact specs from an engine response; empty if unusable."""
    parsed = parse_llm_json_response(raw_text)
    if parsed is None or not isinstance(parsed.get("artifacts"), list):
        return []

    artifacts = []
    for item in parsed["artifacts"]:
        if not isinstance(item, dict):
            continue
        path = normalize_doc_name(str(item.get("path") or ""))
        if not path:
            continue
        content = item.get("content")
        artifacts.append(ArtifactSpec(path=path, content="" if content is None else str(content)))
    return artifacts


def _find(artifacts: Sequence[ArtifactSpec], name: str) -> Optional[ArtifactSpec]:
    return next((a for a in artifacts if a.path.lower() == name.lower()), None)


def reconcile(
    context: RunContext,
    engine: PromptEngine,
    sources: Sequence[str],
    *,
    clarifications: Optional[str] = None,
    prior_artifacts: Optional[Sequence[PriorArtifact]] = None,
    instructions: str = "",
    on_status: Optional[Callable[[str], None]] = None,
) -> list[ArtifactSpec]:
    """Produce one ArtifactSpec per planned output, in plan order.

    Raises:
        RunCancelled: Cancellation was requested before assembly.
        TurnBudgetExceeded: The assembly call would exceed the turn budget.
    """
    plan = context.plan
    step_results = context.step_results

    context.check_cancelled("artifact assembly")
    context.consume_turn()

    if on_status:
        on_status("Writing artifacts")

    prompt = with_instructions(
        instructions,
        build_artifact_prompt(plan, step_results, sources, clarifications, prior_artifacts),
    )
    outcome = engine.complete(prompt)

    generated: list[ArtifactSpec] = []
    if outcome.ok:
        generated = parse_artifacts_payload(outcome.text)
        if not generated:
            logger.warning("Artifact response held no usable artifacts, using fallback templates")
    else:
        logger.warning(f"Artifact assembly failed, using fallback templates: {outcome.error_detail}")

    fallback = build_fallback_artifacts(plan, step_results, sources, clarifications)

    final = []
    for output in plan.outputs:
        match = _find(generated, output)
        if match is None:
            match = _find(fallback, output)
            if generated and match is not None:
                logger.info(f"Engine omitted {output}, filled from fallback template")
        final.append(ArtifactSpec(path=output, content=match.content if match else ""))
    return final


def write_artifacts(
    store: DocumentStore,
    specs: Sequence[ArtifactSpec],
    *,
    context: Optional[RunContext] = None,
    on_artifact_written: Optional[Callable[[ArtifactResult], None]] = None,
) -> list[ArtifactResult]:
    """Write reconciled artifacts, keeping each file's previous content.

    Specs whose path normalizes to empty are skipped without a trace.
    """
    written = []
    for spec in specs:
        if context is not None:
            context.check_cancelled(f"writing {spec.path}")
        relative_path = normalize_doc_name(spec.path)
        if not relative_path:
            continue
        previous_content = store.read(relative_path) or ""
        output_path = store.write(relative_path, spec.content)

        result = ArtifactResult(
            output_path=output_path,
            relative_path=relative_path,
            content=spec.content,
            previous_content=previous_content,
        )
        written.append(result)
        if on_artifact_written:
            on_artifact_written(result)

    logger.info(f"Wrote {len(written)} artifacts: {[a.relative_path for a in written]}")
    return written


def select_main_artifact(artifacts: Sequence[ArtifactResult]) -> str:
    """First non-reserved artifact, else the first artifact, else the default name."""
    for artifact in artifacts:
        if not is_reserved_output(artifact.relative_path):
            return artifact.relative_path
    if artifacts:
        return artifacts[0].relative_path
    return DEFAULT_MAIN_OUTPUT
