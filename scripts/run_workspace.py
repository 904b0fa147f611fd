#!/usr/bin/env python3
"""Plan, and optionally execute, a run against a workspace from the shell.

Usage:
    # Show the synthesized plan only
    python scripts/run_workspace.py "Summarize the meeting notes"

    # Execute the plan and write artifacts
    python scripts/run_workspace.py "Summarize the meeting notes" --execute

    # Use another workspace and turn budget
    python scripts/run_workspace.py "Draft a launch brief" --execute \
        --workspace ./demo --max-turns 8
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from workbench import config  # noqa: E402
from workbench.executor.document_store import FileDocumentStore  # noqa: E402
from workbench.executor.errors import RunCancelled, StepFailed, TurnBudgetExceeded  # noqa: E402
from workbench.executor.runner import create_plan, run_agent  # noqa: E402
from workbench.llm.engine import BackendPromptEngine  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Run the orchestration engine on a workspace")
    parser.add_argument("prompt", help="What the run should produce")
    parser.add_argument("--workspace", type=Path, help="Workspace root (default: WORKBENCH_WORKSPACE_ROOT)")
    parser.add_argument("--execute", action="store_true", help="Execute the plan and write artifacts")
    parser.add_argument("--max-turns", type=int, help="Override the turn budget")
    parser.add_argument("--clarifications", help="Extra guidance passed to artifact assembly")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    workspace = args.workspace.resolve() if args.workspace else config.WORKSPACE_ROOT
    settings = config.load_settings(workspace)
    instructions = config.read_instructions(workspace)
    store = FileDocumentStore(config.docs_root(workspace))
    engine = BackendPromptEngine(model_id=settings["model"], max_tokens=settings["max_tokens"])

    plan = create_plan(args.prompt, store, engine, instructions=instructions, on_status=print)
    print(json.dumps(plan.model_dump(by_alias=True), indent=2))

    if not args.execute:
        return

    try:
        result = run_agent(
            args.prompt,
            plan,
            store,
            engine,
            instructions=instructions,
            clarifications=args.clarifications,
            max_turns=args.max_turns or settings["max_turns"],
            on_status=print,
            on_step_complete=lambda step: print(f"  done: {step.title} ({step.agent})"),
        )
    except (RunCancelled, TurnBudgetExceeded, StepFailed) as e:
        print(f"Run stopped: {e}")
        sys.exit(1)

    print(f"\nArtifacts ({result.turns_used} turns):")
    for artifact in result.artifacts:
        marker = "*" if artifact.relative_path == result.main_artifact else " "
        print(f" {marker} {artifact.output_path}")


if __name__ == "__main__":
    main()
