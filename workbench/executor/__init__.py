"""Execution side of the workbench.

Takes a RunPlan and executes it: one prompt engine call per step, then one
call to assemble the artifact bundle, which is written to the document store.

Architecture (bottom-up):
- document_store: Sandboxed markdown documents under workspace/docs
- run_context: Per-run turn budget and cancellation polling
- step_runner: Sequential step execution
- artifact_reconciler: Bundle assembly, fallbacks, writing, main artifact
- runner: create_plan() / run_agent() entry points
- run_manager: In-process run registry, events and cancellation flags
"""
