"""Plan side of the workbench.

Given a user prompt and the workspace document names, the orchestrator:
1. Builds a planning prompt with the structural constraints
2. Calls the prompt engine once and parses its JSON leniently
3. Normalizes the candidate so every plan invariant holds
4. Falls back to a fixed four-step plan when synthesis fails

Plans are inspectable and editable by the caller; the executor re-normalizes
them before running.
"""
