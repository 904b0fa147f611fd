"""Agent Workbench - plan and run document workflows.

Turns a natural-language goal into a bundle of markdown documents:
- Plan synthesis (goal, steps, sub-agents, outputs, clarifying questions)
- Step-by-step execution with a shared turn budget and cooperative cancellation
- Artifact reconciliation with deterministic fallbacks for every planned output
"""

__version__ = "0.1.0"
