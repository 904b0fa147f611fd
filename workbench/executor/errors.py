"""Run failure conditions.

RunCancelled is cooperative and raised at the next poll point. The other
two are fatal for the run; documents already written stay on disk.
"""

from typing import Optional


class RunCancelled(InterruptedError):
    """Cancellation was requested for the run."""

    def __init__(self, message: str = "Run cancelled."):
        super().__init__(message)


class TurnBudgetExceeded(RuntimeError):
    """The run would exceed its permitted number of prompt engine calls."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns
        super().__init__(
            f"Run exceeded the maximum number of turns ({max_turns})."
        )


class StepFailed(RuntimeError):
    """The prompt engine reported a failure while executing a step."""

    def __init__(self, step_id: str, detail: Optional[str] = None):
        self.step_id = step_id
        self.detail = detail or "Agent step failed."
        super().__init__(self.detail)
