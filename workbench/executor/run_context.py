"""Per-run state: turn budget, cancellation polling and step results.

A RunContext is owned by exactly one run and discarded when it ends. It is
handed to both the step runner and the artifact reconciler so they draw on
the same budget; nothing here is shared between concurrent runs.
"""

import logging
from typing import Callable, Optional

from workbench.config import DEFAULT_MAX_TURNS
from workbench.orchestrator.schemas import RunPlan

from .errors import RunCancelled, TurnBudgetExceeded
from .schemas import StepResult

logger = logging.getLogger(__name__)

MAX_TURNS = DEFAULT_MAX_TURNS


class RunContext:
    """Ephemeral state for a single run."""

    def __init__(
        self,
        plan: RunPlan,
        *,
        max_turns: int = MAX_TURNS,
        cancellation_check: Optional[Callable[[], bool]] = None,
    ):
        self.plan = plan
        self.max_turns = max_turns
        self.turns_used = 0
        self.step_results: list[StepResult] = []
        self._cancellation_check = cancellation_check

    def is_cancelled(self) -> bool:
        return bool(self._cancellation_check and self._cancellation_check())

    def check_cancelled(self, where: str = "") -> None:
        """Raise RunCancelled if cancellation has been requested."""
        if self.is_cancelled():
            logger.info(f"Run cancelled{f' before {where}' if where else ''}")
            raise RunCancelled()

    def consume_turn(self) -> None:
        """Take one prompt engine call from the budget, or raise before it is made."""
        if self.turns_used + 1 > self.max_turns:
            logger.warning(
                f"Turn budget exhausted: {self.turns_used}/{self.max_turns} used"
            )
            raise TurnBudgetExceeded(self.max_turns)
        self.turns_used += 1

    def record_step(self, result: StepResult) -> None:
        self.step_results.append(result)
