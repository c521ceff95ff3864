"""
Cleanup Plan
Ordered best-effort compensating actions.

Each step runs even if an earlier one failed; every step is logged and
reported with its own outcome. Used by model deletion, where provider
cancellation and storage cleanup must never block removal of the record.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


class StepOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"       # failed, remaining steps still ran
    SKIPPED = "skipped"     # nothing to do


@dataclass
class StepResult:
    step: str
    outcome: StepOutcome
    error: Optional[str] = None

    def as_dict(self) -> dict:
        return {"step": self.step, "outcome": self.outcome.value, "error": self.error}


@dataclass
class _Step:
    name: str
    action: Optional[Callable[[], Awaitable[None]]]
    skip_reason: Optional[str] = None


@dataclass
class CleanupPlan:
    """An ordered list of named async actions run with per-step error capture."""

    label: str
    steps: List[_Step] = field(default_factory=list)

    def add(self, name: str, action: Callable[[], Awaitable[None]]) -> "CleanupPlan":
        self.steps.append(_Step(name=name, action=action))
        return self

    def skip(self, name: str, reason: str) -> "CleanupPlan":
        """Record a step that does not apply, so the report stays complete."""
        self.steps.append(_Step(name=name, action=None, skip_reason=reason))
        return self

    async def run(self) -> List[StepResult]:
        results = []
        for step in self.steps:
            if step.action is None:
                logger.info(f"[Cleanup:{self.label}] {step.name}: skipped ({step.skip_reason})")
                results.append(StepResult(step.name, StepOutcome.SKIPPED))
                continue
            try:
                await step.action()
            except Exception as e:
                logger.error(f"[Cleanup:{self.label}] {step.name} failed, continuing: {e}")
                results.append(StepResult(step.name, StepOutcome.FAILED, error=str(e)))
            else:
                logger.info(f"[Cleanup:{self.label}] {step.name}: ok")
                results.append(StepResult(step.name, StepOutcome.SUCCEEDED))
        return results
