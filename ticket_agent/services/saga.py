"""Minimal sequential saga runner.

A saga is an ordered list of named steps. Each step may register a
compensation that undoes what it acquired. The runner executes the steps in
order and stops at the first failure; it then runs the compensations of every
step it reached, the failing one included, newest first.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

ContextT = TypeVar("ContextT")


class SagaState(str, Enum):
    STARTED = "started"
    PREPARING = "preparing"
    CONTEXT_GATHERING = "context_gathering"
    AGENT_RUNNING = "agent_running"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    COMPENSATED_FAILED = "compensated_failed"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single step: success, or failure carrying the error."""

    step: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SagaResult:
    state: SagaState
    steps: list[StepResult] = field(default_factory=list)
    error: Exception | None = None
    failed_step: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is SagaState.SUCCEEDED


@dataclass(frozen=True)
class SagaStep(Generic[ContextT]):
    name: str
    state: SagaState
    action: Callable[[ContextT], None]
    compensation: Callable[[ContextT], None] | None = None

    def run(self, context: ContextT) -> StepResult:
        try:
            self.action(context)
        except Exception as e:
            return StepResult(self.name, e)
        return StepResult(self.name)


class Saga(Generic[ContextT]):
    """Runs steps in order, compensating on failure."""

    def __init__(
        self,
        name: str,
        steps: list[SagaStep[ContextT]],
        on_failure: Callable[[ContextT, Exception], None] | None = None,
    ):
        self.name = name
        self.steps = steps
        self.on_failure = on_failure
        self.state = SagaState.STARTED

    def run(self, context: ContextT) -> SagaResult:
        results: list[StepResult] = []
        reached: list[SagaStep[ContextT]] = []

        for step in self.steps:
            self.state = step.state
            reached.append(step)
            logger.debug(f"[{self.name}] step {step.name} ({step.state.value})")

            result = step.run(context)
            results.append(result)
            if not result.ok:
                logger.error(f"[{self.name}] step {step.name} failed: {result.error}")
                self._compensate(reached, context)
                self._fail(context, result.error)
                self.state = SagaState.COMPENSATED_FAILED
                return SagaResult(
                    state=self.state,
                    steps=results,
                    error=result.error,
                    failed_step=step.name,
                )

        self.state = SagaState.SUCCEEDED
        return SagaResult(state=self.state, steps=results)

    def _compensate(self, reached: list[SagaStep[ContextT]], context: ContextT) -> None:
        for step in reversed(reached):
            if step.compensation is None:
                continue
            logger.info(f"[{self.name}] compensating {step.name}")
            try:
                step.compensation(context)
            except Exception:
                logger.exception(f"[{self.name}] compensation for {step.name} failed")

    def _fail(self, context: ContextT, error: Exception) -> None:
        if self.on_failure is None:
            return
        try:
            self.on_failure(context, error)
        except Exception:
            logger.exception(f"[{self.name}] failure handler raised")
