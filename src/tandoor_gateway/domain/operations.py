"""Step logs for multi-step mutations."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import NoReturn

from tandoor_gateway.domain.errors import (
    GatewayError,
    NotFoundError,
    PartialFailure,
    UpstreamError,
    ValidationError,
)

# Failures confined to one sub-step; the rest of a batch proceeds.
RECOVERABLE_ERRORS = (NotFoundError, UpstreamError, ValidationError)


class StepStatus(StrEnum):
    """Outcome of a single backend sub-step."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class OperationStatus(StrEnum):
    """Overall outcome of a logged operation."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """One sub-step of a multi-step mutation."""

    action: str
    target: str
    status: StepStatus
    detail: str | None = None
    error: GatewayError | None = None

    def describe(self) -> str:
        """Return a short human-readable label for the step."""
        return f"{self.action} {self.target}"

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "action": self.action,
            "target": self.target,
            "status": str(self.status),
        }
        if self.detail:
            payload["detail"] = self.detail
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload


@dataclass
class OperationLog:
    """Ordered record of the sub-steps an operation attempted."""

    steps: list[StepResult] = field(default_factory=list)

    def completed_step(
        self, action: str, target: str, detail: str | None = None
    ) -> None:
        self.steps.append(StepResult(action, target, StepStatus.COMPLETED, detail))

    def failed_step(self, action: str, target: str, error: GatewayError) -> None:
        self.steps.append(
            StepResult(action, target, StepStatus.FAILED, error.message, error)
        )

    def skipped_step(self, action: str, target: str, detail: str) -> None:
        self.steps.append(StepResult(action, target, StepStatus.SKIPPED, detail))

    @property
    def completed(self) -> list[StepResult]:
        return [step for step in self.steps if step.status is StepStatus.COMPLETED]

    @property
    def failed(self) -> list[StepResult]:
        return [step for step in self.steps if step.status is StepStatus.FAILED]

    @property
    def status(self) -> OperationStatus:
        """Summarise the log: any failure after a completed step is partial."""
        if not self.failed:
            return OperationStatus.SUCCESS
        if self.completed:
            return OperationStatus.PARTIAL_FAILURE
        return OperationStatus.FAILED

    def first_error(self) -> GatewayError | None:
        for step in self.failed:
            if step.error is not None:
                return step.error
        return None

    def to_list(self) -> list[dict[str, object]]:
        return [step.to_dict() for step in self.steps]


def halt_operation(log: OperationLog, exc: GatewayError, result: object) -> NoReturn:
    """Stop a batch on a fatal error without losing the applied steps.

    Re-raises ``exc`` unchanged when nothing was applied yet, otherwise raises
    ``PartialFailure`` carrying the log.
    """
    if not log.completed:
        raise exc
    log.failed_step("abort", "remaining steps", exc)
    raise PartialFailure(exc.message, log=log, result=result) from exc
