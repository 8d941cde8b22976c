"""Single-step reconcile driver.

Shows, in code, the contract an operator must honor around ``evaluate``:

1. validate the spec and stop (reporting) when it is invalid;
2. observe the execution unit named in the status;
3. evaluate;
4. perform the one action requested.

Watching objects, persisting status and deciding when to call again belong
to the hosting runtime.  Runtime failures never produce a partial
transition: the previous status is returned unchanged and the next call
retries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from buildtask.config import BuildTaskSettings, settings as default_settings
from buildtask.core.lifecycle import evaluate, report_invalid_spec
from buildtask.core.validation import Violation, require_valid, validate
from buildtask.models.actions import (
    CreateExecutionUnit,
    DeleteExecutionUnit,
    DesiredAction,
    ExecutionParameters,
    NoAction,
)
from buildtask.models.observation import ExecutionObservation
from buildtask.models.resource import BuildTask, TaskRef
from buildtask.models.status import BuildTaskStatus

logger = logging.getLogger(__name__)


class ExecutionRuntimeError(RuntimeError):
    """The execution runtime rejected or failed a request."""


class ObservationError(ExecutionRuntimeError):
    """The execution runtime could not be observed."""


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ExecutionRuntime(Protocol):
    """Protocol for the job-running collaborator.

    ``create`` must be idempotent on ``parameters.job_name``: creating a
    unit whose name already exists is not an error and starts nothing new.
    """

    def observe(self, ref: TaskRef, job_name: str) -> ExecutionObservation:
        """Return the state of *job_name*; raise ``ObservationError`` if unreachable."""
        ...

    def create(self, parameters: ExecutionParameters) -> None:
        ...

    def delete(self, job_name: str, namespace: str) -> None:
        ...


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Reconciler
# ---------------------------------------------------------------------------


class ReconcileResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: BuildTaskStatus
    action: DesiredAction = NoAction()
    violations: list[Violation] = []
    reason: str = ""
    error: str | None = None

    @property
    def valid(self) -> bool:
        return not self.violations


class Reconciler:
    """Drives one evaluation cycle for one task against an execution runtime.

    Parameters
    ----------
    runtime:
        The job-running collaborator.
    clock:
        Source of ``now``.  Defaults to ``SystemClock``.
    settings:
        Rendering settings.  Defaults to the module-level singleton.
    """

    def __init__(
        self,
        runtime: ExecutionRuntime,
        clock: Clock | None = None,
        settings: BuildTaskSettings | None = None,
    ) -> None:
        self._runtime = runtime
        self._clock = clock or SystemClock()
        self._settings = settings or default_settings

    def reconcile(self, task: BuildTask) -> ReconcileResult:
        ref = task.ref
        now = self._clock.now()

        violations = validate(task.spec)
        if violations:
            logger.warning(
                "BuildTask %s/%s rejected: %d violation(s): %s",
                ref.namespace, ref.name, len(violations),
                "; ".join(str(v) for v in violations),
            )
            return ReconcileResult(
                status=report_invalid_spec(task.status, violations, now, ref.generation),
                violations=violations,
                reason="InvalidSpec",
            )

        try:
            observation = self._observe(ref, task.status.job_name)
        except ObservationError as exc:
            logger.warning(
                "BuildTask %s/%s: runtime unavailable, status left unchanged: %s",
                ref.namespace, ref.name, exc,
            )
            return ReconcileResult(
                status=task.status, reason="ObservationUnavailable", error=str(exc)
            )

        evaluation = evaluate(
            require_valid(task.spec),
            task.status,
            observation,
            now,
            ref,
            settings=self._settings,
        )

        try:
            self._perform(evaluation.action)
        except ExecutionRuntimeError as exc:
            logger.warning(
                "BuildTask %s/%s: %s failed, status left unchanged: %s",
                ref.namespace, ref.name, evaluation.action.kind.value, exc,
            )
            return ReconcileResult(
                status=task.status,
                action=evaluation.action,
                reason="ActionFailed",
                error=str(exc),
            )

        return ReconcileResult(
            status=evaluation.status,
            action=evaluation.action,
            reason=evaluation.reason.value,
        )

    def reconcile_task(self, task: BuildTask) -> BuildTask:
        """Reconcile and return *task* carrying the resulting status."""
        return task.with_status(self.reconcile(task).status)

    def _observe(self, ref: TaskRef, job_name: str) -> ExecutionObservation:
        if not job_name:
            return ExecutionObservation.not_found()
        return self._runtime.observe(ref, job_name)

    def _perform(self, action: DesiredAction) -> None:
        if isinstance(action, CreateExecutionUnit):
            self._runtime.create(action.parameters)
        elif isinstance(action, DeleteExecutionUnit):
            self._runtime.delete(action.job_name, action.namespace)
