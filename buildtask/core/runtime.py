"""In-memory execution runtime and manual clock.

Both satisfy the protocols in :mod:`buildtask.core.reconciler` and are
meant for tests, demos and the ``simulate`` CLI command.  Units live in a
dict keyed by (namespace, job name); helper methods move them through
their states the way a real job runtime would report them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from buildtask.core.reconciler import ObservationError
from buildtask.models.actions import ExecutionParameters
from buildtask.models.observation import ExecutionObservation, ExecutionState
from buildtask.models.resource import TaskRef

logger = logging.getLogger(__name__)


class InMemoryRuntime:
    """Dict-backed execution runtime.

    Set ``reachable = False`` to make ``observe`` raise ``ObservationError``.
    """

    def __init__(self) -> None:
        self.units: dict[tuple[str, str], ExecutionObservation] = {}
        self.parameters: dict[tuple[str, str], ExecutionParameters] = {}
        self.created: list[str] = []
        self.deleted: list[str] = []
        self.reachable = True

    # ------------------------------------------------------------------
    # ExecutionRuntime protocol
    # ------------------------------------------------------------------

    def observe(self, ref: TaskRef, job_name: str) -> ExecutionObservation:
        if not self.reachable:
            raise ObservationError("in-memory runtime marked unreachable")
        return self.units.get((ref.namespace, job_name), ExecutionObservation.not_found())

    def create(self, parameters: ExecutionParameters) -> None:
        key = (parameters.namespace, parameters.job_name)
        if key in self.units:
            logger.debug("Execution unit %s already exists", parameters.job_name)
            return
        self.units[key] = ExecutionObservation(
            state=ExecutionState.NOT_STARTED, job_name=parameters.job_name
        )
        self.parameters[key] = parameters
        self.created.append(parameters.job_name)

    def delete(self, job_name: str, namespace: str) -> None:
        if self.units.pop((namespace, job_name), None) is not None:
            self.deleted.append(job_name)
        self.parameters.pop((namespace, job_name), None)

    # ------------------------------------------------------------------
    # Driving units through their states
    # ------------------------------------------------------------------

    def _update(self, job_name: str, namespace: str, **changes) -> ExecutionObservation:
        key = (namespace, job_name)
        if key not in self.units:
            raise KeyError(f"no execution unit {namespace}/{job_name}")
        self.units[key] = self.units[key].model_copy(update=changes)
        return self.units[key]

    def start(self, job_name: str, namespace: str = "default", pod_name: str | None = None) -> ExecutionObservation:
        return self._update(
            job_name,
            namespace,
            state=ExecutionState.RUNNING,
            pod_name=pod_name or f"{job_name}-pod",
        )

    def succeed(self, job_name: str, digest: str, namespace: str = "default") -> ExecutionObservation:
        return self._update(
            job_name, namespace, state=ExecutionState.SUCCEEDED, image_digest=digest
        )

    def fail(
        self,
        job_name: str,
        namespace: str = "default",
        reason: str = "BackoffLimitExceeded",
        message: str | None = None,
    ) -> ExecutionObservation:
        return self._update(
            job_name, namespace, state=ExecutionState.FAILED, reason=reason, message=message
        )

    def remove(self, job_name: str, namespace: str = "default") -> None:
        """Simulate an external deletion the state machine did not ask for."""
        self.units.pop((namespace, job_name), None)
        self.parameters.pop((namespace, job_name), None)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now
