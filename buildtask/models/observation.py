"""Observation of the delegated execution unit, as reported by the runtime."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ExecutionState(str, Enum):
    """State of the execution unit behind ``status.jobName``.

    ``NOT_FOUND`` means no such unit exists, either because it was never
    created or because something deleted it.  ``NOT_STARTED`` means it
    exists but has not begun running.
    """

    NOT_FOUND = "NotFound"
    NOT_STARTED = "NotStarted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def exists(self) -> bool:
        return self is not ExecutionState.NOT_FOUND

    @property
    def finished(self) -> bool:
        return self in (ExecutionState.SUCCEEDED, ExecutionState.FAILED)


class ExecutionObservation(BaseModel):
    """One consistent snapshot of the execution unit."""

    model_config = ConfigDict(frozen=True)

    state: ExecutionState = ExecutionState.NOT_FOUND
    job_name: str | None = None
    pod_name: str | None = None
    image_digest: str | None = None  # from the build tool's digest file
    reason: str | None = None
    message: str | None = None

    @classmethod
    def not_found(cls) -> ExecutionObservation:
        return cls(state=ExecutionState.NOT_FOUND)
