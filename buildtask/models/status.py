"""BuildTask observed-state models (the ``status`` half of the wire contract).

The status is owned by the state machine.  Callers never write it; they
influence it only through the spec, chiefly the trigger nonce.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, field_validator

from buildtask.models.spec import WireModel


class BuildTaskPhase(str, Enum):
    """Coarse-grained lifecycle phase.  Values are part of the wire contract."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


TERMINAL_PHASES: frozenset[BuildTaskPhase] = frozenset(
    {BuildTaskPhase.SUCCEEDED, BuildTaskPhase.FAILED}
)

# Allowed phase moves.  A terminal phase only leaves through a new trigger,
# which always re-enters PENDING.
VALID_TRANSITIONS: dict[BuildTaskPhase, set[BuildTaskPhase]] = {
    BuildTaskPhase.PENDING: {
        BuildTaskPhase.RUNNING,
        BuildTaskPhase.SUCCEEDED,
        BuildTaskPhase.FAILED,
    },
    BuildTaskPhase.RUNNING: {BuildTaskPhase.SUCCEEDED, BuildTaskPhase.FAILED},
    BuildTaskPhase.SUCCEEDED: set(),
    BuildTaskPhase.FAILED: set(),
}


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    """Condition types maintained by the state machine."""

    PROGRESSING = "Progressing"
    SUCCEEDED = "Succeeded"
    DEGRADED = "Degraded"
    SPEC_VALID = "SpecValid"


class Condition(WireModel):
    """A single status assertion; ``type`` is unique within a status."""

    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None
    observed_generation: int | None = None

    @field_validator("last_transition_time")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class BuildTaskStatus(WireModel):
    """Observed state of a BuildTask."""

    conditions: list[Condition] = []
    observed_generation: int | None = None
    phase: BuildTaskPhase | None = None
    job_name: str = ""
    pod_name: str = ""  # best effort, may rotate across retries
    start_time: datetime | None = None
    end_time: datetime | None = None
    image_digest: str = ""  # set only on success
    last_trigger_nonce: str = ""
    log_url: str = Field(default="", alias="logURL")

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def get_condition(self, condition_type: str | ConditionType) -> Condition | None:
        """Return the condition of the given type, or None."""
        wanted = getattr(condition_type, "value", condition_type)
        for condition in self.conditions:
            if condition.type == wanted:
                return condition
        return None
