"""Retention policy — when a finished execution unit may be garbage-collected.

Only eligibility is computed here.  Deleting the unit is the operator's job,
requested through a ``DeleteExecutionUnit`` action.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from buildtask.models.spec import BuildTaskSpec
from buildtask.models.status import BuildTaskPhase, BuildTaskStatus


class RetentionDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible: bool = False
    ttl_seconds: int | None = None
    expires_at: datetime | None = None


def ttl_for_phase(spec: BuildTaskSpec, phase: BuildTaskPhase | None) -> int | None:
    """The TTL configured for the outcome *phase*, or None."""
    if spec.retention is None:
        return None
    if phase is BuildTaskPhase.SUCCEEDED:
        return spec.retention.successful_jobs_ttl_seconds_after_finished
    if phase is BuildTaskPhase.FAILED:
        return spec.retention.failed_jobs_ttl_seconds_after_finished
    return None


def retention_decision(
    spec: BuildTaskSpec, status: BuildTaskStatus, now: datetime
) -> RetentionDecision:
    """Decide whether the unit behind *status* is past its TTL-after-finish.

    Measured from ``status.endTime``.  Non-terminal phases, a missing end
    time or an unset TTL are never eligible.
    """
    ttl = ttl_for_phase(spec, status.phase)
    if not status.is_terminal or status.end_time is None or ttl is None:
        return RetentionDecision(ttl_seconds=ttl)

    expires_at = status.end_time + timedelta(seconds=ttl)
    return RetentionDecision(
        eligible=now >= expires_at,
        ttl_seconds=ttl,
        expires_at=expires_at,
    )
