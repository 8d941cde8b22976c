"""Status condition helpers.

Conditions are kept sorted by type with one entry per type.  As with
Kubernetes' ``meta.SetStatusCondition``, ``lastTransitionTime`` only moves
when a condition's ``status`` changes, so re-applying the same condition is
a no-op.
"""

from __future__ import annotations

from datetime import datetime

from buildtask.models.status import Condition, ConditionStatus, ConditionType


def set_condition(
    conditions: list[Condition],
    condition_type: ConditionType | str,
    status: ConditionStatus,
    *,
    reason: str,
    message: str = "",
    now: datetime,
    observed_generation: int | None = None,
) -> list[Condition]:
    """Return a new condition list with *condition_type* set."""
    type_name = getattr(condition_type, "value", condition_type)
    existing = find_condition(conditions, type_name)

    transition_time = now
    if existing is not None and existing.status == status:
        transition_time = existing.last_transition_time or now

    updated = Condition(
        type=type_name,
        status=status,
        reason=reason,
        message=message,
        last_transition_time=transition_time,
        observed_generation=observed_generation,
    )
    others = [c for c in conditions if c.type != type_name]
    return sorted([*others, updated], key=lambda c: c.type)


def find_condition(conditions: list[Condition], condition_type: ConditionType | str) -> Condition | None:
    type_name = getattr(condition_type, "value", condition_type)
    for condition in conditions:
        if condition.type == type_name:
            return condition
    return None
