"""BuildTask lifecycle state machine.

``evaluate`` is a pure function of (validated spec, previous status,
observation of the execution unit, now, task identity).  It returns the next
status and at most one action for the operator.  It performs no I/O, reads
no clock and never mutates its inputs, so the hosting runtime may call it
as often as it likes.

Phases::

    Pending -> Running -> Succeeded
                      \\-> Failed

A terminal phase is only left through a new trigger, which re-enters
Pending.  A trigger is a change of ``spec.trigger.manual.nonce`` relative
to ``status.lastTriggerNonce``, a task that never had an execution unit, or
a running task whose unit has disappeared.  A pending task whose requested
unit is not observed yet keeps its status and repeats the same create.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict

from buildtask.config import BuildTaskSettings, settings as default_settings
from buildtask.core.conditions import find_condition, set_condition
from buildtask.core.render import execution_unit_name, render_parameters
from buildtask.core.retention import retention_decision
from buildtask.core.validation import Violation
from buildtask.models.actions import (
    CreateExecutionUnit,
    DeleteExecutionUnit,
    DesiredAction,
    NoAction,
)
from buildtask.models.observation import ExecutionObservation, ExecutionState
from buildtask.models.resource import TaskRef
from buildtask.models.sources import ValidatedSpec
from buildtask.models.status import (
    VALID_TRANSITIONS,
    BuildTaskPhase,
    BuildTaskStatus,
    Condition,
    ConditionStatus,
    ConditionType,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested phase transition is not valid."""


class EvaluationReason(str, Enum):
    """Why an evaluation produced its result.  Used as condition reason."""

    FIRST_RUN = "FirstRun"
    NEW_TRIGGER = "NewTrigger"
    AWAITING_CREATION = "AwaitingCreation"
    EXECUTION_UNIT_LOST = "ExecutionUnitLost"
    SUPERSEDED = "Superseded"
    WAITING = "Waiting"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    DEADLINE_EXCEEDED = "DeadlineExceeded"
    RETENTION_EXPIRED = "RetentionExpired"
    UP_TO_DATE = "UpToDate"


class Evaluation(BaseModel):
    """Outcome of one evaluation cycle."""

    model_config = ConfigDict(frozen=True)

    status: BuildTaskStatus
    action: DesiredAction = NoAction()
    reason: EvaluationReason


def check_transition(current: BuildTaskPhase, target: BuildTaskPhase) -> None:
    if target == current:
        return
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(
            f"Cannot transition from {current.value} to {target.value}. "
            f"Allowed: {sorted(s.value for s in VALID_TRANSITIONS.get(current, set()))}"
        )


# ---------------------------------------------------------------------------
# Conditions per phase
# ---------------------------------------------------------------------------


def _phase_conditions(
    conditions: list[Condition],
    phase: BuildTaskPhase,
    *,
    reason: EvaluationReason,
    message: str,
    now: datetime,
    generation: int | None,
) -> list[Condition]:
    if phase is BuildTaskPhase.SUCCEEDED:
        values = (ConditionStatus.FALSE, ConditionStatus.TRUE, ConditionStatus.FALSE)
    elif phase is BuildTaskPhase.FAILED:
        values = (ConditionStatus.FALSE, ConditionStatus.FALSE, ConditionStatus.TRUE)
    else:
        values = (ConditionStatus.TRUE, ConditionStatus.UNKNOWN, ConditionStatus.FALSE)

    progressing, succeeded, degraded = values
    for condition_type, value in (
        (ConditionType.PROGRESSING, progressing),
        (ConditionType.SUCCEEDED, succeeded),
        (ConditionType.DEGRADED, degraded),
    ):
        conditions = set_condition(
            conditions,
            condition_type,
            value,
            reason=reason.value,
            message=message,
            now=now,
            observed_generation=generation,
        )
    return conditions


def _restore_spec_valid(
    conditions: list[Condition], now: datetime, generation: int | None
) -> list[Condition]:
    # evaluate() only ever sees valid specs; clear an earlier rejection.
    existing = find_condition(conditions, ConditionType.SPEC_VALID)
    if existing is None or existing.status == ConditionStatus.TRUE:
        return conditions
    return set_condition(
        conditions,
        ConditionType.SPEC_VALID,
        ConditionStatus.TRUE,
        reason="Valid",
        now=now,
        observed_generation=generation,
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _start_execution(
    spec: ValidatedSpec,
    status: BuildTaskStatus,
    ref: TaskRef,
    now: datetime,
    generation: int | None,
    reason: EvaluationReason,
    settings: BuildTaskSettings,
) -> Evaluation:
    parameters = render_parameters(spec, ref, settings)
    job_name = parameters.job_name

    # A unit lost before it was ever confirmed keeps its original start.
    start_time = now
    if (
        reason is EvaluationReason.EXECUTION_UNIT_LOST
        and status.phase is BuildTaskPhase.PENDING
        and status.start_time is not None
    ):
        start_time = status.start_time

    conditions = _restore_spec_valid(status.conditions, now, generation)
    conditions = _phase_conditions(
        conditions,
        BuildTaskPhase.PENDING,
        reason=reason,
        message=f"execution unit {job_name} requested",
        now=now,
        generation=generation,
    )
    next_status = status.model_copy(
        update={
            "phase": BuildTaskPhase.PENDING,
            "job_name": job_name,
            "pod_name": "",
            "image_digest": "",
            "start_time": start_time,
            "end_time": None,
            "last_trigger_nonce": spec.nonce,
            "log_url": settings.render_log_url(
                namespace=ref.namespace, name=ref.name, job_name=job_name
            ),
            "conditions": conditions,
            "observed_generation": generation,
        }
    )
    logger.info(
        "BuildTask %s/%s: %s, requesting execution unit %s (nonce=%r)",
        ref.namespace, ref.name, reason.value, job_name, spec.nonce,
    )
    return Evaluation(
        status=next_status,
        action=CreateExecutionUnit(parameters=parameters),
        reason=reason,
    )


def _awaiting_creation(
    spec: ValidatedSpec,
    status: BuildTaskStatus,
    ref: TaskRef,
    settings: BuildTaskSettings,
) -> bool:
    """Pending on the unit this trigger asked for, which has not shown up yet."""
    return status.phase is BuildTaskPhase.PENDING and status.job_name == execution_unit_name(
        ref, spec.nonce, settings.job_name_prefix
    )


def _request_pending_unit(
    spec: ValidatedSpec,
    status: BuildTaskStatus,
    observation: ExecutionObservation,
    ref: TaskRef,
    now: datetime,
    generation: int | None,
    settings: BuildTaskSettings,
) -> Evaluation:
    if _deadline_exceeded(spec, status, now):
        return _finish(
            status, BuildTaskPhase.FAILED, observation, ref, now, generation,
            EvaluationReason.DEADLINE_EXCEEDED,
            f"build exceeded timeoutSeconds={spec.spec.timeout_seconds}",
        )

    # Status stays as the trigger left it.  The create is repeated under the
    # same name, so a runtime that already has the unit ignores it.
    logger.debug(
        "BuildTask %s/%s: execution unit %s not observed yet, re-requesting",
        ref.namespace, ref.name, status.job_name,
    )
    return Evaluation(
        status=status.model_copy(
            update={
                "observed_generation": generation,
                "conditions": _restore_spec_valid(status.conditions, now, generation),
            }
        ),
        action=CreateExecutionUnit(parameters=render_parameters(spec, ref, settings)),
        reason=EvaluationReason.AWAITING_CREATION,
    )


def _finish(
    status: BuildTaskStatus,
    phase: BuildTaskPhase,
    observation: ExecutionObservation,
    ref: TaskRef,
    now: datetime,
    generation: int | None,
    reason: EvaluationReason,
    message: str,
) -> Evaluation:
    check_transition(status.phase or BuildTaskPhase.PENDING, phase)
    succeeded = phase is BuildTaskPhase.SUCCEEDED
    next_status = status.model_copy(
        update={
            "phase": phase,
            "end_time": now,
            "image_digest": (observation.image_digest or "") if succeeded else "",
            "pod_name": observation.pod_name or status.pod_name,
            "conditions": _phase_conditions(
                _restore_spec_valid(status.conditions, now, generation),
                phase,
                reason=reason,
                message=message,
                now=now,
                generation=generation,
            ),
            "observed_generation": generation,
        }
    )
    log = logger.info if succeeded else logger.warning
    log(
        "BuildTask %s/%s: execution unit %s %s (%s)",
        ref.namespace, ref.name, status.job_name, phase.value.lower(), message,
    )
    return Evaluation(status=next_status, reason=reason)


def _deadline_exceeded(spec: ValidatedSpec, status: BuildTaskStatus, now: datetime) -> bool:
    timeout = spec.spec.timeout_seconds
    if timeout is None or status.start_time is None:
        return False
    return now - status.start_time >= timedelta(seconds=timeout)


def _advance_active(
    spec: ValidatedSpec,
    status: BuildTaskStatus,
    observation: ExecutionObservation,
    ref: TaskRef,
    now: datetime,
    generation: int | None,
) -> Evaluation:
    state = observation.state

    if state is ExecutionState.SUCCEEDED:
        return _finish(
            status, BuildTaskPhase.SUCCEEDED, observation, ref, now, generation,
            EvaluationReason.SUCCEEDED,
            observation.message or "image built and pushed",
        )
    if state is ExecutionState.FAILED:
        return _finish(
            status, BuildTaskPhase.FAILED, observation, ref, now, generation,
            EvaluationReason.FAILED,
            observation.message or observation.reason or "execution unit failed",
        )
    if _deadline_exceeded(spec, status, now):
        return _finish(
            status, BuildTaskPhase.FAILED, observation, ref, now, generation,
            EvaluationReason.DEADLINE_EXCEEDED,
            f"build exceeded timeoutSeconds={spec.spec.timeout_seconds}",
        )

    current = status.phase or BuildTaskPhase.PENDING
    # NOT_STARTED while Running means the runtime is between retries.
    if state is ExecutionState.RUNNING or current is BuildTaskPhase.RUNNING:
        check_transition(current, BuildTaskPhase.RUNNING)
        phase = BuildTaskPhase.RUNNING
        reason = EvaluationReason.RUNNING
        message = f"execution unit {status.job_name} is running"
        if current is not BuildTaskPhase.RUNNING:
            logger.info(
                "BuildTask %s/%s: execution unit %s started",
                ref.namespace, ref.name, status.job_name,
            )
    else:
        phase = BuildTaskPhase.PENDING
        reason = EvaluationReason.WAITING
        message = f"waiting for execution unit {status.job_name} to start"

    next_status = status.model_copy(
        update={
            "phase": phase,
            "job_name": observation.job_name or status.job_name,
            "pod_name": observation.pod_name or status.pod_name,
            "conditions": _phase_conditions(
                _restore_spec_valid(status.conditions, now, generation),
                phase,
                reason=reason,
                message=message,
                now=now,
                generation=generation,
            ),
            "observed_generation": generation,
        }
    )
    return Evaluation(status=next_status, reason=reason)


def evaluate(
    spec: ValidatedSpec,
    status: BuildTaskStatus,
    observation: ExecutionObservation,
    now: datetime,
    ref: TaskRef,
    *,
    settings: BuildTaskSettings | None = None,
) -> Evaluation:
    """Compute the next status and the single action for the operator.

    Parameters
    ----------
    spec:
        The validated spec (see ``require_valid``).
    status:
        The previous status.  ``BuildTaskStatus()`` for a new task.
    observation:
        State of the unit named by ``status.jobName``; ``NotFound`` when
        there is none.
    now:
        Current wall-clock time, timezone-aware.
    ref:
        Identity handle of the task.  ``ref.generation`` is recorded as
        ``observedGeneration`` when set.

    Returns
    -------
    Evaluation
        Next status, desired action and the reason behind them.
        Re-evaluating with the returned status and the same inputs yields
        the same status.  A create repeated before the unit is observed
        names the same unit, so one nonce never yields two units.
    """
    settings = settings or default_settings
    generation = ref.generation if ref.generation is not None else status.observed_generation
    nonce_changed = spec.nonce != status.last_trigger_nonce
    unit_active = observation.state in (ExecutionState.NOT_STARTED, ExecutionState.RUNNING)

    # A new nonce cancels a unit still in flight; the new run starts once
    # the old unit is gone.
    if nonce_changed and status.job_name and unit_active:
        logger.info(
            "BuildTask %s/%s: nonce changed, deleting superseded execution unit %s",
            ref.namespace, ref.name, status.job_name,
        )
        return Evaluation(
            status=status.model_copy(update={"observed_generation": generation}),
            action=DeleteExecutionUnit(job_name=status.job_name, namespace=ref.namespace),
            reason=EvaluationReason.SUPERSEDED,
        )

    if not status.job_name:
        return _start_execution(
            spec, status, ref, now, generation, EvaluationReason.FIRST_RUN, settings
        )
    if nonce_changed:
        return _start_execution(
            spec, status, ref, now, generation, EvaluationReason.NEW_TRIGGER, settings
        )
    if observation.state is ExecutionState.NOT_FOUND and _awaiting_creation(
        spec, status, ref, settings
    ):
        return _request_pending_unit(spec, status, observation, ref, now, generation, settings)
    if observation.state is ExecutionState.NOT_FOUND and not status.is_terminal:
        return _start_execution(
            spec, status, ref, now, generation, EvaluationReason.EXECUTION_UNIT_LOST, settings
        )

    if status.is_terminal:
        next_status = status.model_copy(
            update={
                "observed_generation": generation,
                "conditions": _restore_spec_valid(status.conditions, now, generation),
            }
        )
        decision = retention_decision(spec.spec, status, now)
        if decision.eligible and observation.state.exists:
            logger.info(
                "BuildTask %s/%s: execution unit %s past retention (%ss), deleting",
                ref.namespace, ref.name, status.job_name, decision.ttl_seconds,
            )
            return Evaluation(
                status=next_status,
                action=DeleteExecutionUnit(job_name=status.job_name, namespace=ref.namespace),
                reason=EvaluationReason.RETENTION_EXPIRED,
            )
        return Evaluation(status=next_status, reason=EvaluationReason.UP_TO_DATE)

    return _advance_active(spec, status, observation, ref, now, generation)


def report_invalid_spec(
    status: BuildTaskStatus,
    violations: list[Violation],
    now: datetime,
    generation: int | None = None,
) -> BuildTaskStatus:
    """Record a rejected spec on the status without touching the phase.

    No action follows a rejection.  The caller must fix the spec and, to
    re-run a finished task, change the trigger nonce.
    """
    message = "; ".join(str(v) for v in violations)
    return status.model_copy(
        update={
            "conditions": set_condition(
                status.conditions,
                ConditionType.SPEC_VALID,
                ConditionStatus.FALSE,
                reason="InvalidSpec",
                message=message,
                now=now,
                observed_generation=generation,
            ),
            "observed_generation": (
                generation if generation is not None else status.observed_generation
            ),
        }
    )
