"""Tests for the Reconciler driver and the in-memory runtime."""

from __future__ import annotations

from buildtask.core.reconciler import (
    Clock,
    ExecutionRuntime,
    ExecutionRuntimeError,
    Reconciler,
    SystemClock,
)
from buildtask.core.render import render_parameters
from buildtask.core.runtime import InMemoryRuntime, ManualClock
from buildtask.models.actions import ActionKind, ExecutionParameters
from buildtask.models.observation import ExecutionState
from buildtask.models.status import BuildTaskPhase, ConditionStatus, ConditionType


class _RejectingRuntime(InMemoryRuntime):
    def create(self, parameters: ExecutionParameters) -> None:
        raise ExecutionRuntimeError("quota exceeded")


class TestProtocols:
    def test_in_memory_runtime_satisfies_protocol(self):
        assert isinstance(InMemoryRuntime(), ExecutionRuntime)

    def test_clocks_satisfy_protocol(self):
        assert isinstance(ManualClock(), Clock)
        assert isinstance(SystemClock(), Clock)
        assert SystemClock().now().tzinfo is not None


class TestReconcile:
    def test_first_reconcile_creates_unit(self, reconciler, runtime, make_task):
        result = reconciler.reconcile(make_task())
        assert result.valid
        assert result.action.kind is ActionKind.CREATE
        assert result.reason == "FirstRun"
        assert runtime.created == [result.status.job_name]
        assert runtime.parameters[("builds", result.status.job_name)].rootless is True

    def test_invalid_spec_reports_and_stops(self, reconciler, runtime, make_task):
        result = reconciler.reconcile(make_task(image=""))
        assert not result.valid
        assert result.reason == "InvalidSpec"
        assert result.action.kind is ActionKind.NONE
        assert runtime.created == []
        condition = result.status.get_condition(ConditionType.SPEC_VALID)
        assert condition.status is ConditionStatus.FALSE

    def test_repeated_reconcile_creates_once(self, reconciler, runtime, make_task):
        task = make_task()
        for _ in range(3):
            task = reconciler.reconcile_task(task)
        assert len(runtime.created) == 1
        assert task.status.phase is BuildTaskPhase.PENDING

    def test_observes_unit_progress(self, reconciler, runtime, make_task, clock):
        task = reconciler.reconcile_task(make_task())
        runtime.start(task.status.job_name, "builds")
        task = reconciler.reconcile_task(task)
        assert task.status.phase is BuildTaskPhase.RUNNING
        assert task.status.pod_name == f"{task.status.job_name}-pod"

        clock.advance(90)
        runtime.succeed(task.status.job_name, "sha256:feed", "builds")
        task = reconciler.reconcile_task(task)
        assert task.status.phase is BuildTaskPhase.SUCCEEDED
        assert task.status.image_digest == "sha256:feed"
        assert task.status.end_time == clock.now()

    def test_unreachable_runtime_leaves_status_unchanged(self, reconciler, runtime, make_task):
        task = reconciler.reconcile_task(make_task())
        runtime.reachable = False
        result = reconciler.reconcile(task)
        assert result.reason == "ObservationUnavailable"
        assert result.status == task.status
        assert "unreachable" in result.error

    def test_failed_action_leaves_status_unchanged(self, clock, test_settings, make_task):
        reconciler = Reconciler(_RejectingRuntime(), clock=clock, settings=test_settings)
        task = make_task()
        result = reconciler.reconcile(task)
        assert result.reason == "ActionFailed"
        assert result.error == "quota exceeded"
        assert result.status == task.status


class TestInMemoryRuntime:
    def test_create_is_idempotent(self, runtime, make_validated, ref, test_settings):
        params = render_parameters(make_validated(), ref, test_settings)
        runtime.create(params)
        runtime.create(params)
        assert runtime.created == [params.job_name]
        assert runtime.observe(ref, params.job_name).state is ExecutionState.NOT_STARTED

    def test_delete_and_remove(self, runtime, make_validated, ref, test_settings):
        params = render_parameters(make_validated(), ref, test_settings)
        runtime.create(params)
        runtime.delete(params.job_name, params.namespace)
        assert runtime.deleted == [params.job_name]
        assert runtime.observe(ref, params.job_name).state is ExecutionState.NOT_FOUND

    def test_manual_clock_advances(self, clock):
        start = clock.now()
        assert (clock.advance(30) - start).total_seconds() == 30
