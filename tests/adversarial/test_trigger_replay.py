"""Adversarial tests — trigger replay and duplicate execution.

These tests verify that:
1. Re-delivering the same nonce never starts a second execution unit
2. A terminal task cannot be re-run without a new nonce
3. Reverting to an earlier nonce is a new trigger, with its own unit name
4. Stale observations cannot move a terminal task
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from buildtask.core.lifecycle import evaluate
from buildtask.models.actions import CreateExecutionUnit, NoAction
from buildtask.models.observation import ExecutionObservation, ExecutionState
from buildtask.models.status import BuildTaskPhase, BuildTaskStatus


def _run_to(validated, ref, now, settings, final: ExecutionState) -> BuildTaskStatus:
    status = evaluate(
        validated, BuildTaskStatus(), ExecutionObservation.not_found(), now, ref, settings=settings
    ).status
    return evaluate(
        validated, status, ExecutionObservation(state=final, image_digest="sha256:1"),
        now + timedelta(seconds=10), ref, settings=settings,
    ).status


class TestReplay:
    def test_many_evaluations_single_create(self, make_validated, ref, now, test_settings):
        validated = make_validated()
        status = BuildTaskStatus()
        observation = ExecutionObservation.not_found()
        creates = 0
        for i in range(10):
            result = evaluate(
                validated, status, observation, now + timedelta(seconds=i), ref, settings=test_settings
            )
            if isinstance(result.action, CreateExecutionUnit):
                creates += 1
                observation = ExecutionObservation(
                    state=ExecutionState.NOT_STARTED, job_name=result.status.job_name
                )
            status = result.status
        assert creates == 1

    def test_unobserved_create_reuses_name_and_status(self, make_validated, ref, now, test_settings):
        validated = make_validated()
        first = evaluate(
            validated, BuildTaskStatus(), ExecutionObservation.not_found(), now, ref,
            settings=test_settings,
        )
        again = evaluate(
            validated, first.status, ExecutionObservation.not_found(), now, ref,
            settings=test_settings,
        )
        assert again.status == first.status
        # The runtime treats the second create as a no-op on the same name.
        assert again.action.parameters.job_name == first.action.parameters.job_name

    @pytest.mark.parametrize("final", [ExecutionState.SUCCEEDED, ExecutionState.FAILED])
    def test_terminal_not_rerun_with_same_nonce(self, make_validated, ref, now, test_settings, final):
        validated = make_validated()
        status = _run_to(validated, ref, now, test_settings, final)
        for state in ExecutionState:
            result = evaluate(
                validated, status, ExecutionObservation(state=state), now + timedelta(days=1), ref,
                settings=test_settings,
            )
            assert isinstance(result.action, NoAction), state
            assert result.status.phase is status.phase

    def test_stale_running_observation_ignored_when_terminal(
        self, make_validated, ref, now, test_settings
    ):
        validated = make_validated()
        status = _run_to(validated, ref, now, test_settings, ExecutionState.SUCCEEDED)
        result = evaluate(
            validated, status, ExecutionObservation(state=ExecutionState.RUNNING),
            now + timedelta(minutes=1), ref, settings=test_settings,
        )
        assert result.status == status

    def test_reverting_nonce_is_a_new_trigger(self, make_validated, ref, now, test_settings):
        first = _run_to(make_validated(nonce="a"), ref, now, test_settings, ExecutionState.SUCCEEDED)
        second = _run_to(make_validated(nonce="b"), ref, now, test_settings, ExecutionState.SUCCEEDED)
        result = evaluate(
            make_validated(nonce="a"), second, ExecutionObservation(state=ExecutionState.SUCCEEDED),
            now, ref, settings=test_settings,
        )
        assert isinstance(result.action, CreateExecutionUnit)
        assert result.status.phase is BuildTaskPhase.PENDING
        assert result.status.job_name == first.job_name
