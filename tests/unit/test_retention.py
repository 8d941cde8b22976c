"""Tests for retention eligibility (TTL-after-finish)."""

from __future__ import annotations

from datetime import timedelta

import pytest

from buildtask.core.retention import retention_decision, ttl_for_phase
from buildtask.models.status import BuildTaskPhase, BuildTaskStatus

RETENTION = {
    "successfulJobsTTLSecondsAfterFinished": 3600,
    "failedJobsTTLSecondsAfterFinished": 86400,
}


class TestTtlForPhase:
    def test_per_outcome(self, make_spec):
        spec = make_spec(retention=RETENTION)
        assert ttl_for_phase(spec, BuildTaskPhase.SUCCEEDED) == 3600
        assert ttl_for_phase(spec, BuildTaskPhase.FAILED) == 86400
        assert ttl_for_phase(spec, BuildTaskPhase.RUNNING) is None

    def test_no_retention(self, make_spec):
        assert ttl_for_phase(make_spec(), BuildTaskPhase.SUCCEEDED) is None


class TestRetentionDecision:
    def test_succeeded_past_ttl_is_eligible(self, make_spec, now):
        status = BuildTaskStatus(
            phase=BuildTaskPhase.SUCCEEDED, end_time=now - timedelta(seconds=7200)
        )
        decision = retention_decision(make_spec(retention=RETENTION), status, now)
        assert decision.eligible
        assert decision.ttl_seconds == 3600
        assert decision.expires_at == now - timedelta(seconds=3600)

    def test_exactly_at_expiry_is_eligible(self, make_spec, now):
        status = BuildTaskStatus(
            phase=BuildTaskPhase.SUCCEEDED, end_time=now - timedelta(seconds=3600)
        )
        assert retention_decision(make_spec(retention=RETENTION), status, now).eligible

    def test_failed_uses_failed_ttl(self, make_spec, now):
        status = BuildTaskStatus(phase=BuildTaskPhase.FAILED, end_time=now - timedelta(seconds=7200))
        decision = retention_decision(make_spec(retention=RETENTION), status, now)
        assert not decision.eligible
        assert decision.ttl_seconds == 86400

    def test_zero_ttl_is_immediately_eligible(self, make_spec, now):
        spec = make_spec(retention={"successfulJobsTTLSecondsAfterFinished": 0})
        status = BuildTaskStatus(phase=BuildTaskPhase.SUCCEEDED, end_time=now)
        assert retention_decision(spec, status, now).eligible

    @pytest.mark.parametrize("phase", [None, BuildTaskPhase.PENDING, BuildTaskPhase.RUNNING])
    def test_non_terminal_never_eligible(self, make_spec, now, phase):
        status = BuildTaskStatus(phase=phase, end_time=now - timedelta(days=30))
        assert not retention_decision(make_spec(retention=RETENTION), status, now).eligible

    def test_missing_end_time_never_eligible(self, make_spec, now):
        status = BuildTaskStatus(phase=BuildTaskPhase.SUCCEEDED)
        decision = retention_decision(make_spec(retention=RETENTION), status, now)
        assert not decision.eligible
        assert decision.expires_at is None

    def test_unset_ttl_never_eligible(self, make_spec, now):
        status = BuildTaskStatus(phase=BuildTaskPhase.SUCCEEDED, end_time=now - timedelta(days=30))
        assert not retention_decision(make_spec(), status, now).eligible
