"""Unit tests for the StatusRenderer.

Tests Rich panel output, phase color mapping, condition and retention
display, violation tables and action rendering.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from buildtask.core.retention import RetentionDecision
from buildtask.core.validation import Violation, ViolationRule
from buildtask.models.actions import DeleteExecutionUnit, NoAction
from buildtask.models.status import (
    BuildTaskPhase,
    BuildTaskStatus,
    Condition,
    ConditionStatus,
)
from buildtask.monitor.renderer import _PHASE_STYLES, StatusRenderer, phase_markup

END = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _console() -> Console:
    return Console(file=None, force_terminal=False, width=120)


def _render(console: Console, renderable) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def _succeeded_status() -> BuildTaskStatus:
    return BuildTaskStatus(
        phase=BuildTaskPhase.SUCCEEDED,
        job_name="app-0123456789",
        image_digest="sha256:deadbeef",
        last_trigger_nonce="abc",
        end_time=END,
        log_url="https://logs.example.com/app",
        conditions=[
            Condition(type="Succeeded", status=ConditionStatus.TRUE, reason="Succeeded"),
        ],
    )


# ---------------------------------------------------------------------------
# Test: Phase mappings
# ---------------------------------------------------------------------------


class TestPhaseMappings:
    def test_all_phases_have_styles(self):
        for phase in BuildTaskPhase:
            assert phase in _PHASE_STYLES, f"Missing style for {phase}"

    def test_phase_markup(self):
        assert "SUCCEEDED" in phase_markup(BuildTaskPhase.SUCCEEDED)
        assert "NONE" in phase_markup(None)


# ---------------------------------------------------------------------------
# Test: Render task
# ---------------------------------------------------------------------------


class TestRenderTask:
    def test_render_returns_panel(self, make_task):
        assert isinstance(StatusRenderer().render_task(make_task()), Panel)

    def test_render_includes_status_fields(self, make_task):
        console = _console()
        task = make_task().with_status(_succeeded_status())
        output = _render(console, StatusRenderer(console=console).render_task(task))
        assert "builds/app" in output
        assert "SUCCEEDED" in output
        assert "sha256:deadbeef" in output
        assert "https://logs.example.com/app" in output
        assert "Succeeded" in output

    def test_pending_trigger_is_shown(self, make_task):
        console = _console()
        task = make_task(nonce="new").with_status(_succeeded_status())
        output = _render(console, StatusRenderer(console=console).render_task(task))
        assert "pending trigger 'new'" in output

    def test_retention_shown(self, make_task):
        console = _console()
        task = make_task().with_status(_succeeded_status())
        retention = RetentionDecision(
            eligible=True, ttl_seconds=60, expires_at=END + timedelta(seconds=60)
        )
        output = _render(console, StatusRenderer(console=console).render_task(task, retention))
        assert "eligible for deletion" in output


# ---------------------------------------------------------------------------
# Test: Violations and actions
# ---------------------------------------------------------------------------


class TestViolationsAndActions:
    def test_violation_table(self):
        console = _console()
        table = StatusRenderer(console=console).render_violations(
            [Violation(field="buildah.rootless", message="no", rule=ViolationRule.PRIVILEGED_NOT_ALLOWED)]
        )
        assert isinstance(table, Table)
        output = _render(console, table)
        assert "buildah.rootless" in output
        assert "PrivilegedNotAllowed" in output

    def test_print_violations_valid(self):
        console = _console()
        renderer = StatusRenderer(console=console)
        with console.capture() as capture:
            renderer.print_violations([])
        assert "Spec is valid." in capture.get()

    def test_render_actions(self):
        renderer = StatusRenderer()
        delete = renderer.render_action(DeleteExecutionUnit(job_name="app-1", namespace="ci"))
        assert delete.plain == "DeleteExecutionUnit app-1"
        assert renderer.render_action(NoAction()).plain == "None"
