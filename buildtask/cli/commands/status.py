"""``buildtask status MANIFEST`` — display a task's status and retention."""

from __future__ import annotations

from pathlib import Path

import typer

from buildtask.cli.commands._common import (
    EXIT_INVALID_SPEC,
    console,
    load_task_or_exit,
    parse_now,
)
from buildtask.core.retention import retention_decision
from buildtask.monitor.renderer import StatusRenderer


def status_cmd(
    manifest: Path = typer.Argument(..., help="BuildTask manifest with status."),
    now: str = typer.Option(None, "--now", help="Reference time (ISO 8601) for retention."),
) -> None:
    """Show phase, execution unit, conditions and retention eligibility."""
    task, violations = load_task_or_exit(manifest)
    renderer = StatusRenderer(console=console)
    if task is None:
        renderer.print_violations(violations)
        raise typer.Exit(code=EXIT_INVALID_SPEC)

    renderer.print_task(task, retention_decision(task.spec, task.status, parse_now(now)))
    if violations:
        renderer.print_violations(violations)
