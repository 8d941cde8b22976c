"""Helpers shared by CLI commands."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console

from buildtask.core.validation import Violation, require_valid
from buildtask.manifest import ManifestError, load_task
from buildtask.models.resource import BuildTask
from buildtask.models.sources import ValidatedSpec
from buildtask.monitor.renderer import StatusRenderer

console = Console()

EXIT_INVALID_SPEC = 1
EXIT_BAD_MANIFEST = 2


def load_task_or_exit(path: Path) -> tuple[BuildTask | None, list[Violation]]:
    try:
        return load_task(path)
    except ManifestError as e:
        console.print(f"[bold red]Manifest error:[/bold red] {e}")
        raise typer.Exit(code=EXIT_BAD_MANIFEST)


def load_valid_task_or_exit(path: Path) -> tuple[BuildTask, ValidatedSpec]:
    task, violations = load_task_or_exit(path)
    if task is None or violations:
        StatusRenderer(console=console).print_violations(violations)
        raise typer.Exit(code=EXIT_INVALID_SPEC)
    return task, require_valid(task.spec)


def parse_now(value: str | None) -> datetime:
    """Parse an ISO 8601 ``--now`` value; naive values are taken as UTC."""
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise typer.BadParameter(f"not an ISO 8601 timestamp: {value!r}", param_hint="--now")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
