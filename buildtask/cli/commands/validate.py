"""``buildtask validate MANIFEST`` — check a BuildTask spec.

Runs every validation rule and lists all violations.  Exit code 0 when the
spec is valid, 1 when it is not, 2 when the manifest cannot be read.
"""

from __future__ import annotations

from pathlib import Path

import typer

from buildtask.cli.commands._common import (
    EXIT_INVALID_SPEC,
    console,
    load_task_or_exit,
)
from buildtask.monitor.renderer import StatusRenderer


def validate_cmd(
    manifest: Path = typer.Argument(..., help="BuildTask manifest (YAML or JSON)."),
    as_json: bool = typer.Option(
        False, "--json", help="Print violations as JSON instead of a table."
    ),
) -> None:
    """Validate a BuildTask manifest and report every violation."""
    _, violations = load_task_or_exit(manifest)

    if as_json:
        console.print_json(data=[v.model_dump(mode="json") for v in violations])
    else:
        StatusRenderer(console=console).print_violations(violations)

    if violations:
        raise typer.Exit(code=EXIT_INVALID_SPEC)
