"""``buildtask render MANIFEST`` — show the execution unit for the current trigger."""

from __future__ import annotations

from pathlib import Path

import typer

from buildtask.cli.commands._common import console, load_valid_task_or_exit
from buildtask.config import settings
from buildtask.core.render import render_parameters


def render_cmd(
    manifest: Path = typer.Argument(..., help="BuildTask manifest (YAML or JSON)."),
) -> None:
    """Print the rendered execution-unit parameters as JSON."""
    task, validated = load_valid_task_or_exit(manifest)
    parameters = render_parameters(validated, task.ref, settings)
    console.print_json(parameters.model_dump_json())
