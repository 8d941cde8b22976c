"""``buildtask evaluate MANIFEST`` — run one state-machine evaluation offline.

The execution unit's state is supplied on the command line instead of
being observed, which makes it easy to replay what an operator would do
for a given status.
"""

from __future__ import annotations

from pathlib import Path

import typer

from buildtask.cli.commands._common import console, load_valid_task_or_exit, parse_now
from buildtask.config import settings
from buildtask.core.lifecycle import evaluate
from buildtask.manifest import dump_task
from buildtask.models.actions import CreateExecutionUnit
from buildtask.models.observation import ExecutionObservation, ExecutionState
from buildtask.monitor.renderer import StatusRenderer


def evaluate_cmd(
    manifest: Path = typer.Argument(..., help="BuildTask manifest with optional status."),
    observe: ExecutionState = typer.Option(
        ExecutionState.NOT_FOUND,
        "--observe",
        "-o",
        help="Observed state of the execution unit named in status.jobName.",
    ),
    pod: str = typer.Option(None, "--pod", help="Observed pod name."),
    digest: str = typer.Option(None, "--digest", help="Image digest reported on success."),
    reason: str = typer.Option(None, "--reason", help="Failure reason reported by the runtime."),
    now: str = typer.Option(None, "--now", help="Evaluation time (ISO 8601). Defaults to now."),
    show_params: bool = typer.Option(
        False, "--params", help="Print rendered parameters when a unit is to be created."
    ),
    write: bool = typer.Option(
        False, "--write", "-w", help="Write the resulting status back into MANIFEST."
    ),
) -> None:
    """Evaluate the lifecycle state machine once and show the result."""
    task, validated = load_valid_task_or_exit(manifest)
    observation = ExecutionObservation(
        state=observe,
        job_name=task.status.job_name or None,
        pod_name=pod,
        image_digest=digest,
        reason=reason,
    )

    result = evaluate(
        validated, task.status, observation, parse_now(now), task.ref, settings=settings
    )
    updated = task.with_status(result.status)

    renderer = StatusRenderer(console=console)
    renderer.print_task(updated)
    console.print(f"[bold]Reason:[/bold] {result.reason.value}")
    console.print(renderer.render_action(result.action))

    if show_params and isinstance(result.action, CreateExecutionUnit):
        console.print_json(result.action.parameters.model_dump_json())

    if write:
        manifest.write_text(dump_task(updated), encoding="utf-8")
        console.print(f"[dim]Status written to {manifest}[/dim]")
