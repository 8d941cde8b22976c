"""``buildtask simulate MANIFEST`` — walk a task through a full lifecycle.

Uses the in-memory runtime and a manual clock: create, start, finish, then
retention.  Handy for checking what a spec would do before handing it to a
real operator.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from buildtask.cli.commands._common import console, load_valid_task_or_exit
from buildtask.config import settings
from buildtask.core.reconciler import Reconciler, ReconcileResult
from buildtask.core.runtime import InMemoryRuntime, ManualClock
from buildtask.monitor.renderer import StatusRenderer, phase_markup


def simulate_cmd(
    manifest: Path = typer.Argument(..., help="BuildTask manifest (YAML or JSON)."),
    fail: bool = typer.Option(False, "--fail", help="Make the execution unit fail."),
    digest: str = typer.Option(
        "sha256:" + "0" * 64, "--digest", help="Digest reported on success."
    ),
    duration: int = typer.Option(60, "--duration", help="Simulated build time in seconds."),
) -> None:
    """Simulate create -> run -> finish -> retention for MANIFEST."""
    task, _ = load_valid_task_or_exit(manifest)
    runtime = InMemoryRuntime()
    clock = ManualClock()
    reconciler = Reconciler(runtime, clock=clock, settings=settings)
    renderer = StatusRenderer(console=console)

    table = Table(title=f"Simulated lifecycle of {task.metadata.name}", expand=True)
    table.add_column("t+s", justify="right", style="dim")
    table.add_column("Event")
    table.add_column("Phase", justify="center")
    table.add_column("Reason")
    table.add_column("Action")
    started = clock.now()

    def step(event: str) -> ReconcileResult:
        nonlocal task
        result = reconciler.reconcile(task)
        task = task.with_status(result.status)
        table.add_row(
            str(int((clock.now() - started).total_seconds())),
            event,
            phase_markup(result.status.phase),
            result.reason,
            renderer.render_action(result.action),
        )
        return result

    step("reconcile")
    job_name = task.status.job_name
    runtime.start(job_name, task.metadata.namespace)
    step("unit started")

    clock.advance(duration)
    if fail:
        runtime.fail(job_name, task.metadata.namespace, message="simulated failure")
    else:
        runtime.succeed(job_name, digest, task.metadata.namespace)
    step("unit finished")
    step("re-reconcile")

    retention = task.spec.retention
    ttl = None
    if retention is not None:
        ttl = (
            retention.failed_jobs_ttl_seconds_after_finished
            if fail
            else retention.successful_jobs_ttl_seconds_after_finished
        )
    if ttl is not None:
        clock.advance(ttl)
        step("retention expired")

    console.print(table)
    renderer.print_task(task)
