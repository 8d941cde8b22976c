"""Rich terminal renderer for BuildTask status, violations and actions.

Color scheme
------------
- green     : Succeeded
- red       : Failed
- yellow    : Running
- cyan      : Pending
- dim       : no phase yet
"""

from __future__ import annotations

from datetime import datetime

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from buildtask.core.retention import RetentionDecision
from buildtask.core.validation import Violation
from buildtask.models.actions import (
    CreateExecutionUnit,
    DeleteExecutionUnit,
    DesiredAction,
)
from buildtask.models.resource import BuildTask
from buildtask.models.status import BuildTaskPhase, ConditionStatus


# ---------------------------------------------------------------------------
# Phase -> Rich style mapping
# ---------------------------------------------------------------------------

_PHASE_STYLES: dict[BuildTaskPhase, str] = {
    BuildTaskPhase.SUCCEEDED: "bold green",
    BuildTaskPhase.FAILED: "bold red",
    BuildTaskPhase.RUNNING: "bold yellow",
    BuildTaskPhase.PENDING: "bold cyan",
}

_CONDITION_STYLES: dict[ConditionStatus, str] = {
    ConditionStatus.TRUE: "green",
    ConditionStatus.FALSE: "red",
    ConditionStatus.UNKNOWN: "yellow",
}


def _fmt_time(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip() if value else "[dim]-[/dim]"


def phase_markup(phase: BuildTaskPhase | None) -> str:
    if phase is None:
        return "[dim]NONE[/dim]"
    style = _PHASE_STYLES[phase]
    return f"[{style}]{phase.value.upper()}[/{style}]"


class StatusRenderer:
    """Renders BuildTask state as Rich renderables.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def render_task(self, task: BuildTask, retention: RetentionDecision | None = None) -> Panel:
        status = task.status
        fields = Table.grid(padding=(0, 2))
        fields.add_column(style="bold")
        fields.add_column()
        fields.add_row("Image", task.spec.image)
        fields.add_row("Phase", phase_markup(status.phase))
        fields.add_row("Job", status.job_name or "[dim]-[/dim]")
        fields.add_row("Pod", status.pod_name or "[dim]-[/dim]")
        fields.add_row("Started", _fmt_time(status.start_time))
        fields.add_row("Finished", _fmt_time(status.end_time))
        fields.add_row("Digest", status.image_digest or "[dim]-[/dim]")
        fields.add_row("Trigger", status.last_trigger_nonce or "[dim]-[/dim]")
        if task.spec.trigger_nonce != status.last_trigger_nonce:
            fields.add_row("", f"[yellow]pending trigger {task.spec.trigger_nonce!r}[/yellow]")
        if status.log_url:
            fields.add_row("Logs", status.log_url)
        if retention is not None and retention.expires_at is not None:
            state = "[red]eligible for deletion[/red]" if retention.eligible else "retained"
            fields.add_row("Retention", f"{state} (expires {_fmt_time(retention.expires_at)})")

        parts = [fields]
        if status.conditions:
            parts.extend([Text(""), self._build_condition_table(task)])

        return Panel(
            Group(*parts),
            title=f"[bold]BuildTask {task.metadata.namespace}/{task.metadata.name}[/bold]",
            border_style="blue",
            padding=(1, 2),
        )

    def _build_condition_table(self, task: BuildTask) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Type", min_width=12)
        table.add_column("Status", justify="center")
        table.add_column("Reason")
        table.add_column("Message")
        table.add_column("Since", style="dim")
        for condition in task.status.conditions:
            style = _CONDITION_STYLES[condition.status]
            table.add_row(
                condition.type,
                f"[{style}]{condition.status.value}[/{style}]",
                condition.reason,
                condition.message,
                _fmt_time(condition.last_transition_time),
            )
        return table

    # ------------------------------------------------------------------
    # Violations and actions
    # ------------------------------------------------------------------

    def render_violations(self, violations: list[Violation]) -> Table:
        table = Table(title="Spec violations", header_style="bold red", expand=True)
        table.add_column("#", style="dim", justify="right", width=3)
        table.add_column("Field", style="cyan")
        table.add_column("Rule")
        table.add_column("Message")
        for i, violation in enumerate(violations, start=1):
            table.add_row(str(i), violation.field, violation.rule.value, violation.message)
        return table

    def render_action(self, action: DesiredAction) -> Text:
        if isinstance(action, CreateExecutionUnit):
            return Text.from_markup(
                f"[bold green]CreateExecutionUnit[/bold green] {action.parameters.job_name}"
            )
        if isinstance(action, DeleteExecutionUnit):
            return Text.from_markup(
                f"[bold red]DeleteExecutionUnit[/bold red] {action.job_name}"
            )
        return Text.from_markup("[dim]None[/dim]")

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_task(self, task: BuildTask, retention: RetentionDecision | None = None) -> None:
        self.console.print(self.render_task(task, retention))

    def print_violations(self, violations: list[Violation]) -> None:
        if not violations:
            self.console.print("[green]Spec is valid.[/green]")
            return
        self.console.print(self.render_violations(violations))
