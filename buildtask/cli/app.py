"""Main Typer application — imports and registers all CLI commands.

Entry point: ``buildtask`` (configured via pyproject.toml scripts).

Commands: validate, render, evaluate, status, simulate.
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from buildtask.cli.commands.evaluate import evaluate_cmd
from buildtask.cli.commands.render import render_cmd
from buildtask.cli.commands.simulate import simulate_cmd
from buildtask.cli.commands.status import status_cmd
from buildtask.cli.commands.validate import validate_cmd
from buildtask.config import settings

app = typer.Typer(
    name="buildtask",
    help="BuildTask: validate, render and evaluate rootless container build tasks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def configure(
    log_level: str = typer.Option(
        settings.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=settings.debug, rich_tracebacks=settings.debug)],
        force=True,
    )


# Register subcommands
app.command(name="validate", help="Validate a BuildTask manifest.")(validate_cmd)
app.command(name="render", help="Render execution-unit parameters for the current trigger.")(render_cmd)
app.command(name="evaluate", help="Evaluate the lifecycle state machine once.")(evaluate_cmd)
app.command(name="status", help="Show status, conditions and retention.")(status_cmd)
app.command(name="simulate", help="Simulate a full lifecycle with an in-memory runtime.")(simulate_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
