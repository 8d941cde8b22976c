"""BuildTask CLI — Typer-based command-line interface.

Provides the ``buildtask`` command with subcommands for validating
manifests, rendering execution units, evaluating the lifecycle state
machine offline, showing status and simulating a full lifecycle.

All output uses Rich for formatted terminal display.
"""
