"""Terminal display of BuildTask status, violations and actions."""

from buildtask.monitor.renderer import StatusRenderer

__all__ = ["StatusRenderer"]
