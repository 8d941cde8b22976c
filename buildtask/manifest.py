"""Manifest loading — BuildTask objects from YAML or JSON files.

A manifest is either a full object (``apiVersion``/``kind``/``metadata``/
``spec``/``status``) or a bare spec mapping.  JSON is a subset of YAML, so
one loader handles both.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from buildtask.core.validation import Violation, parse_spec
from buildtask.models.resource import KIND, BuildTask, ObjectMeta
from buildtask.models.status import BuildTaskStatus


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or is not a BuildTask."""


def load_manifest(path: Path) -> dict[str, Any]:
    """Read *path* and return its top-level mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} must contain a mapping")
    return data


def load_task(path: Path) -> tuple[BuildTask | None, list[Violation]]:
    """Load a BuildTask from *path*.

    Returns the task (None when the spec cannot even be parsed) and the
    spec's validation violations.  Problems outside the spec raise
    ``ManifestError``.
    """
    data = load_manifest(path)

    if "spec" in data:
        kind = data.get("kind", KIND)
        if kind != KIND:
            raise ManifestError(f"Manifest {path} has kind {kind!r}, expected {KIND!r}")
        raw_spec = data["spec"]
        raw_metadata = data.get("metadata") or {}
        raw_status = data.get("status") or {}
    else:
        raw_spec, raw_metadata, raw_status = data, {}, {}

    for section, value in (("spec", raw_spec), ("metadata", raw_metadata), ("status", raw_status)):
        if not isinstance(value, dict):
            raise ManifestError(f"Manifest {path}: {section} must be a mapping")

    try:
        metadata = ObjectMeta.model_validate({"name": path.stem, **raw_metadata})
        status = BuildTaskStatus.model_validate(raw_status)
    except ValidationError as e:
        raise ManifestError(f"Manifest {path}: {e}") from e

    spec, violations = parse_spec(raw_spec)
    if spec is None:
        return None, violations
    return BuildTask(metadata=metadata, spec=spec, status=status), violations


def dump_task(task: BuildTask) -> str:
    """Serialize *task* back to YAML using wire field names."""
    return yaml.safe_dump(task.to_wire(), sort_keys=False)
