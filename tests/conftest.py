"""Shared test fixtures for BuildTask."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
import yaml

from buildtask.config import BuildTaskSettings
from buildtask.core.reconciler import Reconciler
from buildtask.core.runtime import InMemoryRuntime, ManualClock
from buildtask.core.validation import require_valid
from buildtask.models.resource import BuildTask, ObjectMeta, TaskRef
from buildtask.models.sources import ValidatedSpec
from buildtask.models.spec import BuildTaskSpec

GIT_URL = "https://git.example.com/team/app.git"
IMAGE = "registry.example.com/team/app:1.0"


@pytest.fixture
def now() -> datetime:
    """A fixed, timezone-aware evaluation time."""
    return datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> BuildTaskSettings:
    """Settings isolated from the caller's environment."""
    return BuildTaskSettings(
        _env_file=None,
        builder_image="quay.io/buildah/stable:v1.37",
        default_storage_driver="vfs",
        workspace_dir="/workspace",
        digest_file="/workspace/.image-digest",
        log_url_template="https://logs.example.com/{namespace}/{name}/{job_name}",
    )


@pytest.fixture
def ref() -> TaskRef:
    """Identity of the task under test."""
    return TaskRef(name="app", namespace="builds", uid="0b6f1c2e-uid", generation=1)


# ---------------------------------------------------------------------------
# Spec factories shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_raw_spec() -> Callable[..., dict[str, Any]]:
    """Factory fixture: wire-form (camelCase) spec with a Git context."""

    def _factory(nonce: str = "abc", **overrides: Any) -> dict[str, Any]:
        raw: dict[str, Any] = {
            "image": IMAGE,
            "context": {"type": "Git", "git": {"url": GIT_URL, "revision": "main"}},
            "trigger": {"manual": {"nonce": nonce}},
        }
        raw.update(overrides)
        return raw

    return _factory


@pytest.fixture
def make_spec(make_raw_spec: Callable[..., dict[str, Any]]) -> Callable[..., BuildTaskSpec]:
    """Factory fixture: build a BuildTaskSpec from wire-form overrides."""

    def _factory(nonce: str = "abc", **overrides: Any) -> BuildTaskSpec:
        return BuildTaskSpec.model_validate(make_raw_spec(nonce, **overrides))

    return _factory


@pytest.fixture
def make_validated(make_spec: Callable[..., BuildTaskSpec]) -> Callable[..., ValidatedSpec]:
    """Factory fixture: a ValidatedSpec built through require_valid."""

    def _factory(nonce: str = "abc", **overrides: Any) -> ValidatedSpec:
        return require_valid(make_spec(nonce, **overrides))

    return _factory


@pytest.fixture
def make_task(make_spec: Callable[..., BuildTaskSpec]) -> Callable[..., BuildTask]:
    """Factory fixture: a BuildTask envelope in namespace ``builds``."""

    def _factory(nonce: str = "abc", generation: int = 1, **overrides: Any) -> BuildTask:
        return BuildTask(
            metadata=ObjectMeta(
                name="app", namespace="builds", uid="0b6f1c2e-uid", generation=generation
            ),
            spec=make_spec(nonce, **overrides),
        )

    return _factory


@pytest.fixture
def runtime() -> InMemoryRuntime:
    return InMemoryRuntime()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def reconciler(
    runtime: InMemoryRuntime, clock: ManualClock, test_settings: BuildTaskSettings
) -> Reconciler:
    """Provide a Reconciler wired to the in-memory runtime and manual clock."""
    return Reconciler(runtime, clock=clock, settings=test_settings)


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[..., Path]:
    """Factory fixture: write a mapping as a YAML manifest and return its path."""

    def _factory(data: Any, name: str = "app.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _factory
