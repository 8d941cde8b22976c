"""Tests for env-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from buildtask.config import BuildTaskSettings


class TestBuildTaskSettings:
    def test_defaults(self, monkeypatch):
        for var in ("BUILDTASK_ENVIRONMENT", "BUILDTASK_BUILDER_IMAGE", "BUILDTASK_DEFAULT_STORAGE_DRIVER"):
            monkeypatch.delenv(var, raising=False)
        settings = BuildTaskSettings(_env_file=None)
        assert settings.environment == "development"
        assert settings.builder_image == "quay.io/buildah/stable:latest"
        assert settings.default_storage_driver == "vfs"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BUILDTASK_ENVIRONMENT", "production")
        monkeypatch.setenv("BUILDTASK_JOB_NAME_PREFIX", "bt-")
        settings = BuildTaskSettings(_env_file=None)
        assert settings.environment == "production"
        assert settings.job_name_prefix == "bt-"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("BUILDTASK_WORKSPACE_DIR=/build\n", encoding="utf-8")
        settings = BuildTaskSettings(_env_file=env_file)
        assert settings.workspace_dir == "/build"

    def test_unknown_storage_driver_rejected(self):
        with pytest.raises(ValidationError):
            BuildTaskSettings(_env_file=None, default_storage_driver="btrfs")

    def test_render_log_url(self):
        settings = BuildTaskSettings(
            _env_file=None, log_url_template="https://logs/{namespace}/{name}/{job_name}"
        )
        assert settings.render_log_url(namespace="ci", name="app", job_name="app-1") == (
            "https://logs/ci/app/app-1"
        )

    def test_render_log_url_without_template(self):
        settings = BuildTaskSettings(_env_file=None, log_url_template="")
        assert settings.render_log_url(namespace="ci", name="app", job_name="j") == ""
