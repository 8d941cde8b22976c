"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a .env file and
BUILDTASK_* environment variables.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_STORAGE_DRIVERS = ("overlay", "vfs")


class BuildTaskSettings(BaseSettings):
    """Settings that shape rendered execution units and logging.

    All settings can be overridden via BUILDTASK_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export BUILDTASK_LOG_LEVEL=DEBUG
        export BUILDTASK_BUILDER_IMAGE=registry.internal/buildah:1.37
        export BUILDTASK_LOG_URL_TEMPLATE="https://logs.internal/{namespace}/{job_name}"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUILDTASK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Execution unit rendering
    builder_image: str = "quay.io/buildah/stable:latest"
    default_storage_driver: str = "vfs"
    workspace_dir: str = "/workspace"
    digest_file: str = "/workspace/.image-digest"
    job_name_prefix: str = ""

    # Optional pointer to externally stored logs, e.g.
    # "https://logs.example.com/{namespace}/{job_name}"
    log_url_template: str = ""

    @field_validator("default_storage_driver")
    @classmethod
    def _known_storage_driver(cls, value: str) -> str:
        if value not in SUPPORTED_STORAGE_DRIVERS:
            raise ValueError(
                f"unsupported storage driver {value!r}; "
                f"expected one of {', '.join(SUPPORTED_STORAGE_DRIVERS)}"
            )
        return value

    def render_log_url(self, *, namespace: str, name: str, job_name: str) -> str:
        """Fill ``log_url_template``; empty when no template is configured."""
        if not self.log_url_template:
            return ""
        return self.log_url_template.format(
            namespace=namespace, name=name, job_name=job_name
        )


# Module-level singleton, import as `from buildtask.config import settings`
settings = BuildTaskSettings()
