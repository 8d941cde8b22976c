"""BuildTask desired-state models (the ``spec`` half of the wire contract).

Field names on the wire are camelCase and must stay byte-for-byte compatible
with existing consumers.  Models accept either the wire name or the Python
attribute name on input and serialize with ``by_alias=True``.

These models carry no numeric or length constraints.  Structural rules live
in :mod:`buildtask.core.validation` so that a caller sees every violation at
once instead of the first one Pydantic trips over.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_DOCKERFILE_PATH = "Dockerfile"
DEFAULT_PVC_PATH = "/"


class WireModel(BaseModel):
    """Base for every model that crosses the API boundary."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )

    def to_wire(self) -> dict:
        """Serialize with wire names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class BuildContextType(str, Enum):
    """Source type of the build context."""

    GIT = "Git"
    PVC = "PVC"
    S3 = "S3"


class DockerfileSourceType(str, Enum):
    """How the Dockerfile is provided."""

    PATH = "Path"
    INLINE = "Inline"


class LocalSecretReference(WireModel):
    """References a Secret in the same namespace as the BuildTask."""

    name: str


class GitContext(WireModel):
    url: str
    revision: str | None = None  # branch, tag or commit sha
    sub_path: str | None = None
    secret_ref: LocalSecretReference | None = None
    depth: int | None = None  # shallow clone depth


class PVCContext(WireModel):
    claim_name: str
    path: str = DEFAULT_PVC_PATH


class S3Context(WireModel):
    bucket: str
    key: str  # object key of a tarball holding the context
    endpoint: str | None = None
    region: str | None = None
    secret_ref: LocalSecretReference | None = None


class BuildContext(WireModel):
    """Tag plus one payload per source type.

    Exactly one payload matching ``type`` must be set.  This shape is what
    the wire carries; :func:`buildtask.core.validation.resolve_context`
    turns a valid instance into a proper tagged variant.
    """

    type: BuildContextType
    git: GitContext | None = None
    pvc: PVCContext | None = None
    s3: S3Context | None = None

    def payloads(self) -> dict[BuildContextType, BaseModel | None]:
        return {
            BuildContextType.GIT: self.git,
            BuildContextType.PVC: self.pvc,
            BuildContextType.S3: self.s3,
        }


class DockerfileSource(WireModel):
    """Dockerfile selector.  An unset ``path`` defaults to ``Dockerfile``."""

    type: DockerfileSourceType
    path: str | None = None
    inline: str | None = None

    @property
    def effective_path(self) -> str:
        return DEFAULT_DOCKERFILE_PATH if self.path is None else self.path


class BuildOutput(WireModel):
    push: bool | None = None
    images: list[str] = []  # extra tags pushed besides spec.image
    skip_tls_verify: bool | None = Field(default=None, alias="skipTLSVerify")
    insecure: bool | None = None

    @property
    def push_enabled(self) -> bool:
        return self.push is not False


class EnvVar(WireModel):
    name: str
    value: str = ""


class BuildahSpec(WireModel):
    """Buildah runtime options.  Rootless only; see ``check_rootless``."""

    rootless: bool | None = None
    storage_driver: str | None = None  # overlay, vfs
    env: list[EnvVar] = []


class CacheSpec(WireModel):
    enabled: bool | None = None
    pvc_name: str | None = None
    sub_path: str | None = None

    @property
    def active(self) -> bool:
        return bool(self.enabled) and bool(self.pvc_name)


class RetentionSpec(WireModel):
    successful_jobs_ttl_seconds_after_finished: int | None = Field(
        default=None, alias="successfulJobsTTLSecondsAfterFinished"
    )
    failed_jobs_ttl_seconds_after_finished: int | None = Field(
        default=None, alias="failedJobsTTLSecondsAfterFinished"
    )


class ManualTrigger(WireModel):
    nonce: str = ""


class TriggerSpec(WireModel):
    manual: ManualTrigger | None = None


class ResourceRequirements(WireModel):
    """Compute requests/limits for the build container (quantity strings)."""

    limits: dict[str, str | int | float] = {}
    requests: dict[str, str | int | float] = {}


class BuildTaskSpec(WireModel):
    """Desired state of a BuildTask.

    Written only by the caller.  The state machine reads it and never
    modifies it; every edit bumps the generation held by the hosting store.
    """

    image: str
    output: BuildOutput | None = None
    context: BuildContext
    dockerfile: DockerfileSource | None = None
    build_args: dict[str, str] = {}
    push_secret_ref: LocalSecretReference | None = None
    service_account_name: str | None = None
    resources: ResourceRequirements = ResourceRequirements()
    timeout_seconds: int | None = None
    backoff_limit: int | None = None
    retention: RetentionSpec | None = None
    cache: CacheSpec | None = None
    buildah: BuildahSpec | None = None
    trigger: TriggerSpec | None = None

    @property
    def trigger_nonce(self) -> str:
        """The manual trigger nonce, or an empty string when unset."""
        if self.trigger is None or self.trigger.manual is None:
            return ""
        return self.trigger.manual.nonce
