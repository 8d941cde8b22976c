"""BuildTask data models — all Pydantic v2, all frozen (immutable)."""

from buildtask.models.actions import (
    ActionKind,
    CreateExecutionUnit,
    DeleteExecutionUnit,
    DesiredAction,
    ExecutionParameters,
    NoAction,
)
from buildtask.models.observation import ExecutionObservation, ExecutionState
from buildtask.models.resource import BuildTask, ObjectMeta, TaskRef
from buildtask.models.sources import (
    ContextSource,
    DockerfileFromPath,
    DockerfileInline,
    DockerfileSpec,
    GitSource,
    PVCSource,
    S3Source,
    ValidatedSpec,
)
from buildtask.models.spec import (
    BuildahSpec,
    BuildContext,
    BuildContextType,
    BuildOutput,
    BuildTaskSpec,
    CacheSpec,
    DockerfileSource,
    DockerfileSourceType,
    EnvVar,
    GitContext,
    LocalSecretReference,
    ManualTrigger,
    PVCContext,
    ResourceRequirements,
    RetentionSpec,
    S3Context,
    TriggerSpec,
)
from buildtask.models.status import (
    VALID_TRANSITIONS,
    BuildTaskPhase,
    BuildTaskStatus,
    Condition,
    ConditionStatus,
    ConditionType,
)

__all__ = [
    # spec
    "BuildTaskSpec",
    "BuildContext",
    "BuildContextType",
    "GitContext",
    "PVCContext",
    "S3Context",
    "DockerfileSource",
    "DockerfileSourceType",
    "BuildOutput",
    "BuildahSpec",
    "CacheSpec",
    "EnvVar",
    "LocalSecretReference",
    "ManualTrigger",
    "ResourceRequirements",
    "RetentionSpec",
    "TriggerSpec",
    # resolved sources
    "ContextSource",
    "GitSource",
    "PVCSource",
    "S3Source",
    "DockerfileSpec",
    "DockerfileFromPath",
    "DockerfileInline",
    "ValidatedSpec",
    # status
    "BuildTaskPhase",
    "BuildTaskStatus",
    "Condition",
    "ConditionStatus",
    "ConditionType",
    "VALID_TRANSITIONS",
    # observation
    "ExecutionObservation",
    "ExecutionState",
    # actions
    "ActionKind",
    "DesiredAction",
    "NoAction",
    "CreateExecutionUnit",
    "DeleteExecutionUnit",
    "ExecutionParameters",
    # resource
    "BuildTask",
    "ObjectMeta",
    "TaskRef",
]
