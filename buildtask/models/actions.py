"""Actions the state machine asks the surrounding operator to perform.

There are exactly two imperative actions: create one execution unit from
rendered parameters, or delete one by name.  ``NoAction`` makes the
"nothing to do" outcome explicit so callers can match on ``kind``.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from buildtask.models.sources import ContextSource, DockerfileSpec


class ActionKind(str, Enum):
    NONE = "None"
    CREATE = "CreateExecutionUnit"
    DELETE = "DeleteExecutionUnit"


class ExecutionParameters(BaseModel):
    """Everything needed to create one execution unit for one trigger."""

    model_config = ConfigDict(frozen=True)

    job_name: str
    namespace: str
    labels: dict[str, str] = {}
    image: str  # builder image, not the image being built
    service_account_name: str | None = None
    context: ContextSource
    dockerfile: DockerfileSpec
    context_dir: str  # where the context lands inside the unit
    dockerfile_file: str  # inline content is mounted here by the operator
    build_args: dict[str, str] = {}
    destinations: list[str]
    push: bool = True
    tls_verify: bool = True
    insecure_registry: bool = False
    push_secret_name: str | None = None
    resources: dict[str, dict[str, str]] = {}
    active_deadline_seconds: int | None = None
    backoff_limit: int | None = None
    ttl_seconds_after_finished: int | None = None
    cache_claim_name: str | None = None
    cache_sub_path: str | None = None
    storage_driver: str
    env: dict[str, str] = {}
    rootless: Literal[True] = True
    build_command: list[str]
    fetch_commands: list[list[str]] = []
    push_commands: list[list[str]] = []


class NoAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.NONE] = ActionKind.NONE


class CreateExecutionUnit(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.CREATE] = ActionKind.CREATE
    parameters: ExecutionParameters


class DeleteExecutionUnit(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ActionKind.DELETE] = ActionKind.DELETE
    job_name: str
    namespace: str


DesiredAction = Annotated[
    Union[NoAction, CreateExecutionUnit, DeleteExecutionUnit],
    Field(discriminator="kind"),
]
