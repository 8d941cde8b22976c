"""Resolved build sources — true tagged variants.

The wire form of ``context`` and ``dockerfile`` is a tag plus several
optional payloads, which can express invalid states (two payloads at once).
Once a spec passes validation it is resolved into the variants below, where
each variant carries exactly its own payload and nothing else.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from buildtask.models.spec import (
    DEFAULT_PVC_PATH,
    BuildTaskSpec,
)


class GitSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["Git"] = "Git"
    url: str
    revision: str | None = None
    sub_path: str | None = None
    secret_name: str | None = None
    depth: int | None = None


class PVCSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["PVC"] = "PVC"
    claim_name: str
    path: str = DEFAULT_PVC_PATH


class S3Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["S3"] = "S3"
    bucket: str
    key: str
    endpoint: str | None = None
    region: str | None = None
    secret_name: str | None = None


ContextSource = Annotated[
    Union[GitSource, PVCSource, S3Source],
    Field(discriminator="type"),
]


class DockerfileFromPath(BaseModel):
    """Dockerfile read from a path inside the build context."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Path"] = "Path"
    path: str


class DockerfileInline(BaseModel):
    """Dockerfile content supplied in the spec itself."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Inline"] = "Inline"
    content: str


DockerfileSpec = Annotated[
    Union[DockerfileFromPath, DockerfileInline],
    Field(discriminator="type"),
]


class ValidatedSpec(BaseModel):
    """A spec that passed every validation rule, with its unions resolved.

    Only :func:`buildtask.core.validation.require_valid` builds these.  The
    state machine accepts nothing else, so it never observes an invalid
    spec.
    """

    model_config = ConfigDict(frozen=True)

    spec: BuildTaskSpec
    context: ContextSource
    dockerfile: DockerfileSpec

    @property
    def nonce(self) -> str:
        return self.spec.trigger_nonce
