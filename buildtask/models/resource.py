"""The BuildTask resource envelope and its identity handle."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from buildtask.models.spec import BuildTaskSpec, WireModel
from buildtask.models.status import BuildTaskStatus

API_GROUP = "build.example.io"
API_VERSION = f"{API_GROUP}/v1alpha1"
KIND = "BuildTask"


class TaskRef(BaseModel):
    """Opaque identity of a task, owned by the hosting store.

    The state machine uses it only to name execution units and to echo
    ``generation`` back as ``observedGeneration``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = "default"
    uid: str = ""
    generation: int | None = None


class ObjectMeta(WireModel):
    # Hosting stores attach plenty of metadata this package ignores.
    model_config = ConfigDict(extra="ignore")

    name: str
    namespace: str = "default"
    uid: str = ""
    generation: int | None = None
    labels: dict[str, str] = {}
    annotations: dict[str, str] = {}


class BuildTask(WireModel):
    api_version: str = API_VERSION
    kind: str = KIND
    metadata: ObjectMeta
    spec: BuildTaskSpec
    status: BuildTaskStatus = BuildTaskStatus()

    @property
    def ref(self) -> TaskRef:
        return TaskRef(
            name=self.metadata.name,
            namespace=self.metadata.namespace,
            uid=self.metadata.uid,
            generation=self.metadata.generation,
        )

    def with_status(self, status: BuildTaskStatus) -> BuildTask:
        return self.model_copy(update={"status": status})
