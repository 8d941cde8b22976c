"""Build lifecycle smoke test — drives one BuildTask end to end in memory.

Usage:
    python demo_build.py
"""

from __future__ import annotations

from buildtask import __version__
from buildtask.config import settings
from buildtask.core.reconciler import Reconciler
from buildtask.core.runtime import InMemoryRuntime, ManualClock
from buildtask.models.resource import BuildTask, ObjectMeta
from buildtask.models.spec import BuildTaskSpec


def main() -> None:
    """Run a simulated build: create, run, succeed, retain, collect."""
    print(f"BuildTask v{__version__}")
    print(f"Environment: {settings.environment} | Builder: {settings.builder_image}")
    print()

    task = BuildTask(
        metadata=ObjectMeta(name="hello", namespace="demo", uid="demo-uid", generation=1),
        spec=BuildTaskSpec.model_validate(
            {
                "image": "registry.example.com/demo/hello:1.0",
                "context": {"type": "Git", "git": {"url": "https://github.com/example/hello.git"}},
                "retention": {"successfulJobsTTLSecondsAfterFinished": 600},
                "trigger": {"manual": {"nonce": "first"}},
            }
        ),
    )
    runtime = InMemoryRuntime()
    clock = ManualClock()
    reconciler = Reconciler(runtime, clock=clock)

    def step(label: str) -> None:
        nonlocal task
        result = reconciler.reconcile(task)
        task = task.with_status(result.status)
        phase = result.status.phase.value if result.status.phase else "-"
        print(f"  [{label:>12}] phase={phase:<10} reason={result.reason:<18} action={result.action.kind.value}")

    step("submit")
    job_name = task.status.job_name
    runtime.start(job_name, "demo")
    step("started")
    clock.advance(95)
    runtime.succeed(job_name, "sha256:" + "ab" * 32, "demo")
    step("finished")
    clock.advance(600)
    step("retention")

    print()
    print(f"Image digest: {task.status.image_digest}")
    print(f"Units created: {runtime.created} | deleted: {runtime.deleted}")


if __name__ == "__main__":
    main()
