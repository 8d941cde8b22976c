"""Rendering of execution-unit parameters for one trigger.

The output is a complete, declarative description of the unit the operator
must create: names, labels, the fetch/build/push command lines for rootless
buildah, and the scheduling limits taken from the spec.  Nothing is
executed here.

Layout inside the unit (``workspace_dir`` from settings)::

    <workspace>/src          git checkout or extracted S3 tarball
    <workspace>/context      PVC mount
    <workspace>/cache        cache PVC mount (buildah storage root)
    <workspace>/Dockerfile.inline
"""

from __future__ import annotations

import posixpath

from buildtask.config import BuildTaskSettings, settings as default_settings
from buildtask.core.hasher import compute_spec_hash, compute_trigger_hash
from buildtask.models.actions import ExecutionParameters
from buildtask.models.resource import TaskRef
from buildtask.models.sources import (
    ContextSource,
    DockerfileInline,
    DockerfileSpec,
    GitSource,
    PVCSource,
    ValidatedSpec,
)
from buildtask.models.spec import BuildTaskSpec

MAX_NAME_LENGTH = 63
PUSH_AUTH_FILE = "/run/secrets/push/.dockerconfigjson"
LABEL_PREFIX = "build.example.io"


def execution_unit_name(ref: TaskRef, nonce: str, prefix: str = "") -> str:
    """Deterministic DNS-1123 name for the unit serving (task, nonce).

    The same trigger always maps to the same name, so a repeated create
    request collides with the existing unit instead of starting another.
    """
    suffix = compute_trigger_hash(ref.uid, ref.name, nonce)
    base = f"{prefix}{ref.name}".lower()[: MAX_NAME_LENGTH - len(suffix) - 1].rstrip("-.")
    return f"{base}-{suffix}"


def _join(*parts: str | None) -> str:
    return posixpath.join(*[p for p in parts if p])


def _contained(base: str, path: str | None) -> str:
    # Absolute paths and ".." segments resolve inside *base*, never above it.
    relative = posixpath.normpath(posixpath.join("/", path or "")).lstrip("/")
    return _join(base, relative)


def context_dir(source: ContextSource, workspace: str) -> str:
    if isinstance(source, GitSource):
        return _contained(posixpath.join(workspace, "src"), source.sub_path)
    if isinstance(source, PVCSource):
        return _contained(posixpath.join(workspace, "context"), source.path)
    return posixpath.join(workspace, "src")


def dockerfile_file(dockerfile: DockerfileSpec, build_dir: str, workspace: str) -> str:
    if isinstance(dockerfile, DockerfileInline):
        return posixpath.join(workspace, "Dockerfile.inline")
    return _contained(build_dir, dockerfile.path)


def fetch_commands(source: ContextSource, workspace: str) -> list[list[str]]:
    """Commands that materialize the build context inside the unit."""
    src = posixpath.join(workspace, "src")
    if isinstance(source, GitSource):
        depth = [f"--depth={source.depth}"] if source.depth else []
        return [
            ["git", "init", src],
            ["git", "-C", src, "remote", "add", "origin", source.url],
            ["git", "-C", src, "fetch", *depth, "origin", source.revision or "HEAD"],
            ["git", "-C", src, "checkout", "FETCH_HEAD"],
        ]
    if isinstance(source, PVCSource):
        return []  # mounted, nothing to fetch

    archive = posixpath.join(workspace, "context.tar.gz")
    copy = ["aws", "s3", "cp"]
    if source.endpoint:
        copy.append(f"--endpoint-url={source.endpoint}")
    if source.region:
        copy.append(f"--region={source.region}")
    copy.extend([f"s3://{source.bucket}/{source.key}", archive])
    return [copy, ["mkdir", "-p", src], ["tar", "-xzf", archive, "-C", src]]


def destinations(spec: BuildTaskSpec) -> list[str]:
    """``spec.image`` followed by extra tags, without duplicates."""
    extra = spec.output.images if spec.output else []
    return list(dict.fromkeys([spec.image, *extra]))


def tls_verify(spec: BuildTaskSpec) -> bool:
    output = spec.output
    if output is None:
        return True
    return not (output.skip_tls_verify or output.insecure)


def _buildah_globals(storage_driver: str, cache_root: str | None) -> list[str]:
    args = ["buildah", f"--storage-driver={storage_driver}"]
    if cache_root:
        args.append(f"--root={cache_root}")
    return args


def build_command(
    validated: ValidatedSpec,
    *,
    storage_driver: str,
    workspace: str,
    cache_root: str | None = None,
) -> list[str]:
    spec = validated.spec
    build_dir = context_dir(validated.context, workspace)
    command = [
        *_buildah_globals(storage_driver, cache_root),
        "bud",
        "--layers",
        "-f",
        dockerfile_file(validated.dockerfile, build_dir, workspace),
        "-t",
        spec.image,
    ]
    for name in sorted(spec.build_args):
        command.extend(["--build-arg", f"{name}={spec.build_args[name]}"])
    if not tls_verify(spec):
        command.append("--tls-verify=false")
    command.append(build_dir)
    return command


def push_commands(
    spec: BuildTaskSpec,
    *,
    storage_driver: str,
    digest_file: str,
    cache_root: str | None = None,
) -> list[list[str]]:
    """One ``buildah push`` per destination; empty when push is disabled."""
    if spec.output is not None and not spec.output.push_enabled:
        return []

    commands = []
    for destination in destinations(spec):
        command = [*_buildah_globals(storage_driver, cache_root), "push"]
        # imageDigest reports the push of spec.image only.
        if destination == spec.image:
            command.append(f"--digestfile={digest_file}")
        if spec.push_secret_ref is not None:
            command.append(f"--authfile={PUSH_AUTH_FILE}")
        if not tls_verify(spec):
            command.append("--tls-verify=false")
        command.extend([spec.image, f"docker://{destination}"])
        commands.append(command)
    return commands


def _resources(spec: BuildTaskSpec) -> dict[str, dict[str, str]]:
    rendered: dict[str, dict[str, str]] = {}
    if spec.resources.limits:
        rendered["limits"] = {k: str(v) for k, v in spec.resources.limits.items()}
    if spec.resources.requests:
        rendered["requests"] = {k: str(v) for k, v in spec.resources.requests.items()}
    return rendered


def _job_ttl(spec: BuildTaskSpec) -> int | None:
    # The unit gets a single TTL as a backstop; per-outcome TTLs are
    # enforced through retention_decision.
    if spec.retention is None:
        return None
    ttls = [
        ttl
        for ttl in (
            spec.retention.successful_jobs_ttl_seconds_after_finished,
            spec.retention.failed_jobs_ttl_seconds_after_finished,
        )
        if ttl is not None
    ]
    return max(ttls) if ttls else None


def render_parameters(
    validated: ValidatedSpec,
    ref: TaskRef,
    settings: BuildTaskSettings | None = None,
) -> ExecutionParameters:
    """Render the execution unit for the current trigger of *ref*."""
    settings = settings or default_settings
    spec = validated.spec
    nonce = validated.nonce
    workspace = settings.workspace_dir

    storage_driver = (
        spec.buildah.storage_driver
        if spec.buildah is not None and spec.buildah.storage_driver
        else settings.default_storage_driver
    )
    cache_active = spec.cache is not None and spec.cache.active
    cache_root = posixpath.join(workspace, "cache") if cache_active else None

    env = {"STORAGE_DRIVER": storage_driver}
    if spec.buildah is not None:
        env.update({var.name: var.value for var in spec.buildah.env})
    # Isolation is fixed; user env cannot select a privileged mode.
    env["BUILDAH_ISOLATION"] = "chroot"

    build_dir = context_dir(validated.context, workspace)
    push = spec.output.push_enabled if spec.output is not None else True
    output = spec.output

    return ExecutionParameters(
        job_name=execution_unit_name(ref, nonce, settings.job_name_prefix),
        namespace=ref.namespace,
        labels={
            "app.kubernetes.io/managed-by": "buildtask",
            f"{LABEL_PREFIX}/task": ref.name,
            f"{LABEL_PREFIX}/trigger": compute_trigger_hash(ref.uid, ref.name, nonce),
            f"{LABEL_PREFIX}/spec-hash": compute_spec_hash(spec)[:16],
        },
        image=settings.builder_image,
        service_account_name=spec.service_account_name,
        context=validated.context,
        dockerfile=validated.dockerfile,
        context_dir=build_dir,
        dockerfile_file=dockerfile_file(validated.dockerfile, build_dir, workspace),
        build_args=dict(spec.build_args),
        destinations=destinations(spec),
        push=push,
        tls_verify=tls_verify(spec),
        insecure_registry=bool(output and output.insecure),
        push_secret_name=spec.push_secret_ref.name if spec.push_secret_ref else None,
        resources=_resources(spec),
        active_deadline_seconds=spec.timeout_seconds,
        backoff_limit=spec.backoff_limit,
        ttl_seconds_after_finished=_job_ttl(spec),
        cache_claim_name=spec.cache.pvc_name if cache_active else None,
        cache_sub_path=spec.cache.sub_path if cache_active else None,
        storage_driver=storage_driver,
        env=env,
        fetch_commands=fetch_commands(validated.context, workspace),
        build_command=build_command(
            validated,
            storage_driver=storage_driver,
            workspace=workspace,
            cache_root=cache_root,
        ),
        push_commands=push_commands(
            spec,
            storage_driver=storage_driver,
            digest_file=settings.digest_file,
            cache_root=cache_root,
        ),
    )
