"""Spec validation engine.

Every rule is a plain function ``(spec) -> list[Violation]``.  ``validate``
runs all of them and concatenates the results in rule order, so a caller
sees every problem at once.  Nothing here performs I/O.

Rules
-----
1. ``check_context_union``    exactly the payload named by ``context.type``
2. ``check_dockerfile_union`` Path/Inline payload matches ``dockerfile.type``
3. ``check_required_strings`` required strings are non-empty
4. ``check_minimums``         integer lower bounds
5. ``check_rootless``         ``buildah.rootless`` is never explicitly false

A spec that passes is resolved by ``require_valid`` into a
:class:`~buildtask.models.sources.ValidatedSpec`, the only form the state
machine accepts.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

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
    DEFAULT_DOCKERFILE_PATH,
    BuildContext,
    BuildContextType,
    BuildTaskSpec,
    DockerfileSource,
    DockerfileSourceType,
)


class ViolationRule(str, Enum):
    UNION_MISMATCH = "UnionMismatch"
    REQUIRED = "Required"
    MINIMUM = "Minimum"
    PRIVILEGED_NOT_ALLOWED = "PrivilegedNotAllowed"
    SCHEMA = "Schema"


class Violation(BaseModel):
    """A single field-addressed validation failure.

    ``field`` is a dotted path using wire names, relative to the spec
    (``context.git.url``, ``buildah.rootless``).
    """

    model_config = ConfigDict(frozen=True)

    field: str
    message: str
    rule: ViolationRule

    def __str__(self) -> str:
        return f"{self.field}: {self.message} [{self.rule.value}]"


class SpecValidationError(RuntimeError):
    """Raised when a validated spec is required but the spec is invalid."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = list(violations)
        super().__init__(
            "BuildTask spec is invalid.\n"
            + "\n".join(f"  - {v}" for v in self.violations)
        )


# ---------------------------------------------------------------------------
# Rule 1 & 2: discriminated unions
# ---------------------------------------------------------------------------


def _context_union_violation(context: BuildContext) -> Violation | None:
    expected = context.type
    present = [tag for tag, payload in context.payloads().items() if payload is not None]
    if present == [expected]:
        return None
    others = "/".join(t.value.lower() for t in BuildContextType if t is not expected)
    return Violation(
        field="context",
        rule=ViolationRule.UNION_MISMATCH,
        message=(
            f"when context.type={expected.value}, context.{expected.value.lower()} "
            f"must be set and {others} must be empty"
        ),
    )


def check_context_union(spec: BuildTaskSpec) -> list[Violation]:
    violation = _context_union_violation(spec.context)
    return [violation] if violation else []


def _dockerfile_union_violation(dockerfile: DockerfileSource | None) -> Violation | None:
    if dockerfile is None:
        return None  # defaults to Path "Dockerfile"

    if dockerfile.type is DockerfileSourceType.PATH:
        if dockerfile.effective_path and not dockerfile.inline:
            return None
        message = (
            "when dockerfile.type=Path, dockerfile.path must be non-empty "
            "and dockerfile.inline must be empty"
        )
    else:
        # A stored object may carry the defaulted path alongside inline content.
        if dockerfile.inline and dockerfile.path in (None, DEFAULT_DOCKERFILE_PATH):
            return None
        message = (
            "when dockerfile.type=Inline, dockerfile.inline must be non-empty "
            "and dockerfile.path must be unset"
        )
    return Violation(field="dockerfile", rule=ViolationRule.UNION_MISMATCH, message=message)


def check_dockerfile_union(spec: BuildTaskSpec) -> list[Violation]:
    violation = _dockerfile_union_violation(spec.dockerfile)
    return [violation] if violation else []


# ---------------------------------------------------------------------------
# Rule 3: required strings
# ---------------------------------------------------------------------------


def _active_payload_strings(context: BuildContext) -> list[tuple[str, str]]:
    if context.type is BuildContextType.GIT and context.git is not None:
        fields = [("context.git.url", context.git.url)]
        if context.git.secret_ref is not None:
            fields.append(("context.git.secretRef.name", context.git.secret_ref.name))
        return fields
    if context.type is BuildContextType.PVC and context.pvc is not None:
        return [("context.pvc.claimName", context.pvc.claim_name)]
    if context.type is BuildContextType.S3 and context.s3 is not None:
        fields = [
            ("context.s3.bucket", context.s3.bucket),
            ("context.s3.key", context.s3.key),
        ]
        if context.s3.secret_ref is not None:
            fields.append(("context.s3.secretRef.name", context.s3.secret_ref.name))
        return fields
    return []


def check_required_strings(spec: BuildTaskSpec) -> list[Violation]:
    required: list[tuple[str, str]] = [("image", spec.image)]
    required.extend(_active_payload_strings(spec.context))

    if spec.push_secret_ref is not None:
        required.append(("pushSecretRef.name", spec.push_secret_ref.name))
    if spec.output is not None:
        required.extend(
            (f"output.images[{i}]", image) for i, image in enumerate(spec.output.images)
        )
    if spec.buildah is not None:
        required.extend(
            (f"buildah.env[{i}].name", env.name) for i, env in enumerate(spec.buildah.env)
        )

    violations = [
        Violation(field=path, rule=ViolationRule.REQUIRED, message="must be non-empty")
        for path, value in required
        if not value
    ]
    if any(not name for name in spec.build_args):
        violations.append(
            Violation(
                field="buildArgs",
                rule=ViolationRule.REQUIRED,
                message="build argument names must be non-empty",
            )
        )
    return violations


# ---------------------------------------------------------------------------
# Rule 4: integer lower bounds
# ---------------------------------------------------------------------------


def _minimum(path: str, value: int | None, bound: int) -> Violation | None:
    if value is None or value >= bound:
        return None
    return Violation(
        field=path,
        rule=ViolationRule.MINIMUM,
        message=f"must be greater than or equal to {bound}, got {value}",
    )


def check_minimums(spec: BuildTaskSpec) -> list[Violation]:
    retention = spec.retention
    git = spec.context.git
    candidates = [
        _minimum("context.git.depth", git.depth if git else None, 1),
        _minimum("timeoutSeconds", spec.timeout_seconds, 1),
        _minimum("backoffLimit", spec.backoff_limit, 0),
        _minimum(
            "retention.successfulJobsTTLSecondsAfterFinished",
            retention.successful_jobs_ttl_seconds_after_finished if retention else None,
            0,
        ),
        _minimum(
            "retention.failedJobsTTLSecondsAfterFinished",
            retention.failed_jobs_ttl_seconds_after_finished if retention else None,
            0,
        ),
    ]
    return [v for v in candidates if v is not None]


# ---------------------------------------------------------------------------
# Rule 5: rootless only
# ---------------------------------------------------------------------------


def check_rootless(spec: BuildTaskSpec) -> list[Violation]:
    """Privileged builds are not supported at all, so ``false`` is rejected here."""
    if spec.buildah is not None and spec.buildah.rootless is False:
        return [
            Violation(
                field="buildah.rootless",
                rule=ViolationRule.PRIVILEGED_NOT_ALLOWED,
                message="buildah.rootless must be true; privileged mode is not supported",
            )
        ]
    return []


RULES: tuple[Callable[[BuildTaskSpec], list[Violation]], ...] = (
    check_context_union,
    check_dockerfile_union,
    check_required_strings,
    check_minimums,
    check_rootless,
)


def validate(spec: BuildTaskSpec) -> list[Violation]:
    """Run every rule against *spec*.  An empty list means the spec is valid."""
    violations: list[Violation] = []
    for rule in RULES:
        violations.extend(rule(spec))
    return violations


def parse_spec(raw: Mapping[str, Any]) -> tuple[BuildTaskSpec | None, list[Violation]]:
    """Build a spec from wire data and validate it.

    Type errors that prevent building the model at all are returned as
    ``Schema`` violations with a ``None`` spec.
    """
    try:
        spec = BuildTaskSpec.model_validate(raw)
    except ValidationError as exc:
        return None, [
            Violation(
                field=".".join(str(part) for part in error["loc"]) or "spec",
                message=error["msg"],
                rule=ViolationRule.SCHEMA,
            )
            for error in exc.errors()
        ]
    return spec, validate(spec)


# ---------------------------------------------------------------------------
# Resolution into tagged variants
# ---------------------------------------------------------------------------


def resolve_context(context: BuildContext) -> ContextSource:
    """Turn a valid wire context into its tagged variant."""
    violation = _context_union_violation(context)
    if violation is not None:
        raise SpecValidationError([violation])

    if context.git is not None:
        git = context.git
        return GitSource(
            url=git.url,
            revision=git.revision,
            sub_path=git.sub_path,
            secret_name=git.secret_ref.name if git.secret_ref else None,
            depth=git.depth,
        )
    if context.pvc is not None:
        return PVCSource(claim_name=context.pvc.claim_name, path=context.pvc.path)

    s3 = context.s3
    return S3Source(
        bucket=s3.bucket,
        key=s3.key,
        endpoint=s3.endpoint,
        region=s3.region,
        secret_name=s3.secret_ref.name if s3.secret_ref else None,
    )


def resolve_dockerfile(dockerfile: DockerfileSource | None) -> DockerfileSpec:
    """Turn a valid wire Dockerfile selector (or its absence) into a variant."""
    violation = _dockerfile_union_violation(dockerfile)
    if violation is not None:
        raise SpecValidationError([violation])

    if dockerfile is None:
        return DockerfileFromPath(path=DEFAULT_DOCKERFILE_PATH)
    if dockerfile.type is DockerfileSourceType.INLINE:
        return DockerfileInline(content=dockerfile.inline)
    return DockerfileFromPath(path=dockerfile.effective_path)


def require_valid(spec: BuildTaskSpec) -> ValidatedSpec:
    """Validate *spec* and resolve it, raising ``SpecValidationError`` if invalid."""
    violations = validate(spec)
    if violations:
        raise SpecValidationError(violations)
    return ValidatedSpec(
        spec=spec,
        context=resolve_context(spec.context),
        dockerfile=resolve_dockerfile(spec.dockerfile),
    )
