"""Canonical hashing helpers for deterministic naming and drift labels."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from buildtask.models.spec import BuildTaskSpec


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def short_hash(obj: Any, length: int = 10) -> str:
    """Truncated SHA-256 of a JSON-serializable object."""
    return sha256_hex(canonical_json_bytes(obj))[:length]


def compute_spec_hash(spec: BuildTaskSpec) -> str:
    """SHA-256 of the canonical wire form of a spec.

    The trigger is excluded so the hash only moves when the build itself
    changes, letting an operator surface spec drift since the last run.
    """
    wire = spec.to_wire()
    wire.pop("trigger", None)
    return sha256_hex(canonical_json_bytes(wire))


def compute_trigger_hash(uid: str, name: str, nonce: str) -> str:
    """Identity of one trigger of one task."""
    return short_hash({"uid": uid, "name": name, "nonce": nonce})
