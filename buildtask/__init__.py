"""BuildTask: declarative contract and lifecycle for rootless container builds.

A BuildTask turns a source context (git, PVC or S3 tarball) plus a
Dockerfile into a pushed image, executed by an external job runtime.  This
package holds the part that must be right regardless of that runtime:

  - the spec/status wire models
  - the validation engine (every violation reported at once, rootless only)
  - the lifecycle state machine (pure, idempotent, nonce-triggered)
  - rendering of execution-unit parameters for buildah
"""

__version__ = "0.1.0"

from buildtask.core.lifecycle import Evaluation, evaluate, report_invalid_spec
from buildtask.core.validation import Violation, require_valid, validate

__all__ = [
    "Evaluation",
    "Violation",
    "evaluate",
    "report_invalid_spec",
    "require_valid",
    "validate",
    "__version__",
]
