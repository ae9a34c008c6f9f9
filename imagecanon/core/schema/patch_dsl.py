"""Patch operations for rewriting documents.

Patches are serialized as RFC-6902 operations:

Example::

    [
      {"op": "replace", "path": "/spec/containers/0/image",
       "value": "docker.io/busybox:latest"}
    ]

Image canonicalization only ever emits ``replace`` operations, each on a
distinct path, so the order of a patch list does not affect the result.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class PatchOp:
    """Single document patch operation.

    Attributes:
        op: Operation name (e.g., "replace")
        path: Document pointer of the target field
        value: New value for the target field
    """

    op: str
    path: str
    value: Any

    def to_serializable(self) -> Dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": self.value}


def to_json_patch(ops: Iterable[PatchOp]) -> List[Dict[str, Any]]:
    """Convert patch operations to an RFC-6902 patch document."""
    return [op.to_serializable() for op in ops]
