"""
imagecanon: container image canonicalization for Kubernetes manifests

Extracts the image references embedded in workload manifests, parses them
into structured form and rewrites every image field with its fully-qualified
canonical string so that images can be compared by identity.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
