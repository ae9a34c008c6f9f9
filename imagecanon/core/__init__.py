"""
Core domain-agnostic components for imagecanon.

This package contains the image and patch schemas, the error taxonomy,
and configuration loading shared by the Kubernetes adapter and the CLI.
"""

__all__ = []
