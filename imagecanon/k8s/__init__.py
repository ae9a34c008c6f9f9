"""Kubernetes (K8s) adapter for imagecanon.

- reference: image reference grammar and registry/tag defaulting
- extractor: locating and parsing every container image in a workload
- patch_dsl: turning canonicalized images into document patches
- K8sArtifact: YAML manifest files
"""
