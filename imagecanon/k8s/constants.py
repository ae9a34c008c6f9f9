"""K8s constants used across the image extraction modules.

The kind table is read-only and shared by every extraction, so it is built
once at import time from immutable types.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

# Registry prefixed to references that do not name one
DEFAULT_DOMAIN = "docker.io"

# Tag used when a reference carries neither tag nor digest
DEFAULT_TAG = "latest"

INIT_CONTAINERS = "initContainers"
CONTAINERS = "containers"
EPHEMERAL_CONTAINERS = "ephemeralContainers"

# Container lists searched under every pod spec, in extraction order
CONTAINER_LISTS: Tuple[str, ...] = (INIT_CONTAINERS, CONTAINERS, EPHEMERAL_CONTAINERS)

# Workload kind -> fields leading from the manifest root to its pod spec
KIND_PATH_PREFIXES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "Pod": ("spec",),
    "CronJob": ("spec", "jobTemplate", "spec", "template", "spec"),
    "Deployment": ("spec", "template", "spec"),
    "DaemonSet": ("spec", "template", "spec"),
    "Job": ("spec", "template", "spec"),
    "StatefulSet": ("spec", "template", "spec"),
})
