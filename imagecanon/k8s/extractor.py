"""Image extraction from Kubernetes workload manifests.

Walks the pod spec of a workload (located through KIND_PATH_PREFIXES),
visits every entry of ``initContainers``, ``containers`` and
``ephemeralContainers`` and parses its ``image`` field.

Extraction is best-effort: a container whose image does not parse, or whose
entry is malformed, is left out of the inventory and its error is folded
into one ImageExtractionError returned next to the partial result.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Tuple

from imagecanon.core.errors import ContainerStructureError, ImageExtractionError, ImageParseError
from imagecanon.core.schema.image import ContainerImage, ImageInventory
from imagecanon.k8s.constants import (
    CONTAINER_LISTS,
    CONTAINERS,
    EPHEMERAL_CONTAINERS,
    INIT_CONTAINERS,
    KIND_PATH_PREFIXES,
)
from imagecanon.k8s.reference import parse_image_reference
from imagecanon.k8s.utils import nested_sequence, optional_string, required_string, to_json_pointer

logger = logging.getLogger(__name__)


def path_prefix_for(kind: str) -> Tuple[str, ...]:
    """Return the fields leading to the pod spec of ``kind``.

    Returns:
        Tuple of field names, empty when the kind is not a known workload
    """
    return KIND_PATH_PREFIXES.get(kind, ())


def collect(manifest: Any, kind: str) -> Tuple[ImageInventory, Optional[ImageExtractionError]]:
    """Collect the images of every container in a workload manifest.

    Args:
        manifest: Manifest tree (nested mappings and lists)
        kind: Workload kind selecting where the pod spec lives

    Returns:
        Tuple of (inventory, error). The inventory holds every container whose
        image parsed; error aggregates the failures and is None when there
        were none. Unknown kinds yield an empty inventory and no error.

    Example:
        >>> manifest = {"spec": {"containers": [{"name": "app", "image": "busybox"}]}}
        >>> inventory, err = collect(manifest, "Pod")
        >>> str(inventory.containers["app"])
        'docker.io/busybox:latest'
    """
    prefix = path_prefix_for(kind)
    if not prefix:
        logger.debug(f"Kind {kind!r} has no pod spec, skipping image extraction")
        return ImageInventory(), None

    errors: List[Exception] = []
    found = {
        list_name: _collect_list(manifest, prefix + (list_name,), errors)
        for list_name in CONTAINER_LISTS
    }

    inventory = ImageInventory.from_container_images(
        init_containers=found[INIT_CONTAINERS],
        containers=found[CONTAINERS],
        ephemeral_containers=found[EPHEMERAL_CONTAINERS],
    )
    if errors:
        return inventory, ImageExtractionError(errors)
    return inventory, None


def extract_images(manifest: Any) -> Tuple[ImageInventory, Optional[ImageExtractionError]]:
    """Collect images using the manifest's own ``kind`` and log any failures.

    Failures are advisory: they are logged at WARNING and returned, and the
    partial inventory is still usable.
    """
    kind = manifest.get("kind") if isinstance(manifest, Mapping) else None
    if not isinstance(kind, str):
        kind = ""

    inventory, error = collect(manifest, kind)
    if error is not None:
        logger.warning(f"Failed to extract image info from {kind or 'manifest'}: {error}")
    return inventory, error


def _collect_list(manifest: Any, fields: Tuple[str, ...], errors: List[Exception]) -> List[ContainerImage]:
    containers = nested_sequence(manifest, fields)
    if containers is None:
        return []

    images = []
    for index, container in enumerate(containers):
        location = fields + (index,)
        if not isinstance(container, Mapping):
            logger.debug(f"Ignoring non-object entry at {to_json_pointer(location)}")
            continue
        try:
            images.append(_container_image(container, location))
        except (ImageParseError, ContainerStructureError) as e:
            logger.debug(f"Container at {to_json_pointer(location)} skipped: {e}")
            errors.append(e)
    return images


def _container_image(container: Mapping, location: Tuple) -> ContainerImage:
    pointer = to_json_pointer(location)
    name = required_string(container, "name", pointer)
    image = optional_string(container, "image", pointer)
    reference = parse_image_reference(image, json_pointer=f"{pointer}/image")
    return ContainerImage(name=name, image=reference)
