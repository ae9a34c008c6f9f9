"""Image patches for Kubernetes manifests.

Turns an ImageInventory into RFC-6902 ``replace`` operations that set every
image field to its canonical string, and applies them with jsonpatch.
Application never mutates its input: on failure the caller keeps the
original document.
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Tuple

import jsonpatch
import jsonpointer

from imagecanon.core.errors import ImageExtractionError, PatchApplyError
from imagecanon.core.schema.image import ImageInventory
from imagecanon.core.schema.patch_dsl import PatchOp, to_json_patch
from imagecanon.k8s.extractor import extract_images

logger = logging.getLogger(__name__)


def build_patches(inventory: ImageInventory) -> List[PatchOp]:
    """Build one ``replace`` operation per image in the inventory.

    Args:
        inventory: Images with their document pointers

    Returns:
        List of PatchOp, empty when the inventory holds no images. Every
        operation targets a distinct pointer, so order is not significant.

    Raises:
        PatchApplyError: If an image carries no document pointer; an empty
            pointer would replace the whole document

    Example:
        >>> ops = build_patches(inventory)
        >>> ops[0].to_serializable()
        {'op': 'replace', 'path': '/spec/containers/0/image', 'value': 'docker.io/busybox:latest'}
    """
    ops = []
    for image in inventory.all_images():
        if not image.json_pointer:
            raise PatchApplyError(f"Image {image} has no document location to patch")
        ops.append(PatchOp(op="replace", path=image.json_pointer, value=str(image)))
    return ops


def apply_patches_to_document(document: Any, ops: Sequence[PatchOp]) -> Any:
    """Apply patch operations to a loaded document tree.

    Args:
        document: Decoded document (dicts/lists, including ruamel.yaml types)
        ops: Operations to apply

    Returns:
        A patched copy of ``document``, or ``document`` itself when there are
        no operations

    Raises:
        PatchApplyError: If any operation targets a missing path or an
            incompatible value
    """
    if not ops:
        return document
    try:
        return jsonpatch.apply_patch(document, to_json_patch(ops), in_place=False)
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as e:
        raise PatchApplyError(f"Failed to apply image patches: {e}") from e


def apply_patches(raw: bytes, ops: Sequence[PatchOp]) -> bytes:
    """Apply patch operations to a JSON document given as bytes.

    Returns:
        Patched JSON bytes, or ``raw`` unchanged when there are no operations

    Raises:
        PatchApplyError: If the document cannot be decoded or patched
    """
    if not ops:
        return raw
    try:
        document = json.loads(raw)
    except ValueError as e:
        raise PatchApplyError(f"Failed to decode document: {e}") from e

    patched = apply_patches_to_document(document, ops)
    return json.dumps(patched, separators=(",", ":")).encode("utf-8")


def mutate_resource_with_image_info(raw: bytes, inventory: Optional[ImageInventory]) -> bytes:
    """Set every image in a JSON resource to its canonical form.

    Images become comparable in a predictable manner: the registry defaults
    to ``docker.io`` and the tag to ``latest`` when missing.

    Args:
        raw: JSON resource
        inventory: Images previously extracted from the same resource

    Returns:
        Mutated resource bytes; ``raw`` unchanged when there is nothing to do

    Raises:
        PatchApplyError: If patching fails; no partial result is produced
    """
    if inventory is None or inventory.is_empty():
        return raw
    ops = build_patches(inventory)
    logger.debug(f"Applying {len(ops)} image patch(es)")
    return apply_patches(raw, ops)


def canonicalize_manifest(manifest: Any) -> Tuple[Any, ImageInventory, Optional[ImageExtractionError]]:
    """Extract images from a manifest tree and rewrite them in canonical form.

    Returns:
        Tuple of (patched manifest, inventory, extraction error). Containers
        whose image failed to parse keep their original value.

    Raises:
        PatchApplyError: If the derived patches cannot be applied
    """
    inventory, error = extract_images(manifest)
    patched = apply_patches_to_document(manifest, build_patches(inventory))
    return patched, inventory, error
