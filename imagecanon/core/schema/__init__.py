"""
Core schema definitions for image references and patches.
"""

from imagecanon.core.schema.image import ContainerImage, ImageInventory, ImageReference
from imagecanon.core.schema.patch_dsl import PatchOp, to_json_patch

__all__ = [
    "ContainerImage",
    "ImageInventory",
    "ImageReference",
    "PatchOp",
    "to_json_patch",
]
