"""Shared helpers for navigating untyped manifest trees.

Manifests arrive as plain nested mappings and sequences (from JSON or
ruamel.yaml). These accessors never assume a shape: a missing optional
value yields None or a default, and a missing or mistyped required value
raises ContainerStructureError naming the field and its document pointer.
"""

from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Union

from imagecanon.core.errors import ContainerStructureError


def to_json_pointer(parts: Iterable[Union[str, int]]) -> str:
    """Join path parts into a document pointer.

    Example:
        >>> to_json_pointer(["spec", "containers", 0, "image"])
        '/spec/containers/0/image'
    """
    escaped = (str(p).replace("~", "~0").replace("/", "~1") for p in parts)
    return "/" + "/".join(escaped)


def nested_sequence(obj: Any, fields: Iterable[str]) -> Optional[List[Any]]:
    """Resolve a chain of mapping keys and return the list found there.

    Args:
        obj: Manifest tree
        fields: Keys to follow from the root

    Returns:
        The list at the end of the chain, or None when any step is missing
        or the value found is not a list
    """
    current = obj
    for key in fields:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current if isinstance(current, list) else None


def required_string(mapping: Mapping, key: str, pointer: str) -> str:
    """Read a required string field.

    Args:
        mapping: Object holding the field
        key: Field name
        pointer: Document pointer of ``mapping``, used in error messages

    Raises:
        ContainerStructureError: If the field is absent or not a string
    """
    field_pointer = f"{pointer}/{key}"
    if key not in mapping:
        raise ContainerStructureError(
            f"missing required field '{key}' at {field_pointer}", field_pointer, key
        )
    value = mapping[key]
    if not isinstance(value, str):
        raise ContainerStructureError(
            f"field '{key}' at {field_pointer} must be a string, got {type(value).__name__}",
            field_pointer,
            key,
        )
    return value


def optional_string(mapping: Mapping, key: str, pointer: str, default: str = "") -> str:
    """Read an optional string field, returning ``default`` when absent.

    Raises:
        ContainerStructureError: If the field is present but not a string
    """
    if key not in mapping:
        return default
    return required_string(mapping, key, pointer)
