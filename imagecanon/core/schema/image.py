"""Image reference and inventory models.

An ImageReference is the structured form of one image string found in a
manifest. An ImageInventory groups the references of one manifest by the
container list they came from and is what policy conditions read.

JSON Transport Format
---------------------

Example::

    {
      "containers": {
        "app": {
          "registry": "docker.io",
          "name": "busybox",
          "path": "busybox",
          "tag": "latest",
          "jsonPath": "/spec/containers/0/image"
        }
      },
      "ephemeralContainers": {}
    }

``initContainers`` is omitted when empty; inside an entry ``registry``,
``tag``, ``digest`` and ``jsonPath`` are omitted when empty.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class ImageReference:
    """Structured, canonicalized image reference.

    Attributes:
        registry: Registry address, e.g. ``docker.io`` or ``myregistry.io:5000``
        name: Last path segment, e.g. ``busybox``
        path: Repository path, e.g. ``some-repository/busybox``
        tag: Image tag, e.g. ``v2``. ``latest`` when neither tag nor digest
             was given, empty when only a digest was given
        digest: Content digest, e.g. ``sha256:128c...``, or empty
        json_pointer: Location of the source image field,
                      e.g. ``/spec/containers/0/image``
    """

    registry: str
    name: str
    path: str
    tag: str = ""
    digest: str = ""
    json_pointer: str = ""

    def __str__(self) -> str:
        # digest wins over tag when both are present
        if self.digest:
            return f"{self.registry}/{self.path}@{self.digest}"
        return f"{self.registry}/{self.path}:{self.tag}"

    def to_string(self, keep_tag: bool = False) -> str:
        """Render the reference, optionally keeping the tag next to a digest.

        Args:
            keep_tag: When True and both tag and digest are set, render
                      ``registry/path:tag@digest`` instead of dropping the tag

        Returns:
            Image reference string
        """
        if keep_tag and self.tag and self.digest:
            return f"{self.registry}/{self.path}:{self.tag}@{self.digest}"
        return str(self)

    def to_serializable(self) -> Dict[str, str]:
        """Convert to the JSON shape consumed by policy conditions."""
        result: Dict[str, str] = {}
        if self.registry:
            result["registry"] = self.registry
        result["name"] = self.name
        result["path"] = self.path
        if self.tag:
            result["tag"] = self.tag
        if self.digest:
            result["digest"] = self.digest
        if self.json_pointer:
            result["jsonPath"] = self.json_pointer
        return result


@dataclass(frozen=True)
class ContainerImage:
    """An image reference paired with the name of the container using it."""

    name: str
    image: ImageReference


@dataclass(frozen=True)
class ImageInventory:
    """Images of one manifest, keyed by container name per container list.

    Built fresh for every extraction and not modified afterwards.

    Attributes:
        init_containers: Images of ``initContainers``
        containers: Images of ``containers``
        ephemeral_containers: Images of ``ephemeralContainers``
    """

    init_containers: Dict[str, ImageReference] = field(default_factory=dict)
    containers: Dict[str, ImageReference] = field(default_factory=dict)
    ephemeral_containers: Dict[str, ImageReference] = field(default_factory=dict)

    @classmethod
    def from_container_images(
        cls,
        init_containers: Iterable[ContainerImage] = (),
        containers: Iterable[ContainerImage] = (),
        ephemeral_containers: Iterable[ContainerImage] = (),
    ) -> "ImageInventory":
        """Group container images by name. A repeated name keeps the last entry."""
        return cls(
            init_containers={c.name: c.image for c in init_containers},
            containers={c.name: c.image for c in containers},
            ephemeral_containers={c.name: c.image for c in ephemeral_containers},
        )

    def all_images(self) -> List[ImageReference]:
        """Return every image reference across the three container lists."""
        return [
            *self.init_containers.values(),
            *self.containers.values(),
            *self.ephemeral_containers.values(),
        ]

    def is_empty(self) -> bool:
        return not (self.init_containers or self.containers or self.ephemeral_containers)

    def to_serializable(self) -> Dict[str, Any]:
        """Convert inventory to JSON-serializable format."""
        result: Dict[str, Any] = {}
        if self.init_containers:
            result["initContainers"] = _serialize_group(self.init_containers)
        result["containers"] = _serialize_group(self.containers)
        result["ephemeralContainers"] = _serialize_group(self.ephemeral_containers)
        return result


def _serialize_group(group: Dict[str, ImageReference]) -> Dict[str, Dict[str, str]]:
    return {name: image.to_serializable() for name, image in group.items()}
