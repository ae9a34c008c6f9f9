"""K8s manifest files.

This module provides the K8sArtifact class that holds one or more Kubernetes
YAML files and runs image extraction and canonicalization over every
document they contain.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ruamel.yaml import YAML

from imagecanon.core.errors import ImageExtractionError
from imagecanon.core.schema.image import ImageInventory
from imagecanon.k8s.extractor import extract_images
from imagecanon.k8s.patch_dsl import canonicalize_manifest


def _create_yaml_instance() -> YAML:
    """Create configured ruamel.yaml instance for K8s manifest editing.

    Returns:
        YAML instance configured to:
        - Preserve quotes and formatting
        - Not wrap long strings (prevents image field splitting)
        - Use block style (not flow style)
    """
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096  # Very wide to prevent wrapping long registry paths
    yaml.default_flow_style = False
    yaml.allow_unicode = True
    return yaml


@dataclass(frozen=True)
class DocumentImages:
    """Extraction result for one YAML document.

    Attributes:
        file: File the document came from
        index: Position of the document within the file (0-based)
        kind: Workload kind, empty if the document has none
        name: ``metadata.name``, empty if absent
        inventory: Images found in the document
        error: Aggregated extraction failures, None if there were none
    """

    file: str
    index: int
    kind: str
    name: str
    inventory: ImageInventory
    error: Optional[ImageExtractionError] = None

    def to_serializable(self) -> Dict[str, Any]:
        result = {
            "file": self.file,
            "document": self.index,
            "kind": self.kind,
            "name": self.name,
            "images": self.inventory.to_serializable(),
        }
        if self.error is not None:
            result["errors"] = [str(e) for e in self.error.errors]
        return result


@dataclass(frozen=True)
class K8sArtifact:
    """Kubernetes manifest files.

    Attributes:
        files: Mapping from file path to YAML content as string. A file may
               hold several ``---``-separated documents.
               Example: ``{"deployment.yaml": "apiVersion: apps/v1\\n..."}``
    """
    files: Dict[str, str]

    def to_serializable(self) -> Dict:
        """Return dict representation suitable for JSON serialization."""
        return {"files": self.files}

    def documents(self) -> Iterator[Tuple[str, int, Any]]:
        """Yield ``(file, index, manifest)`` for every non-empty document."""
        yaml = _create_yaml_instance()
        for filepath, content in self.files.items():
            for index, manifest in enumerate(yaml.load_all(content)):
                if manifest is not None:
                    yield filepath, index, manifest

    def extract_images(self) -> List[DocumentImages]:
        """Extract images from every document without modifying anything."""
        results = []
        for filepath, index, manifest in self.documents():
            inventory, error = extract_images(manifest)
            results.append(_document_images(filepath, index, manifest, inventory, error))
        return results

    def canonicalize_images(self) -> Tuple["K8sArtifact", List[DocumentImages]]:
        """Rewrite every image field with its canonical string.

        Files without any image to rewrite are kept byte-for-byte; the rest
        are re-dumped with ruamel.yaml so comments and layout survive.

        Returns:
            Tuple of (new artifact, per-document extraction results)

        Raises:
            PatchApplyError: If patches for a document cannot be applied
        """
        yaml = _create_yaml_instance()
        result_files = dict(self.files)
        results: List[DocumentImages] = []

        for filepath, content in self.files.items():
            documents = list(yaml.load_all(content))
            patched_documents = []
            changed = False

            for index, manifest in enumerate(documents):
                if manifest is None:
                    continue
                patched, inventory, error = canonicalize_manifest(manifest)
                results.append(_document_images(filepath, index, manifest, inventory, error))
                changed = changed or patched is not manifest
                patched_documents.append(patched)

            if changed:
                stream = StringIO()
                yaml.dump_all(patched_documents, stream)
                result_files[filepath] = stream.getvalue()

        return K8sArtifact(files=result_files), results

    def write_to_dir(self, dir_path: str, output_filename: Optional[str] = None) -> None:
        """Write YAML files to a directory.

        Args:
            dir_path: Directory path where files should be written
            output_filename: Optional filename to use for the first file. If
                            None, original filenames are preserved
        """
        dir_path_obj = Path(dir_path)
        dir_path_obj.mkdir(parents=True, exist_ok=True)

        for i, (rel_path, content) in enumerate(self.files.items()):
            if i == 0 and output_filename is not None:
                file_path = dir_path_obj / output_filename
            else:
                file_path = dir_path_obj / rel_path

            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")

    @classmethod
    def from_file(cls, file_path: str) -> "K8sArtifact":
        """Load K8sArtifact from a YAML file.

        Example:
            >>> artifact = K8sArtifact.from_file("deployment.yaml")
        """
        path = Path(file_path)
        content = path.read_text(encoding="utf-8")
        return cls(files={path.name: content})

    @classmethod
    def from_dir(cls, dir_path: str, pattern: str = "*.yaml") -> "K8sArtifact":
        """Load K8sArtifact from directory with YAML files.

        Args:
            dir_path: Directory containing YAML files
            pattern: Glob pattern for files to include (default: ``*.yaml``)
        """
        dir_path_obj = Path(dir_path)
        files = {}

        for file_path in sorted(dir_path_obj.glob(pattern)):
            if file_path.is_file():
                rel_path = file_path.relative_to(dir_path_obj)
                files[str(rel_path)] = file_path.read_text(encoding="utf-8")

        return cls(files=files)


def _document_images(
    filepath: str,
    index: int,
    manifest: Any,
    inventory: ImageInventory,
    error: Optional[ImageExtractionError],
) -> DocumentImages:
    kind = manifest.get("kind", "") if isinstance(manifest, Mapping) else ""
    metadata = manifest.get("metadata") if isinstance(manifest, Mapping) else None
    name = metadata.get("name", "") if isinstance(metadata, Mapping) else ""
    return DocumentImages(
        file=filepath,
        index=index,
        kind=kind if isinstance(kind, str) else "",
        name=name if isinstance(name, str) else "",
        inventory=inventory,
        error=error,
    )
