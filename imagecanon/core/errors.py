"""Exceptions raised while extracting and canonicalizing images."""

from typing import Any, List, Optional


class ImageParseError(Exception):
    """Raised when an image string violates the reference grammar.

    Scoped to a single container. The collector folds it into an
    ImageExtractionError instead of aborting the whole manifest.

    Attributes:
        image: The (domain-defaulted) image string that failed to parse
        reason: Short description of the grammar violation
    """

    def __init__(self, image: str, reason: str) -> None:
        super().__init__(f"bad image: {image}: {reason}")
        self.image = image
        self.reason = reason


class ContainerStructureError(Exception):
    """Raised when a container entry is missing a required field or has a
    field of the wrong type (e.g. no ``name``, or a non-string ``image``).

    Attributes:
        pointer: Document pointer of the offending field
        field: Field name that failed the check
    """

    def __init__(self, message: str, pointer: str, field: str) -> None:
        super().__init__(message)
        self.pointer = pointer
        self.field = field


class ImageExtractionError(Exception):
    """Aggregate of the per-container failures seen during one extraction.

    The message is the individual messages joined with ``;``. Extraction is
    advisory, so this is returned next to the partial inventory rather than
    raised by the collector.

    Attributes:
        errors: The individual ImageParseError / ContainerStructureError
    """

    def __init__(self, errors: List[Exception]) -> None:
        super().__init__(";".join(str(e) for e in errors))
        self.errors = list(errors)


class PatchApplyError(Exception):
    """Raised when applying image patches to a document fails.

    Covers undecodable documents, operations targeting a missing path and
    type-incompatible targets. Application is all-or-nothing: when this is
    raised the caller still holds the original, unmodified document.

    Attributes:
        message: Description of the failure
        patch_op: The PatchOp that failed (optional)
    """

    def __init__(self, message: str, patch_op: Optional[Any] = None) -> None:
        super().__init__(message)
        self.patch_op = patch_op
