"""Container image reference grammar.

Parses image strings the way container runtimes do::

    reference := name [ ":" tag ] [ "@" digest ]
    name      := [ domain "/" ] path-component [ "/" path-component ]*
    domain    := domain-component [ "." domain-component ]* [ ":" port ]
    digest    := algorithm ":" hex

Before parsing, references whose first segment does not look like a
registry host get ``docker.io/`` prefixed, and references with neither tag
nor digest get the ``latest`` tag.
"""

import re
from typing import NamedTuple

from imagecanon.core.errors import ImageParseError
from imagecanon.core.schema.image import ImageReference
from imagecanon.k8s.constants import DEFAULT_DOMAIN, DEFAULT_TAG

NAME_TOTAL_LENGTH_MAX = 255

_ALPHA_NUMERIC = r"[a-z0-9]+"
# Same language as (?:[._]|__|[-]*)
_SEPARATOR = r"(?:[._]|__|-+)"
_PATH_COMPONENT = _ALPHA_NUMERIC + r"(?:" + _SEPARATOR + _ALPHA_NUMERIC + r")*"
_PATH = _PATH_COMPONENT + r"(?:/" + _PATH_COMPONENT + r")*"
_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN = _DOMAIN_COMPONENT + r"(?:\." + _DOMAIN_COMPONENT + r")*(?::[0-9]+)?"
_TAG = r"\w[\w.-]{0,127}"
_DIGEST = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"

REFERENCE_RE = re.compile(
    r"^((?:" + _DOMAIN + r"/)?" + _PATH + r")(?::(" + _TAG + r"))?(?:@(" + _DIGEST + r"))?\Z",
    re.ASCII,
)
_ANCHORED_NAME_RE = re.compile(r"^(?:(" + _DOMAIN + r")/)?(" + _PATH + r")\Z", re.ASCII)
_ANCHORED_DIGEST_RE = re.compile(r"^" + _DIGEST + r"\Z", re.ASCII)

# Available digest algorithms and the hex length of their encoded form
DIGEST_HEX_LENGTHS = {
    "sha256": 64,
    "sha384": 96,
    "sha512": 128,
}
_ENCODED_RE = re.compile(r"^[a-f0-9]+\Z")


class ParsedReference(NamedTuple):
    """Raw components of a reference as written, before tag defaulting."""

    domain: str
    path: str
    tag: str
    digest: str


def add_default_domain(image: str) -> str:
    """Prefix ``docker.io/`` unless the first segment already names a registry.

    The first segment is taken as a registry when it contains ``.`` or ``:``,
    is ``localhost``, or contains upper-case letters.

    Example:
        >>> add_default_domain("busybox")
        'docker.io/busybox'
        >>> add_default_domain("ghcr.io/org/app")
        'ghcr.io/org/app'
    """
    i = image.find("/")
    if i == -1:
        return f"{DEFAULT_DOMAIN}/{image}"
    head = image[:i]
    if "." not in head and ":" not in head and head != "localhost" and head.lower() == head:
        return f"{DEFAULT_DOMAIN}/{image}"
    return image


def parse_reference(reference: str) -> ParsedReference:
    """Split a reference into domain, path, tag and digest.

    No defaulting happens here: a reference without a domain yields an empty
    domain, and one without a tag an empty tag.

    Raises:
        ImageParseError: If the reference violates the grammar
    """
    match = REFERENCE_RE.match(reference)
    if match is None:
        if not reference:
            raise ImageParseError(reference, "repository name must have at least one component")
        if REFERENCE_RE.match(reference.lower()) is not None:
            raise ImageParseError(reference, "repository name must be lowercase")
        raise ImageParseError(reference, "invalid reference format")

    name, tag, digest = match.group(1), match.group(2) or "", match.group(3) or ""
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise ImageParseError(
            reference, f"repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )

    name_match = _ANCHORED_NAME_RE.match(name)
    if name_match is None:
        raise ImageParseError(reference, "invalid reference format")

    if digest:
        _validate_digest(reference, digest)

    return ParsedReference(
        domain=name_match.group(1) or "",
        path=name_match.group(2),
        tag=tag,
        digest=digest,
    )


def _validate_digest(reference: str, digest: str) -> None:
    algorithm, _, encoded = digest.partition(":")
    expected = DIGEST_HEX_LENGTHS.get(algorithm)
    if expected is None:
        if _ANCHORED_DIGEST_RE.match(digest) is None:
            raise ImageParseError(reference, "invalid checksum digest format")
        raise ImageParseError(reference, "unsupported digest algorithm")
    if len(encoded) != expected:
        raise ImageParseError(reference, "invalid checksum digest length")
    if _ENCODED_RE.match(encoded) is None:
        raise ImageParseError(reference, "invalid checksum digest format")


def parse_image_reference(image: str, json_pointer: str = "") -> ImageReference:
    """Parse an image string into a canonicalized ImageReference.

    Applies the default domain, parses, and defaults the tag to ``latest``
    when neither tag nor digest is present.

    Args:
        image: Image string as written in the manifest
        json_pointer: Location of the image field, stored on the result

    Returns:
        ImageReference with a non-empty registry

    Raises:
        ImageParseError: If the image string is not a valid reference

    Example:
        >>> ref = parse_image_reference("myregistry.io:5000/ns/app:v2")
        >>> ref.registry, ref.path, ref.name, ref.tag
        ('myregistry.io:5000', 'ns/app', 'app', 'v2')
    """
    parsed = parse_reference(add_default_domain(image))
    tag = parsed.tag
    if not tag and not parsed.digest:
        tag = DEFAULT_TAG
    return ImageReference(
        registry=parsed.domain,
        name=parsed.path.rsplit("/", 1)[-1],
        path=parsed.path,
        tag=tag,
        digest=parsed.digest,
        json_pointer=json_pointer,
    )
