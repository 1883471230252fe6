"""Image upload validation.

Uploaded files are checked three ways before they reach an image host:
declared MIME type, size, and the magic bytes at the start of the content.
A file whose bytes do not look like an allowed image is rejected even if the
browser labelled it ``image/png``.
"""

from typing import NamedTuple

from src.core.errors import ValidationError


DETECTION_WINDOW = 64
WEBP_HEADER_LENGTH = 12


class MagicSignature(NamedTuple):
    """Byte pattern identifying a file type."""

    pattern: bytes
    mime_type: str
    offset: int = 0


# Reference: https://en.wikipedia.org/wiki/List_of_file_signatures
IMAGE_SIGNATURES: tuple[MagicSignature, ...] = (
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
    MagicSignature(b"ftypavif", "image/avif", offset=4),
)


def detect_image_type(data: bytes) -> str | None:
    """Detect an image MIME type from leading bytes, or None if unknown."""
    head = data[:DETECTION_WINDOW]

    # WebP is RIFF....WEBP; RIFF alone is also WAV/AVI
    if (
        len(head) >= WEBP_HEADER_LENGTH
        and head[:4] == b"RIFF"
        and head[8:12] == b"WEBP"
    ):
        return "image/webp"

    for sig in IMAGE_SIGNATURES:
        end = sig.offset + len(sig.pattern)
        if len(head) >= end and head[sig.offset : end] == sig.pattern:
            return sig.mime_type

    return None


def validate_image(
    content: bytes,
    declared_type: str | None,
    *,
    max_bytes: int,
    allowed_types: list[str] | frozenset[str],
) -> str:
    """Validate an uploaded image and return its detected MIME type.

    Raises:
        ValidationError: Empty, too large, wrong declared type, or content
            that is not one of ``allowed_types``.
    """
    if not content:
        raise ValidationError("Uploaded file is empty")

    if len(content) > max_bytes:
        raise ValidationError(
            f"File size ({len(content) / 1024 / 1024:.2f} MB) exceeds "
            f"maximum allowed ({max_bytes / 1024 / 1024:.2f} MB)"
        )

    declared = (declared_type or "").split(";")[0].strip().lower()
    if declared and not declared.startswith("image/"):
        raise ValidationError(f"Content type '{declared}' is not an image")

    detected = detect_image_type(content)
    if detected is None:
        raise ValidationError("Unable to detect image type from file content")
    if detected not in allowed_types:
        raise ValidationError(
            f"File type '{detected}' is not allowed. "
            f"Allowed: {', '.join(sorted(allowed_types))}"
        )

    return detected
