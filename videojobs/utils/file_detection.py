"""
Image type detection and caller-side upload checks.

The coordinator itself accepts bytes as given; these helpers are used by
callers (the CLI) before a job is submitted.

Magic bytes reference:
- JPEG: 0xFFD8FF
- PNG:  0x89504E47 (89 P N G)
- GIF:  GIF87a / GIF89a
- WEBP: RIFF....WEBP
"""

import mimetypes
from pathlib import Path
from typing import Final

from videojobs.core.exceptions import PayloadTooLargeError, ValidationError

MAGIC_BYTES_MAP: Final[dict[bytes, str]] = {
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG": "image/png",
    b"GIF87a": "image/gif",
    b"GIF89a": "image/gif",
}


def detect_image_type_from_bytes(header: bytes) -> str | None:
    """
    Detect image MIME type from magic bytes header.

    Args:
        header: First 12+ bytes of file

    Returns:
        MIME type or None if unrecognized

    Example:
        >>> detect_image_type_from_bytes(b'\\x89PNG\\r\\n\\x1a\\n')
        'image/png'
    """
    for signature, mime_type in MAGIC_BYTES_MAP.items():
        if header.startswith(signature):
            return mime_type
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    return None


def guess_mime_type(path: Path, header: bytes) -> str | None:
    return detect_image_type_from_bytes(header) or mimetypes.guess_type(path.name)[0]


def validate_image(data: bytes, mime_type: str | None, max_size_mb: int) -> str:
    """
    Check that the bytes look like an uploadable image.

    Returns:
        The MIME type to submit.

    Raises:
        ValidationError: Not an image, or empty
        PayloadTooLargeError: Larger than ``max_size_mb``
    """
    if not mime_type or not mime_type.startswith("image/"):
        raise ValidationError(
            message=f"Only image files are accepted, got {mime_type or 'unknown type'}",
            field="file",
            details={"mime_type": mime_type},
        )

    if len(data) == 0:
        raise ValidationError(
            message="File is empty (0 bytes)",
            field="file",
            details={"file_size": 0},
        )

    if len(data) > max_size_mb * 1024 * 1024:
        raise PayloadTooLargeError(
            max_size_mb=max_size_mb,
            actual_size_mb=len(data) / (1024 * 1024),
        )

    return mime_type


def load_image(path: Path, max_size_mb: int) -> tuple[bytes, str]:
    """Read and validate an image file, returning its bytes and MIME type."""
    data = path.read_bytes()
    mime_type = guess_mime_type(path, data[:12])
    return data, validate_image(data, mime_type, max_size_mb)
