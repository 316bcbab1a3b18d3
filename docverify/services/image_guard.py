"""Reject unusable uploads before they reach the OCR engine."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from docverify.core.errors import ImageFormatError

logger = logging.getLogger(__name__)

MIN_IMAGE_BYTES = 100
_JPEG_SOI = b"\xff\xd8"
_JPEG_EOI = b"\xff\xd9"


def validate_image(image_bytes: bytes) -> str:
    """
    Check that ``image_bytes`` is a complete, decodable image.

    Returns the MIME type of the image. Raises :class:`ImageFormatError` for
    empty, tiny, truncated or unreadable payloads.
    """
    if not image_bytes:
        raise ImageFormatError("Empty image uploaded")
    if len(image_bytes) < MIN_IMAGE_BYTES:
        raise ImageFormatError("Image too small or empty")
    if image_bytes.startswith(_JPEG_SOI) and not image_bytes.rstrip(b"\x00").endswith(_JPEG_EOI):
        raise ImageFormatError("Corrupt or truncated JPEG image detected")

    try:
        with Image.open(io.BytesIO(image_bytes)) as probe:
            probe.verify()
        # verify() leaves the image unusable, so decode pixel data from a fresh handle.
        with Image.open(io.BytesIO(image_bytes)) as image:
            image.load()
            mime_type = Image.MIME.get(image.format or "", "application/octet-stream")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        logger.warning("Rejected undecodable image upload: %s", exc)
        raise ImageFormatError(f"Unreadable image: {exc}") from exc
    return mime_type


__all__ = ["MIN_IMAGE_BYTES", "validate_image"]
