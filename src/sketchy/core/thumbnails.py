"""Thumbnail derivation for gallery display."""

from __future__ import annotations

import io

from PIL import Image, ImageOps, UnidentifiedImageError

from sketchy.core.errors import ImageProcessingError

THUMBNAIL_CONTENT_TYPE = "image/jpeg"


def derive_thumbnail(data: bytes, size: int = 300, quality: int = 80) -> bytes:
    """Produce a square JPEG thumbnail from encoded image bytes.

    The image is scaled to cover the ``size`` x ``size`` box and centre-cropped
    to fill it, never letterboxed.  Output is deterministic for identical
    input bytes.

    Args:
        data: Encoded source image (PNG, JPEG, WebP ...).
        size: Edge length of the thumbnail in pixels.
        quality: JPEG quality (1-95).

    Returns:
        JPEG-encoded thumbnail bytes.

    Raises:
        ImageProcessingError: If *data* cannot be decoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = source.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ImageProcessingError("Failed to create thumbnail", str(e)) from e

    thumb = ImageOps.fit(image, (size, size), method=Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    thumb.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
