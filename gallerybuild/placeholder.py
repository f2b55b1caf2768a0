"""
Blurhash placeholder generation.
"""

import io
import logging
from typing import Optional, Tuple

import blurhash
from PIL import Image, ImageOps

BASE_SIZE = 64
MIN_SIZE = 16


def blurhash_dimensions(width: int, height: int) -> Tuple[int, int]:
    """Sampling size that keeps the original aspect ratio."""
    aspect_ratio = width / height
    if aspect_ratio >= 1:
        target_width = BASE_SIZE
        target_height = round(BASE_SIZE / aspect_ratio)
    else:
        target_height = BASE_SIZE
        target_width = round(BASE_SIZE * aspect_ratio)
    return max(target_width, MIN_SIZE), max(target_height, MIN_SIZE)


def blurhash_components(target_width: int, target_height: int) -> Tuple[int, int]:
    """Number of x/y components, between 3 and 9."""
    x_components = min(max(round(target_width / 16), 3), 9)
    y_components = min(max(round(target_height / 16), 3), 9)
    return x_components, y_components


def generate_blurhash(
    thumbnail_data: bytes,
    original_width: int,
    original_height: int,
    logger: Optional[logging.Logger] = None
) -> Optional[str]:
    """
    Compute a blurhash from thumbnail bytes.

    Args:
        thumbnail_data: Encoded thumbnail (the same pixels shown as preview)
        original_width: Width of the original image
        original_height: Height of the original image
        logger: Optional logger instance

    Returns:
        Blurhash string, or None on failure
    """
    log = logger or logging.getLogger(__name__)

    try:
        target_width, target_height = blurhash_dimensions(original_width, original_height)
        x_components, y_components = blurhash_components(target_width, target_height)

        log.debug(
            f"Blurhash from {original_width}x{original_height}: sampling "
            f"{target_width}x{target_height}, components {x_components}x{y_components}"
        )

        with Image.open(io.BytesIO(thumbnail_data)) as img:
            sample = ImageOps.exif_transpose(img)
            sample = sample.convert('RGB').resize((target_width, target_height), Image.Resampling.BILINEAR)

        result = blurhash.encode(sample, x_components=x_components, y_components=y_components)
        log.debug(f"Blurhash generated: {result}")
        return result

    except Exception as e:
        log.error(f"Blurhash generation failed: {e}")
        return None
