"""
Image decoding helpers: HEIC conversion and dimension extraction.
"""

import io
import logging
import posixpath
from dataclasses import dataclass
from typing import Optional

from PIL import Image
from pillow_heif import register_heif_opener

from .constants import HEIC_FORMATS

register_heif_opener()

ORIENTATION_TAG = 0x0112

# EXIF orientations that rotate the image by 90 degrees
TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}


@dataclass
class ImageMetadata:
    """Dimensions (after orientation) and format of a decoded image."""
    width: int
    height: int
    format: str


def convert_heic_to_jpeg(data: bytes, logger: Optional[logging.Logger] = None) -> bytes:
    """
    Convert HEIC/HEIF bytes to JPEG.

    The JPEG carries no EXIF; callers read metadata from the original bytes.

    Raises:
        Exception: If the data cannot be decoded
    """
    log = logger or logging.getLogger(__name__)
    log.info(f"Converting HEIC/HEIF to JPEG ({len(data) / 1024:.0f}KB)")

    with Image.open(io.BytesIO(data)) as img:
        rgb = img.convert('RGB')
        output = io.BytesIO()
        rgb.save(output, format='JPEG', quality=95)

    return output.getvalue()


def preprocess_image_buffer(
    data: bytes,
    key: str,
    logger: Optional[logging.Logger] = None
) -> bytes:
    """
    Prepare raw object bytes for processing.

    Args:
        data: Raw bytes from storage
        key: Storage key (its extension selects the conversion)
        logger: Optional logger instance

    Returns:
        JPEG bytes for HEIC/HEIF input, the original bytes otherwise
    """
    ext = posixpath.splitext(key)[1].lower()
    if ext in HEIC_FORMATS:
        return convert_heic_to_jpeg(data, logger)
    return data


def get_image_metadata(
    data: bytes,
    logger: Optional[logging.Logger] = None
) -> Optional[ImageMetadata]:
    """
    Read width, height and format from image bytes.

    Width and height are swapped for orientations that rotate by 90 degrees,
    so they describe the image as displayed.

    Returns:
        ImageMetadata, or None if the image cannot be decoded
    """
    log = logger or logging.getLogger(__name__)

    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            image_format = img.format
            orientation = img.getexif().get(ORIENTATION_TAG)
    except Exception as e:
        log.error(f"Failed to read image metadata: {e}")
        return None

    if not width or not height or not image_format:
        log.error("Incomplete image metadata")
        return None

    if orientation in TRANSPOSED_ORIENTATIONS:
        width, height = height, width
        log.info(f"Orientation {orientation} rotates the image, using {width}x{height}")

    return ImageMetadata(width=width, height=height, format=image_format.lower())
