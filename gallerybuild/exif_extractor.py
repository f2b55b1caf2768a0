"""
EXIF extraction and sanitizing.

Metadata is grouped the way gallery front-ends expect it: `Image` (IFD0),
`Photo` (the EXIF sub-IFD) and `GPSInfo`, keyed by tag name.
"""

import io
import logging
import math
from typing import Any, Dict, Optional

from PIL import ExifTags, Image, TiffImagePlugin

from .fuji_recipe import decode_fuji_recipe

DATE_FIELDS = {
    'DateTimeOriginal',
    'DateTime',
    'DateTimeDigitized',
    'CreateDate',
    'ModifyDate',
}

# Tags in IFD0 that only point at other IFDs
POINTER_TAGS = {tag.value for tag in ExifTags.IFD}

STRIPPED_PHOTO_FIELDS = ('MakerNote', 'UserComment', 'PrintImageMatching')
STRIPPED_IMAGE_FIELDS = ('PrintImageMatching',)


def _to_json_value(value: Any) -> Any:
    """Convert Pillow EXIF values to JSON-serializable values."""
    if isinstance(value, TiffImagePlugin.IFDRational):
        result = float(value)
        return None if math.isnan(result) or math.isinf(result) else result
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(value, bytes):
        text = value.decode('ascii', errors='ignore')
        return text if text.isprintable() else None
    if isinstance(value, (tuple, list)):
        return [_to_json_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    return value


def clean_exif_data(data: Any) -> Any:
    """
    Remove noise from extracted EXIF.

    Strips NUL characters from strings (and surrounding whitespace, except
    for date fields), drops None values, empty strings and nested mappings
    that end up empty.
    """
    if isinstance(data, list):
        return [clean_exif_data(item) for item in data]
    if not isinstance(data, dict):
        return data

    cleaned: Dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue

        if isinstance(value, str):
            text = value.replace('\0', '')
            if key not in DATE_FIELDS:
                text = text.strip()
            if text:
                cleaned[key] = text
        elif isinstance(value, dict):
            nested = clean_exif_data(value)
            if nested:
                cleaned[key] = nested
        else:
            cleaned[key] = clean_exif_data(value)

    return cleaned


def _read_exif(data: bytes) -> Optional[Image.Exif]:
    with Image.open(io.BytesIO(data)) as img:
        exif = img.getexif()
    return exif if len(exif) > 0 else None


def _group_exif(exif: Image.Exif) -> Dict[str, Dict[str, Any]]:
    """Split Pillow EXIF into named sections."""
    image_section = {
        ExifTags.TAGS.get(tag, str(tag)): value
        for tag, value in exif.items()
        if tag not in POINTER_TAGS
    }
    photo_section = {
        ExifTags.TAGS.get(tag, str(tag)): value
        for tag, value in exif.get_ifd(ExifTags.IFD.Exif).items()
    }
    gps_section = {
        ExifTags.GPSTAGS.get(tag, str(tag)): value
        for tag, value in exif.get_ifd(ExifTags.IFD.GPSInfo).items()
    }
    return {'Image': image_section, 'Photo': photo_section, 'GPSInfo': gps_section}


def extract_exif_data(
    image_data: bytes,
    original_data: Optional[bytes] = None,
    logger: Optional[logging.Logger] = None
) -> Optional[Dict[str, Any]]:
    """
    Extract sanitized EXIF metadata.

    Args:
        image_data: Processed image bytes (e.g. JPEG converted from HEIC)
        original_data: Original bytes, tried when the processed bytes carry
            no EXIF
        logger: Optional logger instance

    Returns:
        EXIF sections, or None when there is no EXIF or it cannot be read
    """
    log = logger or logging.getLogger(__name__)

    try:
        exif = _read_exif(image_data)

        if exif is None and original_data is not None:
            log.info("Processed image has no EXIF, trying the original")
            try:
                exif = _read_exif(original_data)
            except Exception as e:
                log.warning(f"Could not read EXIF from the original: {e}")

        if exif is None:
            log.info("No EXIF data found")
            return None

        sections = _group_exif(exif)

        maker_note = sections['Photo'].get('MakerNote')
        if maker_note:
            recipe = decode_fuji_recipe(maker_note)
            if recipe:
                sections['FujiRecipe'] = recipe
                log.info("Fujifilm recipe found")

        for name in STRIPPED_PHOTO_FIELDS:
            sections['Photo'].pop(name, None)
        for name in STRIPPED_IMAGE_FIELDS:
            sections['Image'].pop(name, None)

        cleaned = clean_exif_data(_to_json_value(sections))
        return cleaned or None

    except Exception as e:
        log.error(f"EXIF extraction failed: {e}")
        return None
