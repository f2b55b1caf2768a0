"""
Fujifilm maker-note decoding for film simulation recipes.

Only the tags that make up a recipe are decoded; everything else in the
maker note is ignored.
"""

import struct
from typing import Any, Dict, Optional

FUJIFILM_SIGNATURE = b'FUJIFILM'

# TIFF type -> (struct format, byte size)
_TYPE_FORMATS = {
    1: ('B', 1),
    2: ('s', 1),
    3: ('H', 2),
    4: ('I', 4),
    7: ('B', 1),
    8: ('h', 2),
    9: ('i', 4),
}

TAG_SHARPNESS = 0x1001
TAG_WHITE_BALANCE = 0x1002
TAG_SATURATION = 0x1003
TAG_COLOR_TEMPERATURE = 0x1005
TAG_WB_FINE_TUNE = 0x100A
TAG_NOISE_REDUCTION = 0x100E
TAG_CLARITY = 0x100F
TAG_SHADOW_TONE = 0x1040
TAG_HIGHLIGHT_TONE = 0x1041
TAG_GRAIN_ROUGHNESS = 0x1047
TAG_COLOR_CHROME = 0x1048
TAG_GRAIN_SIZE = 0x104C
TAG_COLOR_CHROME_BLUE = 0x104E
TAG_FILM_MODE = 0x1401
TAG_DYNAMIC_RANGE_SETTING = 0x1402
TAG_DEVELOPMENT_DYNAMIC_RANGE = 0x1403

FILM_MODES = {
    0x000: 'Provia / Standard',
    0x100: 'Studio Portrait',
    0x110: 'Studio Portrait Enhanced Saturation',
    0x120: 'Astia / Soft',
    0x130: 'Studio Portrait Increased Sharpness',
    0x200: 'Velvia / Vivid',
    0x300: 'Studio Portrait Ex',
    0x400: 'Velvia',
    0x500: 'Pro Neg. Std',
    0x501: 'Pro Neg. Hi',
    0x600: 'Classic Chrome',
    0x700: 'Eterna',
    0x800: 'Classic Negative',
    0x900: 'Eterna Bleach Bypass',
    0xA00: 'Nostalgic Neg.',
    0xB00: 'Reala ACE',
}

# Saturation values that stand for a monochrome film simulation
MONOCHROME_MODES = {
    0x300: 'Monochrome',
    0x301: 'Monochrome + R Filter',
    0x302: 'Monochrome + Ye Filter',
    0x303: 'Monochrome + G Filter',
    0x310: 'Sepia',
    0x500: 'Acros',
    0x501: 'Acros + R Filter',
    0x502: 'Acros + Ye Filter',
    0x503: 'Acros + G Filter',
}

SATURATION = {
    0x000: 0,
    0x080: 1,
    0x100: 2,
    0x0C0: 3,
    0x0E0: 4,
    0x180: -1,
    0x400: -2,
    0x4C0: -3,
    0x4E0: -4,
}

SHARPNESS = {
    0x00: -4,
    0x01: -3,
    0x02: -2,
    0x82: -1,
    0x03: 0,
    0x84: 1,
    0x04: 2,
    0x05: 3,
    0x06: 4,
}

NOISE_REDUCTION = {
    0x000: 0,
    0x180: 1,
    0x100: 2,
    0x1C0: 3,
    0x1E0: 4,
    0x280: -1,
    0x200: -2,
    0x2C0: -3,
    0x2E0: -4,
}

WHITE_BALANCE = {
    0x000: 'Auto',
    0x001: 'Auto (white priority)',
    0x002: 'Auto (ambiance priority)',
    0x100: 'Daylight',
    0x200: 'Cloudy',
    0x300: 'Daylight Fluorescent',
    0x301: 'Day White Fluorescent',
    0x302: 'White Fluorescent',
    0x303: 'Warm White Fluorescent',
    0x304: 'Living Room Warm White Fluorescent',
    0x400: 'Incandescent',
    0x500: 'Flash',
    0x600: 'Underwater',
    0xF00: 'Custom',
    0xFF0: 'Kelvin',
}

EFFECT_STRENGTH = {0: 'Off', 32: 'Weak', 64: 'Strong'}
GRAIN_SIZE = {0: 'Off', 16: 'Small', 32: 'Large'}
DYNAMIC_RANGE_SETTING = {
    0x0000: 'Auto',
    0x0001: 'Manual',
    0x0100: 'DR100',
    0x0200: 'DR200',
    0x0201: 'DR400',
    0x8000: 'Film Simulation',
}


def _read_ifd(data: bytes) -> Dict[int, Any]:
    """Read the maker-note IFD (little-endian, offsets from the note start)."""
    ifd_offset = struct.unpack_from('<I', data, 8)[0]
    entry_count = struct.unpack_from('<H', data, ifd_offset)[0]

    values: Dict[int, Any] = {}
    for i in range(entry_count):
        entry = ifd_offset + 2 + i * 12
        tag, type_id, count = struct.unpack_from('<HHI', data, entry)
        if type_id not in _TYPE_FORMATS:
            continue

        fmt, size = _TYPE_FORMATS[type_id]
        total = size * count
        offset = entry + 8 if total <= 4 else struct.unpack_from('<I', data, entry + 8)[0]
        if offset + total > len(data):
            continue

        if fmt == 's':
            values[tag] = data[offset:offset + total].rstrip(b'\0').decode('ascii', 'replace')
        else:
            items = struct.unpack_from(f'<{count}{fmt}', data, offset)
            values[tag] = items[0] if count == 1 else list(items)

    return values


def _signed_step(value: int, divisor: int) -> float:
    """Tone values are stored negated and scaled."""
    result = -value / divisor
    return int(result) if result == int(result) else result


def decode_fuji_recipe(maker_note: bytes) -> Optional[Dict[str, Any]]:
    """
    Decode the film simulation recipe from a Fujifilm maker note.

    Args:
        maker_note: Raw MakerNote bytes from the EXIF sub-IFD

    Returns:
        Recipe dict, or None if the maker note is not a Fujifilm one or
        cannot be parsed
    """
    if not isinstance(maker_note, (bytes, bytearray)) or not maker_note.startswith(FUJIFILM_SIGNATURE):
        return None

    try:
        tags = _read_ifd(bytes(maker_note))
    except struct.error:
        return None

    recipe: Dict[str, Any] = {}

    saturation = tags.get(TAG_SATURATION)
    if TAG_FILM_MODE in tags:
        recipe['FilmMode'] = FILM_MODES.get(tags[TAG_FILM_MODE], f"Unknown (0x{tags[TAG_FILM_MODE]:x})")
    elif saturation in MONOCHROME_MODES:
        recipe['FilmMode'] = MONOCHROME_MODES[saturation]

    if saturation in SATURATION:
        recipe['Color'] = SATURATION[saturation]

    if TAG_DYNAMIC_RANGE_SETTING in tags:
        recipe['DynamicRange'] = DYNAMIC_RANGE_SETTING.get(tags[TAG_DYNAMIC_RANGE_SETTING], 'Unknown')
    if TAG_DEVELOPMENT_DYNAMIC_RANGE in tags:
        recipe['DevelopmentDynamicRange'] = tags[TAG_DEVELOPMENT_DYNAMIC_RANGE]

    if TAG_WHITE_BALANCE in tags:
        recipe['WhiteBalance'] = WHITE_BALANCE.get(tags[TAG_WHITE_BALANCE], 'Unknown')
    if TAG_COLOR_TEMPERATURE in tags:
        recipe['ColorTemperature'] = tags[TAG_COLOR_TEMPERATURE]
    fine_tune = tags.get(TAG_WB_FINE_TUNE)
    if isinstance(fine_tune, list) and len(fine_tune) >= 2:
        red, blue = fine_tune[:2]
        recipe['WhiteBalanceFineTune'] = {'Red': int(red / 20), 'Blue': int(blue / 20)}

    if TAG_HIGHLIGHT_TONE in tags:
        recipe['HighlightTone'] = _signed_step(tags[TAG_HIGHLIGHT_TONE], 16)
    if TAG_SHADOW_TONE in tags:
        recipe['ShadowTone'] = _signed_step(tags[TAG_SHADOW_TONE], 16)
    if TAG_SHARPNESS in tags:
        recipe['Sharpness'] = SHARPNESS.get(tags[TAG_SHARPNESS], 'Unknown')
    if TAG_NOISE_REDUCTION in tags:
        recipe['NoiseReduction'] = NOISE_REDUCTION.get(tags[TAG_NOISE_REDUCTION], 'Unknown')
    if TAG_CLARITY in tags:
        recipe['Clarity'] = int(tags[TAG_CLARITY] / 1000)

    if TAG_GRAIN_ROUGHNESS in tags:
        recipe['GrainEffectRoughness'] = EFFECT_STRENGTH.get(tags[TAG_GRAIN_ROUGHNESS], 'Unknown')
    if TAG_GRAIN_SIZE in tags:
        recipe['GrainEffectSize'] = GRAIN_SIZE.get(tags[TAG_GRAIN_SIZE], 'Unknown')
    if TAG_COLOR_CHROME in tags:
        recipe['ColorChromeEffect'] = EFFECT_STRENGTH.get(tags[TAG_COLOR_CHROME], 'Unknown')
    if TAG_COLOR_CHROME_BLUE in tags:
        recipe['ColorChromeFxBlue'] = EFFECT_STRENGTH.get(tags[TAG_COLOR_CHROME_BLUE], 'Unknown')

    return recipe or None
