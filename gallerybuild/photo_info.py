"""
Derive title, capture date, view count and tags for a photo from its key.

File names follow the convention "2024-01-15_city-lights_1250views.jpg";
every part is optional.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .manifest_item import format_timestamp

EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'

DATE_IN_NAME = re.compile(r'(\d{4}-\d{2}-\d{2})')
VIEWS_IN_NAME = re.compile(r'(\d+)views?', re.IGNORECASE)

TITLE_DATE = re.compile(r'\d{4}-\d{2}-\d{2}[_-]?')
TITLE_VIEWS = re.compile(r'[_-]?\d+views?', re.IGNORECASE)
TITLE_SEPARATORS = re.compile(r'[_-]+')


@dataclass
class PhotoInfo:
    """Presentation fields derived from the key (and EXIF capture date)."""
    title: str
    date_taken: str
    views: int = 0
    tags: List[str] = field(default_factory=list)
    description: str = ''


def extract_tags(key: str, prefix: str = '') -> List[str]:
    """
    Tags are the directory components below the storage prefix.

    "photos/travel/japan/x.jpg" with prefix "photos/" -> ["travel", "japan"]
    """
    dir_path = posixpath.dirname(key)
    prefix = prefix.strip('/')
    if prefix and (dir_path == prefix or dir_path.startswith(prefix + '/')):
        dir_path = dir_path[len(prefix):]

    return [part.strip() for part in dir_path.split('/') if part.strip()]


def _parse_exif_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip(), EXIF_DATE_FORMAT)
    return None


def extract_photo_info(
    key: str,
    exif: Optional[Dict[str, Any]] = None,
    prefix: str = '',
    logger: Optional[logging.Logger] = None
) -> PhotoInfo:
    """
    Build PhotoInfo for a storage key.

    The capture date comes from EXIF DateTimeOriginal, then from a
    YYYY-MM-DD date in the file name, then falls back to now.

    Args:
        key: Storage key of the image
        exif: Sanitized EXIF sections, if any
        prefix: Storage prefix stripped before deriving tags
        logger: Optional logger instance
    """
    log = logger or logging.getLogger(__name__)
    file_name = posixpath.splitext(posixpath.basename(key))[0]

    tags = extract_tags(key, prefix)
    if tags:
        log.debug(f"Tags from path: {tags}")

    date_taken = None
    date_original = ((exif or {}).get('Photo') or {}).get('DateTimeOriginal')
    if date_original:
        try:
            date_taken = _parse_exif_date(date_original)
        except ValueError:
            log.warning(f"Unparsable DateTimeOriginal for {key}: {date_original!r}")

    if date_taken is None:
        match = DATE_IN_NAME.search(file_name)
        if match:
            try:
                date_taken = datetime.strptime(match.group(1), '%Y-%m-%d')
            except ValueError:
                log.warning(f"Invalid date in file name: {file_name}")

    if date_taken is None:
        date_taken = datetime.now(timezone.utc)

    views = 0
    match = VIEWS_IN_NAME.search(file_name)
    if match:
        views = int(match.group(1))

    title = TITLE_DATE.sub('', file_name)
    title = TITLE_VIEWS.sub('', title)
    title = TITLE_SEPARATORS.sub(' ', title).strip()
    if not title:
        title = file_name

    return PhotoInfo(
        title=title,
        date_taken=format_timestamp(date_taken),
        views=views,
        tags=tags,
    )
