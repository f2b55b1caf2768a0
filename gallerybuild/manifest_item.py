"""
PhotoManifestItem - Record for a single photo in the gallery manifest.
"""

import hashlib
import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


OUTCOME_NEW = 'new'
OUTCOME_PROCESSED = 'processed'
OUTCOME_SKIPPED = 'skipped'
OUTCOME_FAILED = 'failed'

OUTCOMES = (OUTCOME_NEW, OUTCOME_PROCESSED, OUTCOME_SKIPPED, OUTCOME_FAILED)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO 8601 UTC string; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 string written to the manifest.

    Returns:
        Timezone-aware datetime, or None if the value is missing or invalid
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def photo_id_for_key(key: str) -> str:
    """
    Derive the stable photo id for a storage key.

    The id is the file's base name followed by a short digest of the full
    key, so two photos with the same name in different directories never
    share an id (and therefore never share a thumbnail file).

    Args:
        key: Storage key of the image

    Returns:
        Id like 'sunset-3f2a9c1e'
    """
    stem = posixpath.splitext(posixpath.basename(key))[0]
    digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:8]
    return f"{stem}-{digest}"


@dataclass
class PhotoManifestItem:
    """
    Record for a single photo and its derived presentation data.

    Attributes:
        id: Stable id derived from storage_key
        title: Display title (user-curated once written)
        description: Description (user-curated once written)
        date_taken: ISO timestamp the photo was taken
        views: View count (user-curated once written)
        tags: Tags derived from the directory path
        original_url: Public URL of the original image
        thumbnail_url: Site-relative URL of the preview, or None
        blurhash: Placeholder hash, or None
        width: Width in pixels after orientation
        height: Height in pixels after orientation
        aspect_ratio: width / height
        storage_key: Key of the image in storage
        last_modified: ISO timestamp of the storage object
        size_bytes: Size of the original in bytes
        exif: Sanitized EXIF metadata, or None
        is_live_photo: True when paired with a .mov video
        live_photo_video_url: Public URL of the paired video
        live_photo_video_key: Storage key of the paired video
    """
    id: str
    title: str
    description: str
    date_taken: str
    views: int
    tags: List[str]
    original_url: str
    thumbnail_url: Optional[str]
    blurhash: Optional[str]
    width: int
    height: int
    aspect_ratio: float
    storage_key: str
    last_modified: str
    size_bytes: int
    exif: Optional[Dict[str, Any]] = None
    is_live_photo: bool = False
    live_photo_video_url: Optional[str] = None
    live_photo_video_key: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'dateTaken': self.date_taken,
            'views': self.views,
            'tags': list(self.tags),
            'originalUrl': self.original_url,
            'thumbnailUrl': self.thumbnail_url,
            'blurHash': self.blurhash,
            'width': self.width,
            'height': self.height,
            'aspectRatio': self.aspect_ratio,
            'storageKey': self.storage_key,
            'lastModified': self.last_modified,
            'sizeBytes': self.size_bytes,
            'exif': self.exif,
            'isLivePhoto': self.is_live_photo,
        }
        if self.live_photo_video_url is not None:
            data['livePhotoVideoUrl'] = self.live_photo_video_url
        if self.live_photo_video_key is not None:
            data['livePhotoVideoKey'] = self.live_photo_video_key
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'PhotoManifestItem':
        """Create from dictionary."""
        # Older manifests were written with S3-specific and lower-case field names
        storage_key = data.get('storageKey') or data.get('s3Key')
        video_key = data.get('livePhotoVideoKey') or data.get('livePhotoVideoS3Key')
        width = int(data['width'])
        height = int(data['height'])

        return cls(
            id=data.get('id') or photo_id_for_key(storage_key),
            title=data.get('title', ''),
            description=data.get('description', ''),
            date_taken=data['dateTaken'],
            views=int(data.get('views', 0)),
            tags=list(data.get('tags', [])),
            original_url=data.get('originalUrl', ''),
            thumbnail_url=data.get('thumbnailUrl'),
            blurhash=data.get('blurHash', data.get('blurhash')),
            width=width,
            height=height,
            aspect_ratio=width / height if height else 0.0,
            storage_key=storage_key,
            last_modified=data.get('lastModified', ''),
            size_bytes=int(data.get('sizeBytes', data.get('size', 0))),
            exif=data.get('exif'),
            is_live_photo=bool(data.get('isLivePhoto', False)),
            live_photo_video_url=data.get('livePhotoVideoUrl'),
            live_photo_video_key=video_key,
        )


@dataclass
class ProcessPhotoResult:
    """
    Outcome of processing one image object.

    `item` is None only when `outcome` is 'failed'.
    """
    item: Optional[PhotoManifestItem]
    outcome: str = field(default=OUTCOME_FAILED)

    @classmethod
    def failed(cls) -> 'ProcessPhotoResult':
        return cls(item=None, outcome=OUTCOME_FAILED)

    @property
    def is_failed(self) -> bool:
        return self.item is None or self.outcome == OUTCOME_FAILED
