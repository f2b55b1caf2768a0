"""
Live Photo detection - pairs still images with co-located .mov videos.
"""

import posixpath
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .constants import LIVE_PHOTO_VIDEO_EXTENSION, SUPPORTED_FORMATS
from .storage_object import StorageObject


def _group_key(key: str) -> Tuple[str, str]:
    directory, filename = posixpath.split(key)
    return directory, posixpath.splitext(filename)[0]


def detect_live_photos(
    objects: Iterable[StorageObject],
    image_extensions=SUPPORTED_FORMATS,
) -> Dict[str, StorageObject]:
    """
    Pair images with their Live Photo video.
    
    Objects are grouped by (directory, base name without extension). A group
    yields a pair only when it holds exactly one supported image and exactly
    one .mov video.
    
    Args:
        objects: Storage objects from a full listing
        image_extensions: Extensions (lowercase, with dot) treated as images
        
    Returns:
        Mapping of image key -> paired video object
    """
    groups: Dict[Tuple[str, str], List[StorageObject]] = defaultdict(list)
    for obj in objects:
        if not obj.key:
            continue
        groups[_group_key(obj.key)].append(obj)
    
    live_photos: Dict[str, StorageObject] = {}
    for group_key in sorted(groups):
        images = []
        videos = []
        for obj in groups[group_key]:
            ext = posixpath.splitext(obj.key)[1].lower()
            if ext in image_extensions:
                images.append(obj)
            elif ext == LIVE_PHOTO_VIDEO_EXTENSION:
                videos.append(obj)
        
        if len(images) == 1 and len(videos) == 1:
            live_photos[images[0].key] = videos[0]
    
    return live_photos
