"""
ManifestStore - Loads, reconciles and persists the photo manifest.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .config import ProjectPaths
from .manifest_item import PhotoManifestItem, parse_timestamp
from .storage_object import StorageObject
from .thumbnail_generator import ThumbnailGenerator

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def needs_update(item: Optional[PhotoManifestItem], obj: StorageObject) -> bool:
    """
    Check whether a storage object changed since its manifest item was built.

    Objects without a modification time (e.g. from GitHub) always need an
    update, as do keys the manifest does not know yet.
    """
    if item is None:
        return True
    if obj.last_modified is None:
        return True

    recorded = parse_timestamp(item.last_modified)
    if recorded is None:
        return True

    current = obj.last_modified
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current > recorded


def sort_manifest(items: Iterable[PhotoManifestItem]) -> List[PhotoManifestItem]:
    """Newest capture date first; items with an unreadable date go last."""
    def sort_key(item: PhotoManifestItem):
        taken = parse_timestamp(item.date_taken)
        return (taken is not None, taken or _OLDEST)

    return sorted(items, key=sort_key, reverse=True)


class ManifestStore:
    """
    Reads and writes the manifest file at its fixed project location.
    """

    def __init__(self, paths: ProjectPaths, logger: Optional[logging.Logger] = None):
        self.paths = paths
        self.logger = logger or logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return self.paths.manifest_path

    def load(self) -> List[PhotoManifestItem]:
        """
        Load the previous manifest.

        A missing or unreadable file is treated as a first run and yields an
        empty list. Individual entries that cannot be read are dropped.
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            self.logger.info(f"No existing manifest at {self.path}")
            return []
        except (OSError, ValueError) as e:
            self.logger.warning(f"Could not read manifest {self.path}, starting fresh: {e}")
            return []

        if not isinstance(data, list):
            self.logger.warning(f"Manifest {self.path} is not a list, starting fresh")
            return []

        items = []
        for entry in data:
            try:
                items.append(PhotoManifestItem.from_dict(entry))
            except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
                self.logger.warning(f"Dropping unreadable manifest entry: {e}")

        self.logger.info(f"Loaded manifest with {len(items)} photos")
        return items

    def save(self, items: List[PhotoManifestItem]) -> List[PhotoManifestItem]:
        """
        Sort and write the manifest in one atomic replace.

        Raises:
            OSError: If the manifest cannot be written
        """
        sorted_items = sort_manifest(items)
        payload = json.dumps(
            [item.to_dict() for item in sorted_items],
            indent=2,
            ensure_ascii=False,
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix='.photos-manifest-', suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
                f.write('\n')
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

        self.logger.info(f"Manifest saved to {self.path} ({len(sorted_items)} photos)")
        return sorted_items

    def handle_deleted_photos(
        self,
        existing: List[PhotoManifestItem],
        live_keys: Set[str],
        thumbnails: ThumbnailGenerator
    ) -> int:
        """
        Count prior items whose key is gone from storage and remove their thumbnails.

        Thumbnail removal is best-effort; a missing file is not an error.

        Returns:
            Number of deleted photos
        """
        if not existing:
            return 0

        self.logger.info("Checking for deleted photos...")
        deleted = 0
        for item in existing:
            if item.storage_key in live_keys:
                continue

            deleted += 1
            self.logger.info(f"Photo deleted from storage: {item.storage_key}")
            if thumbnails.delete_thumbnail(item.id):
                self.logger.info(f"Removed thumbnail: {item.id}")

        return deleted
