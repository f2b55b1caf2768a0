"""
PhotoProcessor - Turns one image object into a manifest item.

For every object the processor decides between reusing the existing
manifest item and recomputing it, then fetches the bytes, reads dimensions
and EXIF, produces the thumbnail and blurhash, and assembles the item.
"""

import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from .config import ProjectPaths, env_bool
from .constants import HEIC_FORMATS
from .exif_extractor import extract_exif_data
from .image_processor import get_image_metadata, preprocess_image_buffer
from .manifest import needs_update
from .manifest_item import (
    OUTCOME_NEW,
    OUTCOME_PROCESSED,
    OUTCOME_SKIPPED,
    PhotoManifestItem,
    ProcessPhotoResult,
    format_timestamp,
    photo_id_for_key,
)
from .photo_info import extract_photo_info
from .storage_manager import StorageManager
from .storage_object import StorageObject
from .thumbnail_generator import ThumbnailGenerator, ThumbnailResult

FORCE_MODE_ENV = 'FORCE_MODE'
FORCE_MANIFEST_ENV = 'FORCE_MANIFEST'
FORCE_THUMBNAILS_ENV = 'FORCE_THUMBNAILS'


@dataclass(frozen=True)
class ProcessorOptions:
    """
    Run override flags.

    Attributes:
        force_mode: Recompute everything
        force_manifest: Recompute manifest data, reusing thumbnails on disk
        force_thumbnails: Regenerate thumbnails and blurhashes
    """
    force_mode: bool = False
    force_manifest: bool = False
    force_thumbnails: bool = False

    @classmethod
    def from_env(cls) -> 'ProcessorOptions':
        """Read the flags a worker process was started with."""
        return cls(
            force_mode=env_bool(FORCE_MODE_ENV, False),
            force_manifest=env_bool(FORCE_MANIFEST_ENV, False),
            force_thumbnails=env_bool(FORCE_THUMBNAILS_ENV, False),
        )

    def to_env(self) -> Dict[str, str]:
        """Environment variables carrying the flags into worker processes."""
        return {
            FORCE_MODE_ENV: str(self.force_mode).lower(),
            FORCE_MANIFEST_ENV: str(self.force_manifest).lower(),
            FORCE_THUMBNAILS_ENV: str(self.force_thumbnails).lower(),
        }

    @property
    def ignores_existing_manifest(self) -> bool:
        return self.force_mode or self.force_manifest


class PhotoProcessor:
    """
    Per-object decision and transformation pipeline.
    """

    def __init__(
        self,
        storage_manager: StorageManager,
        paths: ProjectPaths,
        options: Optional[ProcessorOptions] = None,
        thumbnail_generator: Optional[ThumbnailGenerator] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize processor.

        Args:
            storage_manager: Source of object bytes and public URLs
            paths: Project paths (thumbnail locations)
            options: Run override flags
            thumbnail_generator: Thumbnail writer (created from paths if omitted)
            logger: Optional logger instance
        """
        self.storage_manager = storage_manager
        self.paths = paths
        self.options = options or ProcessorOptions()
        self.logger = logger or logging.getLogger(__name__)
        self.thumbnail_generator = thumbnail_generator or ThumbnailGenerator(
            paths, logger=self.logger.getChild('THUMBNAIL')
        )

    def process(
        self,
        obj: StorageObject,
        index: int,
        worker_id: int,
        total: int,
        existing_items: Dict[str, PhotoManifestItem],
        live_photo_map: Dict[str, StorageObject]
    ) -> ProcessPhotoResult:
        """
        Process one image object.

        Never raises; every failure becomes a 'failed' result.

        Args:
            obj: Image object from the storage listing
            index: Task index (for progress messages)
            worker_id: Id of the worker running the task
            total: Number of image objects in the run
            existing_items: Prior manifest items by storage key (read-only)
            live_photo_map: Image key -> paired video object (read-only)
        """
        key = obj.key
        worker_logger = self.logger.getChild(f'WORKER-{worker_id}')
        image_log = worker_logger.getChild('IMAGE')

        if not key:
            image_log.warning("Skipping object without a key")
            return ProcessPhotoResult.failed()

        photo_id = photo_id_for_key(key)
        existing = existing_items.get(key)
        image_log.info(f"[{index + 1}/{total}] {key}")

        if (
            not self.options.ignores_existing_manifest
            and existing is not None
            and not needs_update(existing, obj)
        ):
            has_thumbnail = self.thumbnail_generator.thumbnail_exists(photo_id)
            if has_thumbnail and not self.options.force_thumbnails:
                image_log.info(f"Skipped (unchanged, thumbnail present): {key}")
                return ProcessPhotoResult(item=existing, outcome=OUTCOME_SKIPPED)
            if self.options.force_thumbnails:
                image_log.info(f"Forcing thumbnail regeneration: {key}")
            else:
                image_log.info(f"Thumbnail missing, reprocessing: {key}")

        if existing is None:
            image_log.info(f"New photo: {key}")
        else:
            image_log.info(f"Updating photo: {key}")

        try:
            return self._build_item(obj, photo_id, existing, live_photo_map, worker_logger)
        except Exception as e:
            image_log.error(f"Processing failed: {key} ({e})")
            return ProcessPhotoResult.failed()

    def _build_item(
        self,
        obj: StorageObject,
        photo_id: str,
        existing: Optional[PhotoManifestItem],
        live_photo_map: Dict[str, StorageObject],
        worker_logger: logging.Logger
    ) -> ProcessPhotoResult:
        key = obj.key
        image_log = worker_logger.getChild('IMAGE')

        raw_data = self.storage_manager.get_file(key, worker_logger.getChild('STORAGE'))
        if raw_data is None:
            image_log.error(f"Could not fetch: {key}")
            return ProcessPhotoResult.failed()

        try:
            image_data = preprocess_image_buffer(raw_data, key, image_log)
        except Exception as e:
            image_log.error(f"Could not preprocess {key}: {e}")
            return ProcessPhotoResult.failed()

        metadata = get_image_metadata(image_data, image_log)
        if metadata is None:
            return ProcessPhotoResult.failed()

        thumbnail = self._thumbnail(image_data, photo_id, existing, metadata.width, metadata.height, worker_logger)
        exif = self._exif(key, image_data, raw_data, photo_id, existing, worker_logger)

        info = extract_photo_info(key, exif, self.storage_manager.prefix, image_log)

        video = live_photo_map.get(key)
        video_key = None
        video_url = None
        if video is not None:
            video_key = video.key
            video_url = self.storage_manager.generate_public_url(video.key)
            image_log.info(f"Live Photo: {key} -> {video.key}")

        last_modified = obj.last_modified or datetime.now(timezone.utc)

        item = PhotoManifestItem(
            id=photo_id,
            title=existing.title if existing else info.title,
            description=existing.description if existing else info.description,
            date_taken=info.date_taken,
            views=existing.views if existing else info.views,
            tags=list(existing.tags) if existing else info.tags,
            original_url=self.storage_manager.generate_public_url(key),
            thumbnail_url=thumbnail.thumbnail_url,
            blurhash=thumbnail.blurhash,
            width=metadata.width,
            height=metadata.height,
            aspect_ratio=metadata.width / metadata.height,
            storage_key=key,
            last_modified=format_timestamp(last_modified),
            size_bytes=obj.size or 0,
            exif=exif,
            is_live_photo=video is not None,
            live_photo_video_url=video_url,
            live_photo_video_key=video_key,
        )

        image_log.info(f"Processed: {key}")
        return ProcessPhotoResult(
            item=item,
            outcome=OUTCOME_NEW if existing is None else OUTCOME_PROCESSED,
        )

    def _thumbnail(
        self,
        image_data: bytes,
        photo_id: str,
        existing: Optional[PhotoManifestItem],
        width: int,
        height: int,
        worker_logger: logging.Logger
    ) -> ThumbnailResult:
        """Reuse the prior blurhash and thumbnail when allowed, else generate both."""
        thumbnail_log = worker_logger.getChild('THUMBNAIL')

        if (
            not self.options.force_mode
            and not self.options.force_thumbnails
            and existing is not None
            and existing.blurhash
            and self.thumbnail_generator.thumbnail_exists(photo_id)
        ):
            try:
                thumbnail_data = self.thumbnail_generator.read_thumbnail(photo_id)
                worker_logger.getChild('BLURHASH').info(f"Reusing blurhash: {photo_id}")
                thumbnail_log.info(f"Reusing thumbnail: {photo_id}")
                return ThumbnailResult(
                    thumbnail_url=self.paths.thumbnail_url(photo_id),
                    thumbnail_data=thumbnail_data,
                    blurhash=existing.blurhash,
                )
            except OSError as e:
                thumbnail_log.warning(f"Could not read thumbnail {photo_id}, regenerating: {e}")

        return self.thumbnail_generator.generate_thumbnail_and_blurhash(
            image_data,
            photo_id,
            width,
            height,
            force_regenerate=self.options.force_mode or self.options.force_thumbnails,
        )

    def _exif(
        self,
        key: str,
        image_data: bytes,
        raw_data: bytes,
        photo_id: str,
        existing: Optional[PhotoManifestItem],
        worker_logger: logging.Logger
    ) -> Optional[dict]:
        """Reuse prior EXIF unless the manifest is being rebuilt."""
        exif_log = worker_logger.getChild('EXIF')

        if not self.options.ignores_existing_manifest and existing is not None and existing.exif:
            exif_log.info(f"Reusing EXIF: {photo_id}")
            return existing.exif

        ext = posixpath.splitext(key)[1].lower()
        original = raw_data if ext in HEIC_FORMATS else None
        return extract_exif_data(image_data, original, exif_log)
