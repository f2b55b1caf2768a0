"""
ThumbnailGenerator - Writes WebP previews and derives blurhashes from them.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps

from .config import ProjectPaths
from .placeholder import generate_blurhash


@dataclass
class ThumbnailResult:
    """Preview URL, encoded preview and placeholder hash (all None on failure)."""
    thumbnail_url: Optional[str]
    thumbnail_data: Optional[bytes]
    blurhash: Optional[str]

    @classmethod
    def empty(cls) -> 'ThumbnailResult':
        return cls(thumbnail_url=None, thumbnail_data=None, blurhash=None)


class ThumbnailGenerator:
    """
    Generates thumbnails from original images using Pillow.

    Thumbnails are stored as {id}.webp in the project's thumbnail directory.
    The blurhash is always computed from the thumbnail bytes, so the
    placeholder matches the preview.
    """

    def __init__(
        self,
        paths: ProjectPaths,
        width: int = 600,
        quality: int = 100,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize thumbnail generator.

        Args:
            paths: Project paths (thumbnail directory and URLs)
            width: Maximum thumbnail width; smaller images are not enlarged
            quality: WebP quality for output
            logger: Optional logger instance
        """
        self.paths = paths
        self.width = width
        self.quality = quality
        self.logger = logger or logging.getLogger(__name__)

    def thumbnail_exists(self, photo_id: str) -> bool:
        """Check whether the thumbnail artifact for a photo exists."""
        return self.paths.thumbnail_path(photo_id).is_file()

    def read_thumbnail(self, photo_id: str) -> bytes:
        """Read an existing thumbnail artifact."""
        return self.paths.thumbnail_path(photo_id).read_bytes()

    def render(self, image_data: bytes) -> bytes:
        """
        Render a WebP thumbnail.

        Args:
            image_data: Decodable image bytes

        Returns:
            WebP bytes, auto-rotated and at most self.width pixels wide
        """
        with Image.open(io.BytesIO(image_data)) as img:
            img = ImageOps.exif_transpose(img)
            img = self._convert_color_mode(img)

            if img.width > self.width:
                height = max(1, round(img.height * self.width / img.width))
                img = img.resize((self.width, height), Image.Resampling.LANCZOS)

            output = io.BytesIO()
            img.save(output, format='WEBP', quality=self.quality)

        return output.getvalue()

    def generate_thumbnail_and_blurhash(
        self,
        image_data: bytes,
        photo_id: str,
        original_width: int,
        original_height: int,
        force_regenerate: bool = False
    ) -> ThumbnailResult:
        """
        Produce the thumbnail and blurhash for a photo.

        An existing thumbnail is reused unless force_regenerate is set or it
        cannot be read.

        Args:
            image_data: Decodable image bytes
            photo_id: Photo id (names the thumbnail file)
            original_width: Width of the original image
            original_height: Height of the original image
            force_regenerate: Always render a new thumbnail

        Returns:
            ThumbnailResult; all fields None if generation failed
        """
        blurhash_logger = self.logger.getChild('BLURHASH')

        try:
            self.paths.thumbnail_dir.mkdir(parents=True, exist_ok=True)
            thumbnail_path = self.paths.thumbnail_path(photo_id)
            thumbnail_url = self.paths.thumbnail_url(photo_id)

            if not force_regenerate and self.thumbnail_exists(photo_id):
                try:
                    existing = self.read_thumbnail(photo_id)
                    self.logger.info(f"Reusing thumbnail: {photo_id}")
                    return ThumbnailResult(
                        thumbnail_url=thumbnail_url,
                        thumbnail_data=existing,
                        blurhash=generate_blurhash(
                            existing, original_width, original_height, blurhash_logger
                        ),
                    )
                except OSError as e:
                    self.logger.warning(f"Could not read thumbnail {photo_id}, regenerating: {e}")

            self.logger.info(f"Generating thumbnail: {photo_id}")
            thumbnail_data = self.render(image_data)
            thumbnail_path.write_bytes(thumbnail_data)
            self.logger.info(f"Thumbnail written: {photo_id} ({len(thumbnail_data) / 1024:.0f}KB)")

            return ThumbnailResult(
                thumbnail_url=thumbnail_url,
                thumbnail_data=thumbnail_data,
                blurhash=generate_blurhash(
                    thumbnail_data, original_width, original_height, blurhash_logger
                ),
            )

        except Exception as e:
            self.logger.error(f"Thumbnail generation failed: {photo_id} ({e})")
            return ThumbnailResult.empty()

    def delete_thumbnail(self, photo_id: str) -> bool:
        """
        Delete a thumbnail artifact.

        Returns:
            True if a file was removed, False if it did not exist or could
            not be removed
        """
        try:
            self.paths.thumbnail_path(photo_id).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.warning(f"Failed to delete thumbnail {photo_id}: {e}")
            return False

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Convert image to a color mode WebP can encode."""
        if img.mode in ('RGB', 'RGBA'):
            return img
        if img.mode in ('LA', 'P', 'PA'):
            return img.convert('RGBA')
        return img.convert('RGB')
