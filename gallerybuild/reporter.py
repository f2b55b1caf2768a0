"""
Reporter - Human-readable build results and manifest summaries.
"""

import logging
import sys
from collections import Counter
from typing import List, Optional, TextIO

from .build_stats import BuildStats
from .manifest_item import PhotoManifestItem, parse_timestamp


class Reporter:
    """
    Prints reports to a text stream.
    """

    TOP_COUNT = 5

    def __init__(
        self,
        output: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize reporter.

        Args:
            output: Output stream (default: stdout)
            logger: Optional logger instance
        """
        self.output = output or sys.stdout
        self.logger = logger or logging.getLogger(__name__)

    def _print(self, text: str = "") -> None:
        """Print to output stream."""
        print(text, file=self.output)

    def _format_bytes(self, bytes_val: float) -> str:
        """Format bytes as human-readable string."""
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} PB"

    def _format_duration(self, seconds: float) -> str:
        """Format duration as human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f} seconds"
        elif seconds < 3600:
            return f"{seconds / 60:.1f} minutes"
        else:
            return f"{seconds / 3600:.1f} hours"

    def report_build(self, stats: BuildStats) -> None:
        """Print the end-of-build summary."""
        self._print("=" * 60)
        self._print("MANIFEST BUILD COMPLETE")
        self._print("=" * 60)
        self._print(f"  Photos in manifest:   {stats.manifest_size:,}")
        self._print(f"  Images in storage:    {stats.total_images:,}")
        self._print(f"  New:                  {stats.new:,}")
        self._print(f"  Processed:            {stats.processed:,}")
        self._print(f"  Skipped:              {stats.skipped:,}")
        self._print(f"  Failed:               {stats.failed:,}")
        self._print(f"  Deleted:              {stats.deleted:,}")
        self._print(f"  Time:                 {self._format_duration(stats.elapsed_seconds)}")
        self._print("=" * 60)

    def report_summary(self, items: List[PhotoManifestItem]) -> None:
        """Print an overview of a manifest."""
        self._print("=" * 60)
        self._print("PHOTO MANIFEST SUMMARY")
        self._print("=" * 60)
        self._print()

        total = len(items)
        self._print(f"  Total Photos:         {total:,}")
        if total == 0:
            self._print()
            return

        with_thumbnail = sum(1 for item in items if item.thumbnail_url)
        with_blurhash = sum(1 for item in items if item.blurhash)
        with_exif = sum(1 for item in items if item.exif)
        live_photos = sum(1 for item in items if item.is_live_photo)
        total_bytes = sum(item.size_bytes for item in items)

        self._print(f"  Live Photos:          {live_photos:,}")
        self._print(f"  With Thumbnails:      {with_thumbnail:,} ({with_thumbnail / total * 100:.1f}%)")
        self._print(f"  Missing Thumbnails:   {total - with_thumbnail:,}")
        self._print(f"  With Blurhash:        {with_blurhash:,}")
        self._print(f"  With EXIF:            {with_exif:,}")
        self._print(f"  Original Size:        {self._format_bytes(total_bytes)}")

        dates = [d for d in (parse_timestamp(item.date_taken) for item in items) if d is not None]
        if dates:
            self._print(f"  Oldest:               {min(dates).date().isoformat()}")
            self._print(f"  Newest:               {max(dates).date().isoformat()}")
        self._print()

        tags = Counter(tag for item in items for tag in item.tags)
        if tags:
            self._print("Top Tags:")
            for tag, count in tags.most_common(self.TOP_COUNT):
                self._print(f"  {tag:<30} {count:>8,}")
            self._print()

        cameras = Counter()
        for item in items:
            image_section = (item.exif or {}).get('Image') or {}
            model = image_section.get('Model')
            if model:
                make = image_section.get('Make')
                cameras[f"{make} {model}" if make and not str(model).startswith(str(make)) else str(model)] += 1
        if cameras:
            self._print("Top Cameras:")
            for camera, count in cameras.most_common(self.TOP_COUNT):
                self._print(f"  {camera:<30} {count:>8,}")
            self._print()
