"""
BuildStats - Outcome counters for a manifest build.
"""

import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .manifest_item import (
    OUTCOME_NEW,
    OUTCOME_PROCESSED,
    OUTCOME_SKIPPED,
    ProcessPhotoResult,
)


@dataclass
class BuildStats:
    """
    Statistics for a build run.

    Attributes:
        total_images: Image objects found in storage
        manifest_size: Items written to the manifest
        new: Photos not present in the previous manifest
        processed: Photos recomputed (including new ones)
        skipped: Photos reused unchanged
        failed: Photos that could not be processed
        deleted: Previous manifest items no longer in storage
        start_time: Start timestamp
        end_time: End timestamp, set by finish()
    """
    total_images: int = 0
    manifest_size: int = 0
    new: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    deleted: int = 0
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def record(self, result: Optional[ProcessPhotoResult]) -> None:
        """Count one task result; None (a task that raised) counts as failed."""
        if result is None or result.is_failed:
            self.failed += 1
        elif result.outcome == OUTCOME_NEW:
            self.new += 1
            self.processed += 1
        elif result.outcome == OUTCOME_PROCESSED:
            self.processed += 1
        elif result.outcome == OUTCOME_SKIPPED:
            self.skipped += 1

    def record_all(self, results: Iterable[Optional[ProcessPhotoResult]]) -> None:
        for result in results:
            self.record(result)

    def finish(self) -> None:
        self.end_time = time.time()

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    @property
    def completed_count(self) -> int:
        """Total completed (processed + skipped + failed)."""
        return self.processed + self.skipped + self.failed
