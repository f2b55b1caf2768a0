"""
PhotoGalleryBuilder - Runs a complete manifest build.
"""

import logging
import threading
from typing import Dict, List, Optional

from .build_stats import BuildStats
from .cluster_pool import ClusterPool
from .config import BuilderConfig, ProjectPaths
from .manifest import ManifestStore
from .manifest_item import PhotoManifestItem, ProcessPhotoResult
from .photo_processor import PhotoProcessor, ProcessorOptions
from .reporter import Reporter
from .storage_manager import StorageManager
from .storage_object import StorageObject
from .thumbnail_generator import ThumbnailGenerator
from .worker_pool import WorkerPool


class PhotoTask:
    """
    Callable task(index, worker_id) that processes image_objects[index].

    The task can be pickled into worker processes. The processor is not
    pickled: the child rebuilds it around the same storage manager and reads
    the run flags from its environment.
    """

    def __init__(
        self,
        image_objects: List[StorageObject],
        existing_items: Dict[str, PhotoManifestItem],
        live_photo_map: Dict[str, StorageObject],
        paths: ProjectPaths,
        storage_manager: Optional[StorageManager] = None,
        options: Optional[ProcessorOptions] = None,
        processor: Optional[PhotoProcessor] = None
    ):
        self.image_objects = image_objects
        self.existing_items = existing_items
        self.live_photo_map = live_photo_map
        self.paths = paths
        self.storage_manager = storage_manager
        self.options = options
        self._processor = processor
        self._lock = threading.Lock()

    def __getstate__(self):
        state = self.__dict__.copy()
        state['_processor'] = None
        state['_lock'] = None
        state['options'] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.Lock()

    def _get_processor(self) -> PhotoProcessor:
        with self._lock:
            if self._processor is None:
                if self.storage_manager is None:
                    raise ValueError("A storage manager is required to rebuild the processor")
                self._processor = PhotoProcessor(
                    self.storage_manager,
                    self.paths,
                    options=self.options or ProcessorOptions.from_env(),
                    logger=logging.getLogger('gallerybuild'),
                )
            return self._processor

    def __call__(self, index: int, worker_id: int) -> ProcessPhotoResult:
        return self._get_processor().process(
            self.image_objects[index],
            index,
            worker_id,
            len(self.image_objects),
            self.existing_items,
            self.live_photo_map,
        )


class PhotoGalleryBuilder:
    """
    Wires storage, scheduling, processing and manifest reconciliation into
    one build.
    """

    def __init__(
        self,
        config: BuilderConfig,
        storage_manager: Optional[StorageManager] = None,
        paths: Optional[ProjectPaths] = None,
        reporter: Optional[Reporter] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize builder.

        Args:
            config: Builder configuration
            storage_manager: Storage manager (built from config.storage if omitted)
            paths: Project paths (current directory if omitted)
            reporter: Reporter for the build summary
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.paths = paths or ProjectPaths()
        self.storage_manager = storage_manager or StorageManager(
            config=config.storage,
            max_objects=config.max_listed_objects,
            logger=self.logger,
        )
        self.reporter = reporter or Reporter(logger=self.logger)
        self.manifest_store = ManifestStore(self.paths, logger=self.logger.getChild('FS'))
        self.thumbnail_generator = ThumbnailGenerator(
            self.paths, logger=self.logger.getChild('THUMBNAIL')
        )

    def build_manifest(
        self,
        options: Optional[ProcessorOptions] = None,
        concurrency: Optional[int] = None
    ) -> BuildStats:
        """
        Build and save the manifest.

        Args:
            options: Run override flags
            concurrency: Workers (or processes); defaults to the configured value

        Returns:
            BuildStats for the run

        Raises:
            Exception: If storage cannot be listed or the manifest cannot be written
        """
        options = options or ProcessorOptions()
        stats = BuildStats()

        try:
            self._log_build_start()

            existing = [] if options.ignores_existing_manifest else self.manifest_store.load()
            existing_items = {item.storage_key: item for item in existing}
            self.logger.info(f"Existing manifest has {len(existing)} photos")

            all_objects = self.storage_manager.list_all_files()
            self.logger.info(f"Found {len(all_objects)} objects in storage")

            live_photo_map: Dict[str, StorageObject] = {}
            if self.config.enable_live_photo_detection:
                live_photo_map = self.storage_manager.detect_live_photos(all_objects)
                self.logger.info(f"Detected {len(live_photo_map)} Live Photos")

            image_objects = self.storage_manager.list_images()
            stats.total_images = len(image_objects)
            self.logger.info(f"Found {len(image_objects)} images in storage")

            if len(image_objects) > self.config.max_photos:
                self.logger.warning(
                    f"Image count ({len(image_objects)}) exceeds the configured "
                    f"maximum ({self.config.max_photos})"
                )

            live_keys = {obj.key for obj in image_objects}

            results: List[Optional[ProcessPhotoResult]] = []
            if image_objects:
                results = self._run_tasks(
                    image_objects,
                    existing_items,
                    live_photo_map,
                    options,
                    concurrency or self.config.default_concurrency,
                )

            stats.record_all(results)
            manifest = [result.item for result in results if result is not None and not result.is_failed]

            if not options.ignores_existing_manifest and existing:
                stats.deleted = self.manifest_store.handle_deleted_photos(
                    existing, live_keys, self.thumbnail_generator
                )

            self.manifest_store.save(manifest)
            stats.manifest_size = len(manifest)
            stats.finish()

            if stats.failed:
                self.logger.warning(f"{stats.failed} photos failed and were left out of the manifest")

            if self.config.show_detailed_stats:
                self.reporter.report_build(stats)

            return stats

        except Exception as e:
            self.logger.error(f"Manifest build failed: {e}")
            raise

    def _run_tasks(
        self,
        image_objects: List[StorageObject],
        existing_items: Dict[str, PhotoManifestItem],
        live_photo_map: Dict[str, StorageObject],
        options: ProcessorOptions,
        concurrency: int
    ) -> List[Optional[ProcessPhotoResult]]:
        """Run the processor over every image with the configured strategy."""
        if self.config.use_cluster_mode:
            self.logger.info(
                f"Processing with {concurrency} processes, "
                f"{self.config.worker_concurrency} tasks per process"
            )
            task = PhotoTask(
                image_objects,
                existing_items,
                live_photo_map,
                self.paths,
                storage_manager=self.storage_manager,
            )
            pool = ClusterPool(
                concurrency=concurrency,
                total_tasks=len(image_objects),
                worker_concurrency=self.config.worker_concurrency,
                worker_env=options.to_env(),
                logger=self.logger,
            )
            return pool.execute(task)

        self.logger.info(f"Processing with {concurrency} workers")
        processor = PhotoProcessor(
            self.storage_manager,
            self.paths,
            options=options,
            thumbnail_generator=self.thumbnail_generator,
            logger=self.logger,
        )
        task = PhotoTask(
            image_objects,
            existing_items,
            live_photo_map,
            self.paths,
            storage_manager=self.storage_manager,
            options=options,
            processor=processor,
        )
        pool = WorkerPool(concurrency=concurrency, total_tasks=len(image_objects), logger=self.logger)
        return pool.execute(task)

    def _log_build_start(self) -> None:
        storage = self.config.storage
        self.logger.info("Fetching photo list from storage...")
        if storage.provider == 's3':
            self.logger.info(f"  Endpoint:      {storage.endpoint or 'AWS S3'}")
            self.logger.info(f"  Custom domain: {storage.custom_domain or '(none)'}")
            self.logger.info(f"  Bucket:        {storage.bucket}")
            self.logger.info(f"  Prefix:        {storage.prefix or '(none)'}")
        elif storage.provider == 'github':
            self.logger.info(f"  Repository:    {storage.owner}/{storage.repo}")
            self.logger.info(f"  Branch:        {storage.branch}")
            self.logger.info(f"  Path:          {storage.path or '(root)'}")
