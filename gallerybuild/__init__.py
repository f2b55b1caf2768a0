"""
Photo Gallery Manifest Builder

Builds the gallery manifest from photos held in object storage:
    1. List storage (S3-compatible or a GitHub repository)
    2. Process new and changed photos: dimensions, EXIF, thumbnail, blurhash
    3. Reconcile with the previous manifest and save it sorted by date

Unchanged photos are reused from the previous manifest.
"""

__version__ = "1.0.0"

from .config import BuilderConfig, GitHubConfig, ProjectPaths, S3Config, storage_config_from_env
from .storage_object import StorageObject
from .storage_provider import StorageError, StorageProvider
from .s3_provider import S3StorageProvider
from .github_provider import GitHubStorageProvider
from .storage_manager import StorageFactory, StorageManager
from .worker_pool import WorkerPool
from .cluster_pool import ClusterPool
from .manifest_item import PhotoManifestItem, ProcessPhotoResult
from .thumbnail_generator import ThumbnailGenerator
from .photo_processor import PhotoProcessor, ProcessorOptions
from .manifest import ManifestStore
from .build_stats import BuildStats
from .reporter import Reporter
from .builder import PhotoGalleryBuilder, PhotoTask

__all__ = [
    "BuilderConfig",
    "GitHubConfig",
    "ProjectPaths",
    "S3Config",
    "storage_config_from_env",
    "StorageObject",
    "StorageError",
    "StorageProvider",
    "S3StorageProvider",
    "GitHubStorageProvider",
    "StorageFactory",
    "StorageManager",
    "WorkerPool",
    "ClusterPool",
    "PhotoManifestItem",
    "ProcessPhotoResult",
    "ThumbnailGenerator",
    "PhotoProcessor",
    "ProcessorOptions",
    "ManifestStore",
    "BuildStats",
    "Reporter",
    "PhotoGalleryBuilder",
    "PhotoTask",
]
