"""
Configuration for storage backends, the builder and on-disk project paths.

Values come from environment variables and can be overridden from the
command line, the same way for every storage backend.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .constants import THUMBNAIL_EXTENSION


def env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name: str, default: int) -> int:
    """Read an integer from the environment."""
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class S3Config:
    """
    Configuration for an S3-compatible storage backend.

    Attributes:
        bucket: Bucket holding the photos
        region: Bucket region
        endpoint: Custom endpoint (MinIO, R2, ...), None for AWS
        access_key: Access key id
        secret_key: Secret access key
        prefix: Key prefix the photos live under
        custom_domain: Domain used for public URLs instead of the endpoint
        verify_ssl: Verify TLS certificates when talking to the endpoint
    """
    bucket: Optional[str] = None
    region: str = 'us-east-1'
    endpoint: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    prefix: str = ''
    custom_domain: str = ''
    verify_ssl: bool = True
    provider: str = field(default='s3', init=False)

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Create configuration from environment variables."""
        return cls(
            bucket=os.environ.get('S3_BUCKET_NAME') or None,
            region=os.environ.get('S3_REGION') or 'us-east-1',
            endpoint=os.environ.get('S3_ENDPOINT') or None,
            access_key=os.environ.get('S3_ACCESS_KEY_ID') or None,
            secret_key=os.environ.get('S3_SECRET_ACCESS_KEY') or None,
            prefix=os.environ.get('S3_PREFIX', ''),
            custom_domain=os.environ.get('S3_CUSTOM_DOMAIN', ''),
            verify_ssl=env_bool('S3_VERIFY_SSL', True),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty when valid)."""
        errors = []
        if not self.bucket:
            errors.append("S3 bucket is not set (S3_BUCKET_NAME)")
        if not self.access_key:
            errors.append("S3 access key is not set (S3_ACCESS_KEY_ID)")
        if not self.secret_key:
            errors.append("S3 secret key is not set (S3_SECRET_ACCESS_KEY)")
        return errors


@dataclass
class GitHubConfig:
    """
    Configuration for a GitHub repository used as photo storage.

    Attributes:
        owner: Repository owner
        repo: Repository name
        branch: Branch to read from
        token: Optional access token (raises the API rate limit)
        path: Base directory inside the repository
        use_raw_url: Link to raw.githubusercontent.com instead of the web view
    """
    owner: Optional[str] = None
    repo: Optional[str] = None
    branch: str = 'main'
    token: Optional[str] = None
    path: str = ''
    use_raw_url: bool = True
    provider: str = field(default='github', init=False)

    @classmethod
    def from_env(cls) -> 'GitHubConfig':
        """Create configuration from environment variables."""
        return cls(
            owner=os.environ.get('GITHUB_OWNER') or None,
            repo=os.environ.get('GITHUB_REPO') or None,
            branch=os.environ.get('GITHUB_BRANCH') or 'main',
            token=os.environ.get('GITHUB_TOKEN') or None,
            path=os.environ.get('GITHUB_PATH', ''),
            use_raw_url=env_bool('GITHUB_USE_RAW_URL', True),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty when valid)."""
        errors = []
        if not self.owner:
            errors.append("GitHub owner is not set (GITHUB_OWNER)")
        if not self.repo:
            errors.append("GitHub repository is not set (GITHUB_REPO)")
        return errors


StorageConfig = Union[S3Config, GitHubConfig]


def storage_config_from_env() -> StorageConfig:
    """Build the storage configuration selected by STORAGE_PROVIDER."""
    provider = (os.environ.get('STORAGE_PROVIDER') or 's3').strip().lower()
    if provider == 's3':
        return S3Config.from_env()
    if provider == 'github':
        return GitHubConfig.from_env()
    raise ValueError(f"Unknown storage provider: {provider}")


@dataclass
class BuilderConfig:
    """
    Options controlling a manifest build.

    Attributes:
        storage: Storage backend configuration
        default_concurrency: Workers (or processes) used when not overridden
        max_photos: Soft limit; exceeding it only logs a warning
        enable_live_photo_detection: Pair images with .mov siblings
        show_detailed_stats: Print the summary at the end of a build
        use_cluster_mode: Process photos in a pool of worker processes
        worker_concurrency: Concurrent tasks inside each worker process
        max_listed_objects: Cap on objects returned by a storage listing
    """
    storage: StorageConfig = field(default_factory=S3Config)
    default_concurrency: int = 10
    max_photos: int = 10000
    enable_live_photo_detection: bool = True
    show_detailed_stats: bool = True
    use_cluster_mode: bool = False
    worker_concurrency: int = 5
    max_listed_objects: int = 1000

    @classmethod
    def from_env(cls) -> 'BuilderConfig':
        """Create configuration from environment variables."""
        return cls(
            storage=storage_config_from_env(),
            default_concurrency=env_int('BUILDER_CONCURRENCY', 10),
            max_photos=env_int('BUILDER_MAX_PHOTOS', 10000),
            enable_live_photo_detection=env_bool('BUILDER_LIVE_PHOTOS', True),
            show_detailed_stats=env_bool('BUILDER_DETAILED_STATS', True),
            use_cluster_mode=env_bool('BUILDER_CLUSTER_MODE', False),
            worker_concurrency=env_int('BUILDER_WORKER_CONCURRENCY', 5),
            max_listed_objects=env_int('BUILDER_MAX_LISTED_OBJECTS', 1000),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors (empty when valid)."""
        errors = list(self.storage.validate())
        if self.default_concurrency < 1:
            errors.append("Concurrency must be at least 1")
        if self.worker_concurrency < 1:
            errors.append("Worker concurrency must be at least 1")
        if self.max_listed_objects < 1:
            errors.append("Listing cap must be at least 1")
        return errors


class ProjectPaths:
    """
    Fixed on-disk locations of the build outputs, relative to a project root.
    """

    MANIFEST_RELATIVE_PATH = Path('src') / 'data' / 'photos-manifest.json'
    THUMBNAIL_RELATIVE_DIR = Path('public') / 'thumbnails'
    THUMBNAIL_URL_PREFIX = '/thumbnails'

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root) if root is not None else Path.cwd()

    @property
    def manifest_path(self) -> Path:
        return self.root / self.MANIFEST_RELATIVE_PATH

    @property
    def thumbnail_dir(self) -> Path:
        return self.root / self.THUMBNAIL_RELATIVE_DIR

    def thumbnail_path(self, photo_id: str) -> Path:
        """Path of the thumbnail artifact for a photo id."""
        return self.thumbnail_dir / f"{photo_id}{THUMBNAIL_EXTENSION}"

    def thumbnail_url(self, photo_id: str) -> str:
        """Site-relative URL of the thumbnail artifact for a photo id."""
        return f"{self.THUMBNAIL_URL_PREFIX}/{photo_id}{THUMBNAIL_EXTENSION}"

    def __repr__(self) -> str:
        return f"ProjectPaths(root={str(self.root)!r})"
