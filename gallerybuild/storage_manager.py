"""
StorageManager - Selects and holds the configured storage provider.
"""

import logging
from typing import Dict, List, Optional

from .config import StorageConfig
from .github_provider import GitHubStorageProvider
from .s3_provider import S3StorageProvider
from .storage_object import StorageObject
from .storage_provider import StorageProvider


class StorageFactory:
    """Creates a storage provider from its configuration."""

    @staticmethod
    def create_provider(
        config: StorageConfig,
        max_objects: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ) -> StorageProvider:
        """
        Create the provider matching config.provider.

        Raises:
            ValueError: For an unknown provider
        """
        if config.provider == 's3':
            return S3StorageProvider(config, max_objects=max_objects, logger=logger)
        if config.provider == 'github':
            return GitHubStorageProvider(config, max_objects=max_objects, logger=logger)
        raise ValueError(f"Unknown storage provider: {config.provider}")


class StorageManager:
    """
    Thin delegate around one StorageProvider.

    A provider built from the configuration is not pickled; the receiving
    process builds its own from the same configuration. An injected provider
    is pickled as is.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        provider: Optional[StorageProvider] = None,
        max_objects: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize storage manager.

        Args:
            config: Storage configuration used to build the provider
            provider: Ready-made provider (takes precedence over config)
            max_objects: Cap on objects returned by a listing
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self.config = config
        self.max_objects = max_objects
        self._built_from_config = provider is None
        if provider is None:
            if config is None:
                raise ValueError("Either a storage config or a provider is required")
            provider = self._create_provider()
        self._provider = provider

    def _create_provider(self) -> StorageProvider:
        return StorageFactory.create_provider(
            self.config, max_objects=self.max_objects, logger=self.logger.getChild('STORAGE')
        )

    def __getstate__(self):
        state = self.__dict__.copy()
        if self._built_from_config:
            state['_provider'] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        if self._provider is None:
            self._provider = self._create_provider()

    @property
    def provider(self) -> StorageProvider:
        return self._provider

    @property
    def prefix(self) -> str:
        return self._provider.prefix

    def get_file(self, key: str, logger: Optional[logging.Logger] = None) -> Optional[bytes]:
        return self._provider.get_file(key, logger)

    def list_images(self) -> List[StorageObject]:
        return self._provider.list_images()

    def list_all_files(self) -> List[StorageObject]:
        return self._provider.list_all_files()

    def generate_public_url(self, key: str) -> str:
        return self._provider.generate_public_url(key)

    def detect_live_photos(
        self,
        objects: Optional[List[StorageObject]] = None
    ) -> Dict[str, StorageObject]:
        """Pair images with videos, listing storage if objects are not given."""
        if objects is None:
            objects = self.list_all_files()
        return self._provider.detect_live_photos(objects)
