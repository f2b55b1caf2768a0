"""
StorageProvider - Capability surface shared by every storage backend.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .constants import SUPPORTED_FORMATS
from .live_photo import detect_live_photos
from .storage_object import StorageObject


class StorageError(Exception):
    """Raised when a storage backend cannot be listed."""


class StorageProvider(ABC):
    """
    Base class for storage backends.
    
    Subclasses implement listing, fetching and URL generation; image
    filtering and Live Photo pairing are shared.
    """
    
    IMAGE_EXTENSIONS = SUPPORTED_FORMATS
    DEFAULT_MAX_OBJECTS = 1000
    
    def __init__(self, max_objects: Optional[int] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize provider.
        
        Args:
            max_objects: Cap on objects returned by a listing
            logger: Optional logger instance
        """
        self.max_objects = max_objects or self.DEFAULT_MAX_OBJECTS
        self.logger = logger or logging.getLogger(__name__)
    
    @property
    def prefix(self) -> str:
        """Key prefix photos live under (used to derive tags)."""
        return ''
    
    @abstractmethod
    def list_all_files(self) -> List[StorageObject]:
        """List every object under the configured root."""
    
    @abstractmethod
    def get_file(self, key: str, logger: Optional[logging.Logger] = None) -> Optional[bytes]:
        """Fetch raw object content, or None if it cannot be fetched."""
    
    @abstractmethod
    def generate_public_url(self, key: str) -> str:
        """Map a key to an externally reachable URL."""
    
    def list_images(self) -> List[StorageObject]:
        """List objects whose extension is a supported image format."""
        return [obj for obj in self.list_all_files() if self.is_image(obj.key)]
    
    def detect_live_photos(self, objects: List[StorageObject]) -> Dict[str, StorageObject]:
        """Pair images with co-located .mov videos."""
        return detect_live_photos(objects, self.IMAGE_EXTENSIONS)
    
    @classmethod
    def is_image(cls, key: str) -> bool:
        """Check whether a key has a supported image extension."""
        return posixpath.splitext(key)[1].lower() in cls.IMAGE_EXTENSIONS
    
    def _truncate(self, objects: List[StorageObject]) -> List[StorageObject]:
        """Apply the listing cap, logging when it truncates."""
        if len(objects) > self.max_objects:
            self.logger.warning(
                f"Listing returned more than {self.max_objects:,} objects; "
                f"only the first {self.max_objects:,} will be used"
            )
            return objects[:self.max_objects]
        return objects
