"""
StorageObject - A single object reported by a storage provider listing.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class StorageObject:
    """
    Immutable description of an object held in remote storage.
    
    Attributes:
        key: Unique path of the object within the backend
        size: Size in bytes, if the backend reports it
        last_modified: Last modification time, if the backend reports it
        etag: Backend content tag (S3 ETag or git blob sha)
    """
    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
