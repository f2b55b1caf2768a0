"""
S3StorageProvider - S3/MinIO backed photo storage.
"""

import logging
import time
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import S3Config
from .storage_object import StorageObject
from .storage_provider import StorageProvider


class S3StorageProvider(StorageProvider):
    """
    Storage provider for S3-compatible object stores.

    Lists objects under the configured prefix, downloads them and builds
    public URLs (custom domain, AWS virtual-host style or endpoint path style).
    """

    PAGE_SIZE = 1000

    def __init__(
        self,
        config: S3Config,
        max_objects: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize S3 provider.

        Args:
            config: S3 configuration
            max_objects: Cap on objects returned by a listing
            logger: Optional logger instance
        """
        super().__init__(max_objects=max_objects, logger=logger)
        self.config = config

        self._client = boto3.client(
            's3',
            endpoint_url=config.endpoint,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'}
            ),
            verify=config.verify_ssl
        )

    @property
    def client(self):
        """Return the underlying boto3 client."""
        return self._client

    @property
    def prefix(self) -> str:
        return self.config.prefix or ''

    def list_all_files(self) -> List[StorageObject]:
        """
        List all objects under the configured prefix.

        Pages through the listing until the object cap is reached. Listing
        errors propagate to the caller.

        Returns:
            StorageObject for every object, in listing order
        """
        paginator = self._client.get_paginator('list_objects_v2')
        page_iterator = paginator.paginate(
            Bucket=self.config.bucket,
            Prefix=self.prefix,
            PaginationConfig={'PageSize': self.PAGE_SIZE},
        )

        objects = []
        for page in page_iterator:
            for obj in page.get('Contents', []):
                key = obj.get('Key')
                if not key:
                    continue
                objects.append(StorageObject(
                    key=key,
                    size=obj.get('Size'),
                    last_modified=obj.get('LastModified'),
                    etag=obj.get('ETag'),
                ))
            if len(objects) > self.max_objects:
                break

        return self._truncate(objects)

    def get_file(self, key: str, logger: Optional[logging.Logger] = None) -> Optional[bytes]:
        """
        Download an object.

        Args:
            key: Object key
            logger: Optional logger for this download

        Returns:
            Object bytes, or None when the object is missing or the
            download fails
        """
        log = logger or self.logger

        try:
            log.info(f"Downloading: {key}")
            start_time = time.time()

            response = self._client.get_object(Bucket=self.config.bucket, Key=key)
            body = response.get('Body')
            if body is None:
                log.error(f"S3 response has no body: {key}")
                return None
            data = body.read()

            duration_ms = (time.time() - start_time) * 1000
            log.info(f"Downloaded: {key} ({len(data) / 1024:.0f}KB, {duration_ms:.0f}ms)")
            return data

        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code in ('NoSuchKey', '404'):
                log.warning(f"Object not found: {key}")
            else:
                log.error(f"Download failed: {key} ({e})")
            return None
        except BotoCoreError as e:
            log.error(f"Download failed: {key} ({e})")
            return None

    def generate_public_url(self, key: str) -> str:
        """
        Build the public URL for a key.

        Args:
            key: Object key

        Returns:
            URL on the custom domain if configured, otherwise on the
            AWS or custom endpoint
        """
        bucket = self.config.bucket

        if self.config.custom_domain:
            custom_domain = self.config.custom_domain.rstrip('/')
            return f"{custom_domain}/{bucket}/{key}"

        endpoint = self.config.endpoint
        if not endpoint or 'amazonaws.com' in endpoint:
            return f"https://{bucket}.s3.{self.config.region}.amazonaws.com/{key}"

        return f"{endpoint.rstrip('/')}/{bucket}/{key}"
