"""
GitHubStorageProvider - Photos stored in a GitHub repository.
"""

import base64
import logging
import re
import time
from typing import List, Optional

import requests

from .config import GitHubConfig
from .storage_object import StorageObject
from .storage_provider import StorageError, StorageProvider


class GitHubStorageProvider(StorageProvider):
    """
    Storage provider backed by the GitHub contents API.

    Directories are walked recursively from the configured base path. Keys
    are relative to that base path.
    """

    API_ROOT = 'https://api.github.com'
    USER_AGENT = 'gallerybuild/1.0'
    TIMEOUT = 30

    def __init__(
        self,
        config: GitHubConfig,
        max_objects: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize GitHub provider.

        Args:
            config: GitHub configuration
            max_objects: Cap on objects returned by a listing
            logger: Optional logger instance
            session: Optional requests session (a new one is created if omitted)
        """
        super().__init__(max_objects=max_objects, logger=logger)

        if not config.owner or not config.repo:
            raise ValueError("GitHub owner and repo must be configured")

        self.config = config
        self.base_path = (config.path or '').strip('/')
        self.base_api_url = f"{self.API_ROOT}/repos/{config.owner}/{config.repo}"

        self.session = session or requests.Session()
        self.session.headers.update(self._auth_headers())

    def _auth_headers(self) -> dict:
        headers = {
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': self.USER_AGENT,
        }
        if self.config.token:
            headers['Authorization'] = f"Bearer {self.config.token}"
        return headers

    def _full_path(self, key: str) -> str:
        """Repository path for a key."""
        normalized = key.lstrip('/')
        if self.base_path:
            return re.sub(r'/+', '/', f"{self.base_path}/{normalized}")
        return normalized

    def _relative_key(self, repo_path: str) -> str:
        """Key for a repository path (relative to the base path)."""
        if self.base_path and repo_path.startswith(f"{self.base_path}/"):
            return repo_path[len(self.base_path) + 1:]
        return repo_path

    def _contents_url(self, repo_path: str) -> str:
        return f"{self.base_api_url}/contents/{repo_path}"

    @staticmethod
    def _describe_failure(response: requests.Response) -> str:
        """Human readable reason for a failed API response."""
        if response.status_code in (403, 429) and response.headers.get('X-RateLimit-Remaining') == '0':
            reset = response.headers.get('X-RateLimit-Reset', 'unknown')
            return f"GitHub API rate limit exceeded (resets at {reset})"
        return f"GitHub API request failed: {response.status_code} {response.reason}"

    def list_all_files(self) -> List[StorageObject]:
        """
        List every file below the base path.

        Raises:
            StorageError: If the API refuses a listing request
        """
        objects: List[StorageObject] = []
        self._list_recursive(self.base_path, objects)
        return self._truncate(objects)

    def _list_recursive(self, dir_path: str, objects: List[StorageObject]) -> None:
        if len(objects) > self.max_objects:
            return

        try:
            response = self.session.get(
                self._contents_url(dir_path),
                params={'ref': self.config.branch},
                timeout=self.TIMEOUT,
            )
        except requests.RequestException as e:
            raise StorageError(f"Failed to list {dir_path or '/'}: {e}") from e

        if response.status_code == 404:
            self.logger.warning(f"Directory not found in repository: {dir_path or '/'}")
            return
        if not response.ok:
            raise StorageError(f"Failed to list {dir_path or '/'}: {self._describe_failure(response)}")

        contents = response.json()
        if isinstance(contents, dict):
            contents = [contents]

        for item in contents:
            if item.get('type') == 'file':
                objects.append(StorageObject(
                    key=self._relative_key(item['path']),
                    size=item.get('size'),
                    # The contents API carries no modification time
                    last_modified=None,
                    etag=item.get('sha'),
                ))
            elif item.get('type') == 'dir':
                self._list_recursive(item['path'], objects)

    def get_file(self, key: str, logger: Optional[logging.Logger] = None) -> Optional[bytes]:
        """
        Download a file from the repository.

        Args:
            key: Key relative to the base path
            logger: Optional logger for this download

        Returns:
            File bytes, or None when the file is missing or the download fails
        """
        log = logger or self.logger

        try:
            log.info(f"Downloading: {key}")
            start_time = time.time()

            response = self.session.get(
                self._contents_url(self._full_path(key)),
                params={'ref': self.config.branch},
                timeout=self.TIMEOUT,
            )

            if response.status_code == 404:
                log.warning(f"File not found: {key}")
                return None
            if not response.ok:
                log.error(f"Download failed: {key} ({self._describe_failure(response)})")
                return None

            data = response.json()
            if data.get('type') != 'file':
                log.error(f"Path is not a file: {key}")
                return None

            if data.get('download_url'):
                file_response = self.session.get(data['download_url'], timeout=self.TIMEOUT)
                if not file_response.ok:
                    log.error(f"Download failed: {key} ({self._describe_failure(file_response)})")
                    return None
                content = file_response.content
            elif data.get('content') and data.get('encoding') == 'base64':
                content = base64.b64decode(data['content'])
            else:
                log.error(f"No content available for: {key}")
                return None

            duration_ms = (time.time() - start_time) * 1000
            log.info(f"Downloaded: {key} ({len(content) / 1024:.0f}KB, {duration_ms:.0f}ms)")
            return content

        except (requests.RequestException, ValueError) as e:
            log.error(f"Download failed: {key} ({e})")
            return None

    def generate_public_url(self, key: str) -> str:
        """Raw-content URL, or the web view URL when use_raw_url is off."""
        full_path = self._full_path(key)
        owner, repo, branch = self.config.owner, self.config.repo, self.config.branch

        if self.config.use_raw_url:
            return f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{full_path}"
        return f"https://github.com/{owner}/{repo}/blob/{branch}/{full_path}"
