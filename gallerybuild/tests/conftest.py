"""
Pytest fixtures for gallerybuild tests.
"""

import io
import logging
import struct
from datetime import datetime, timezone

import pytest
from PIL import Image


@pytest.fixture
def s3_config():
    """Fixture providing S3 configuration."""
    from gallerybuild.config import S3Config

    return S3Config(
        endpoint='https://test-endpoint.example.com:9000',
        bucket='test-bucket',
        prefix='photos/',
        access_key='test-access-key',
        secret_key='test-secret-key',
        region='us-east-1',
    )


@pytest.fixture
def github_config():
    """Fixture providing GitHub configuration."""
    from gallerybuild.config import GitHubConfig

    return GitHubConfig(
        owner='octo',
        repo='gallery',
        branch='main',
        token='ghp_testtoken1234',
        path='photos',
    )


@pytest.fixture
def project_paths(tmp_path):
    """Fixture providing project paths under a temporary root."""
    from gallerybuild.config import ProjectPaths

    return ProjectPaths(tmp_path)


def make_jpeg(width=800, height=600, color='red', exif=None):
    """Encode a solid-color JPEG, optionally with EXIF."""
    img = Image.new('RGB', (width, height), color=color)
    buffer = io.BytesIO()
    if exif is not None:
        img.save(buffer, format='JPEG', exif=exif)
    else:
        img.save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes (800x600)."""
    return make_jpeg()


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    img = Image.new('RGBA', (100, 50), color=(255, 0, 0, 128))
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def exif_image_bytes():
    """Fixture providing a JPEG with camera make/model and capture date."""
    exif = Image.Exif()
    exif[0x010F] = 'FUJIFILM'
    exif[0x0110] = 'X-T4'
    exif[0x8769] = {0x9003: '2023:07:04 18:30:00'}
    return make_jpeg(exif=exif)


def build_fuji_maker_note(entries):
    """
    Build a little-endian FUJIFILM maker note.

    Args:
        entries: List of (tag, type, values) with type 3 (SHORT),
            4 (LONG) or 9 (SLONG)
    """
    formats = {3: ('H', 2), 4: ('I', 4), 9: ('i', 4)}
    ifd_offset = 12
    data_offset = ifd_offset + 2 + 12 * len(entries) + 4

    ifd = struct.pack('<H', len(entries))
    data_area = b''
    for tag, type_id, values in entries:
        fmt, size = formats[type_id]
        if not isinstance(values, (list, tuple)):
            values = [values]
        packed = struct.pack(f'<{len(values)}{fmt}', *values)
        ifd += struct.pack('<HHI', tag, type_id, len(values))
        if len(packed) <= 4:
            ifd += packed.ljust(4, b'\0')
        else:
            ifd += struct.pack('<I', data_offset + len(data_area))
            data_area += packed
    ifd += struct.pack('<I', 0)

    return b'FUJIFILM' + struct.pack('<I', ifd_offset) + ifd + data_area


@pytest.fixture
def make_object():
    """Factory for StorageObject instances."""
    from gallerybuild.storage_object import StorageObject

    def _make(key, size=1000, last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc), etag=None):
        return StorageObject(key=key, size=size, last_modified=last_modified, etag=etag)

    return _make


@pytest.fixture
def mock_storage_manager(mocker, sample_image_bytes):
    """Fixture providing a storage manager double serving one JPEG for every key."""
    from gallerybuild.live_photo import detect_live_photos

    manager = mocker.MagicMock()
    manager.prefix = ''
    manager.get_file.return_value = sample_image_bytes
    manager.generate_public_url.side_effect = lambda key: f"https://cdn.example.com/{key}"
    manager.list_all_files.return_value = []
    manager.list_images.return_value = []
    manager.detect_live_photos.side_effect = lambda objects=None: detect_live_photos(objects or [])
    return manager


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    return logging.getLogger('test')


@pytest.fixture
def jpeg_factory():
    """Fixture providing the JPEG encoder."""
    return make_jpeg


@pytest.fixture
def fuji_maker_note():
    """Fixture providing the FUJIFILM maker note builder."""
    return build_fuji_maker_note


@pytest.fixture
def make_item():
    """Factory for PhotoManifestItem instances."""
    from gallerybuild.manifest_item import PhotoManifestItem, photo_id_for_key

    def _make(key, date_taken='2024-01-01T00:00:00Z', last_modified='2024-01-01T00:00:00Z', **kwargs):
        values = dict(
            id=photo_id_for_key(key),
            title='Title',
            description='',
            date_taken=date_taken,
            views=0,
            tags=[],
            original_url=f"https://cdn.example.com/{key}",
            thumbnail_url=None,
            blurhash=None,
            width=800,
            height=600,
            aspect_ratio=800 / 600,
            storage_key=key,
            last_modified=last_modified,
            size_bytes=1000,
        )
        values.update(kwargs)
        return PhotoManifestItem(**values)

    return _make
