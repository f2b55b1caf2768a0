"""Tests for PhotoGalleryBuilder and PhotoTask."""

import io
import json
import pickle

import pytest

from gallerybuild.builder import PhotoGalleryBuilder, PhotoTask
from gallerybuild.config import BuilderConfig, S3Config
from gallerybuild.photo_processor import ProcessorOptions
from gallerybuild.reporter import Reporter
from gallerybuild.storage_manager import StorageManager
from gallerybuild.storage_provider import StorageProvider


class StaticProvider(StorageProvider):
    """In-memory provider that can be pickled into worker processes."""

    def __init__(self, objects, files):
        super().__init__()
        self.objects = objects
        self.files = files

    def list_all_files(self):
        return list(self.objects)

    def get_file(self, key, logger=None):
        return self.files.get(key)

    def generate_public_url(self, key):
        return f"https://cdn.example.com/{key}"


@pytest.fixture
def builder_config():
    """Fixture providing a builder configuration for a small bucket."""
    return BuilderConfig(
        storage=S3Config(bucket='test-bucket', access_key='key', secret_key='secret'),
        default_concurrency=3,
    )


@pytest.fixture
def report_output():
    return io.StringIO()


@pytest.fixture
def builder(builder_config, mock_storage_manager, project_paths, report_output, logger):
    """Fixture providing a builder wired to the storage double."""
    return PhotoGalleryBuilder(
        builder_config,
        storage_manager=mock_storage_manager,
        paths=project_paths,
        reporter=Reporter(output=report_output),
        logger=logger,
    )


def stock(storage_manager, objects):
    """Serve the given objects from the storage double."""
    storage_manager.list_all_files.return_value = objects
    storage_manager.list_images.return_value = [
        obj for obj in objects if not obj.key.lower().endswith('.mov')
    ]


def manifest_keys(paths):
    data = json.loads(paths.manifest_path.read_text(encoding='utf-8'))
    return sorted(entry['storageKey'] for entry in data)


class TestBuildManifest:
    """Tests for build_manifest."""

    def test_first_build(self, builder, mock_storage_manager, make_object, project_paths, report_output):
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('b.jpg'), make_object('c.jpg')])

        stats = builder.build_manifest()

        assert (stats.new, stats.processed, stats.skipped, stats.failed, stats.deleted) == (3, 3, 0, 0, 0)
        assert stats.total_images == 3
        assert stats.manifest_size == 3
        assert manifest_keys(project_paths) == ['a.jpg', 'b.jpg', 'c.jpg']
        assert 'MANIFEST BUILD COMPLETE' in report_output.getvalue()

    def test_second_build_is_idempotent(self, builder, mock_storage_manager, make_object, project_paths):
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('b.jpg')])
        builder.build_manifest()
        first = project_paths.manifest_path.read_bytes()
        mock_storage_manager.get_file.reset_mock()

        stats = builder.build_manifest()

        assert stats.skipped == 2
        assert stats.processed == 0
        assert mock_storage_manager.get_file.call_count == 0
        assert project_paths.manifest_path.read_bytes() == first

    def test_deleted_photo(self, builder, mock_storage_manager, make_object, project_paths):
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('b.jpg'), make_object('c.jpg')])
        builder.build_manifest()
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('c.jpg')])

        stats = builder.build_manifest()

        assert stats.deleted == 1
        assert stats.skipped == 2
        assert manifest_keys(project_paths) == ['a.jpg', 'c.jpg']

    def test_force_rebuilds_everything(self, builder, mock_storage_manager, make_object):
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('b.jpg')])
        builder.build_manifest()
        stock(mock_storage_manager, [make_object('a.jpg')])

        stats = builder.build_manifest(ProcessorOptions(force_mode=True))

        assert (stats.new, stats.processed, stats.skipped, stats.deleted) == (1, 1, 0, 0)

    def test_failed_photo_left_out(self, builder, mock_storage_manager, make_object, project_paths, sample_image_bytes):
        stock(mock_storage_manager, [make_object('a.jpg'), make_object('broken.jpg')])
        mock_storage_manager.get_file.side_effect = (
            lambda key, logger=None: b'garbage' if key == 'broken.jpg' else sample_image_bytes
        )

        stats = builder.build_manifest()

        assert stats.failed == 1
        assert manifest_keys(project_paths) == ['a.jpg']

    def test_live_photos(self, builder, mock_storage_manager, make_object, project_paths):
        stock(mock_storage_manager, [make_object('IMG_1.jpg'), make_object('IMG_1.mov')])

        builder.build_manifest()

        entry = json.loads(project_paths.manifest_path.read_text(encoding='utf-8'))[0]
        assert entry['isLivePhoto'] is True
        assert entry['livePhotoVideoKey'] == 'IMG_1.mov'

    def test_live_photo_detection_disabled(self, builder, builder_config, mock_storage_manager, make_object, project_paths):
        builder_config.enable_live_photo_detection = False
        stock(mock_storage_manager, [make_object('IMG_1.jpg'), make_object('IMG_1.mov')])

        builder.build_manifest()

        entry = json.loads(project_paths.manifest_path.read_text(encoding='utf-8'))[0]
        assert entry['isLivePhoto'] is False
        mock_storage_manager.detect_live_photos.assert_not_called()

    def test_empty_storage(self, builder, project_paths):
        stats = builder.build_manifest()

        assert stats.manifest_size == 0
        assert json.loads(project_paths.manifest_path.read_text(encoding='utf-8')) == []

    def test_listing_failure_propagates(self, builder, mock_storage_manager, project_paths):
        mock_storage_manager.list_all_files.side_effect = RuntimeError('listing failed')

        with pytest.raises(RuntimeError):
            builder.build_manifest()

        assert not project_paths.manifest_path.exists()

    def test_quiet_without_detailed_stats(self, builder, builder_config, report_output):
        builder_config.show_detailed_stats = False

        builder.build_manifest()

        assert report_output.getvalue() == ''


class TestClusterMode:
    """Tests for building with worker processes."""

    @pytest.fixture
    def cluster_builder(self, builder_config, project_paths, report_output, make_object, sample_image_bytes):
        builder_config.use_cluster_mode = True
        builder_config.worker_concurrency = 1
        objects = [make_object('a.jpg'), make_object('b.jpg'), make_object('b.mov')]
        files = {obj.key: sample_image_bytes for obj in objects}
        return PhotoGalleryBuilder(
            builder_config,
            storage_manager=StorageManager(provider=StaticProvider(objects, files)),
            paths=project_paths,
            reporter=Reporter(output=report_output),
        )

    def test_uses_injected_storage(self, cluster_builder, project_paths):
        stats = cluster_builder.build_manifest(concurrency=2)

        assert (stats.new, stats.failed) == (2, 0)
        data = json.loads(project_paths.manifest_path.read_text(encoding='utf-8'))
        assert {entry['originalUrl'] for entry in data} == {
            'https://cdn.example.com/a.jpg',
            'https://cdn.example.com/b.jpg',
        }
        assert [entry['livePhotoVideoKey'] for entry in data if entry['isLivePhoto']] == ['b.mov']

    def test_unchanged_photos_skipped(self, cluster_builder):
        cluster_builder.build_manifest(concurrency=2)

        stats = cluster_builder.build_manifest(concurrency=2)

        assert (stats.skipped, stats.processed) == (2, 0)

    def test_force_flags_reach_worker_processes(self, cluster_builder):
        cluster_builder.build_manifest(concurrency=2)

        stats = cluster_builder.build_manifest(ProcessorOptions(force_thumbnails=True), concurrency=2)

        assert (stats.processed, stats.skipped, stats.new) == (2, 0, 0)


class TestPhotoTask:
    """Tests for PhotoTask."""

    def test_pickle_drops_processor(self, mocker, project_paths, make_object):
        storage_manager = StorageManager(provider=StaticProvider([make_object('a.jpg')], {'a.jpg': b'data'}))
        task = PhotoTask(
            [make_object('a.jpg')],
            {},
            {},
            project_paths,
            storage_manager=storage_manager,
            options=ProcessorOptions(force_mode=True),
            processor=mocker.sentinel.processor,
        )

        restored = pickle.loads(pickle.dumps(task))

        assert restored._processor is None
        assert restored.options is None
        assert restored.storage_manager.get_file('a.jpg') == b'data'
        assert restored.image_objects[0].key == 'a.jpg'

    def test_calls_processor(self, mocker, project_paths, make_object):
        processor = mocker.MagicMock()
        objects = [make_object('a.jpg'), make_object('b.jpg')]
        task = PhotoTask(objects, {}, {}, project_paths, processor=processor)

        task(1, 4)

        processor.process.assert_called_once_with(objects[1], 1, 4, 2, {}, {})

    def test_requires_storage_manager(self, project_paths, make_object):
        task = PhotoTask([make_object('a.jpg')], {}, {}, project_paths)

        with pytest.raises(ValueError):
            task(0, 1)
