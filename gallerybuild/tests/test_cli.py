"""Tests for the command line interface."""

import json

import pytest

from gallerybuild import cli
from gallerybuild.config import GitHubConfig, S3Config

STORAGE_ENV = (
    'STORAGE_PROVIDER', 'S3_BUCKET_NAME', 'S3_REGION', 'S3_ENDPOINT', 'S3_ACCESS_KEY_ID',
    'S3_SECRET_ACCESS_KEY', 'S3_PREFIX', 'S3_CUSTOM_DOMAIN', 'GITHUB_OWNER', 'GITHUB_REPO',
    'GITHUB_TOKEN', 'GITHUB_PATH', 'BUILDER_CONCURRENCY', 'BUILDER_CLUSTER_MODE',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in STORAGE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def s3_env(monkeypatch):
    monkeypatch.setenv('S3_BUCKET_NAME', 'photos-bucket')
    monkeypatch.setenv('S3_ACCESS_KEY_ID', 'AKIAEXAMPLE1234')
    monkeypatch.setenv('S3_SECRET_ACCESS_KEY', 'supersecretvalue9876')


class TestParser:
    """Tests for argument parsing."""

    def test_build_arguments(self):
        args = cli.create_parser().parse_args([
            'build', '--force-thumbnails', '--worker', '8', '--cluster',
            '--worker-concurrency', '2', '--s3-bucket', 'other',
        ])

        assert args.command == 'build'
        assert args.force_thumbnails is True
        assert args.force is False
        assert args.worker == 8
        assert args.cluster is True
        assert args.worker_concurrency == 2
        assert args.s3_bucket == 'other'

    def test_no_command(self):
        assert cli.main([]) == 1


class TestBuilderConfig:
    """Tests for get_builder_config."""

    def test_overrides(self, s3_env):
        args = cli.create_parser().parse_args(['build', '--s3-prefix', 'gallery/', '--cluster'])

        config = cli.get_builder_config(args)

        assert isinstance(config.storage, S3Config)
        assert config.storage.bucket == 'photos-bucket'
        assert config.storage.prefix == 'gallery/'
        assert config.use_cluster_mode is True

    def test_provider_override(self, s3_env):
        args = cli.create_parser().parse_args([
            'config', '--storage-provider', 'github', '--github-owner', 'octo', '--github-repo', 'pics',
        ])

        config = cli.get_builder_config(args)

        assert isinstance(config.storage, GitHubConfig)
        assert (config.storage.owner, config.storage.repo) == ('octo', 'pics')


class TestMaskSecret:
    """Tests for mask_secret."""

    @pytest.mark.parametrize('value, expected', [
        (None, '(not set)'),
        ('', '(not set)'),
        ('abc', '****'),
        ('supersecretvalue9876', '****9876'),
    ])
    def test_mask(self, value, expected):
        assert cli.mask_secret(value) == expected


class TestCommands:
    """Tests for subcommands."""

    def test_config_masks_secrets(self, s3_env, capsys, tmp_path):
        assert cli.main(['config', '--root', str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert 'photos-bucket' in out
        assert '****9876' in out
        assert 'supersecretvalue9876' not in out
        assert 'AKIAEXAMPLE1234' not in out

    def test_config_reports_invalid(self, capsys, tmp_path):
        assert cli.main(['config', '--root', str(tmp_path)]) == 1

        assert 'S3 bucket is not set' in capsys.readouterr().out

    def test_build_invalid_config(self, mocker, tmp_path):
        builder_class = mocker.patch('gallerybuild.cli.PhotoGalleryBuilder')

        assert cli.main(['build', '--root', str(tmp_path)]) == 1
        builder_class.assert_not_called()

    def test_build_invalid_worker_count(self, s3_env, mocker, tmp_path):
        mocker.patch('gallerybuild.cli.PhotoGalleryBuilder')

        assert cli.main(['build', '--root', str(tmp_path), '--worker', '0']) == 1

    def test_build_invalid_env_number(self, s3_env, monkeypatch, tmp_path):
        monkeypatch.setenv('BUILDER_CONCURRENCY', 'many')

        assert cli.main(['build', '--root', str(tmp_path)]) == 1

    def test_build_success(self, s3_env, mocker, tmp_path):
        builder_class = mocker.patch('gallerybuild.cli.PhotoGalleryBuilder')

        assert cli.main(['build', '--root', str(tmp_path), '--force', '--worker', '4']) == 0

        options = builder_class.return_value.build_manifest.call_args[0][0]
        assert options.force_mode is True
        assert builder_class.return_value.build_manifest.call_args[1] == {'concurrency': 4}

    def test_build_failure(self, s3_env, mocker, tmp_path):
        builder_class = mocker.patch('gallerybuild.cli.PhotoGalleryBuilder')
        builder_class.return_value.build_manifest.side_effect = RuntimeError('storage down')

        assert cli.main(['build', '--root', str(tmp_path)]) == 1

    def test_build_interrupted(self, s3_env, mocker, tmp_path):
        builder_class = mocker.patch('gallerybuild.cli.PhotoGalleryBuilder')
        builder_class.return_value.build_manifest.side_effect = KeyboardInterrupt

        assert cli.main(['build', '--root', str(tmp_path)]) == 130

    def test_report_missing_manifest(self, tmp_path):
        assert cli.main(['report', '--root', str(tmp_path)]) == 1

    def test_report(self, tmp_path, capsys, make_item):
        manifest = tmp_path / 'src' / 'data' / 'photos-manifest.json'
        manifest.parent.mkdir(parents=True)
        manifest.write_text(json.dumps([make_item('a.jpg').to_dict()]), encoding='utf-8')

        assert cli.main(['report', '--root', str(tmp_path)]) == 0

        assert 'Total Photos:         1' in capsys.readouterr().out
