"""Tests for configuration classes."""

import pytest

from gallerybuild.config import (
    BuilderConfig,
    GitHubConfig,
    ProjectPaths,
    S3Config,
    env_bool,
    env_int,
    storage_config_from_env,
)

S3_ENV = (
    'S3_BUCKET_NAME', 'S3_REGION', 'S3_ENDPOINT', 'S3_ACCESS_KEY_ID',
    'S3_SECRET_ACCESS_KEY', 'S3_PREFIX', 'S3_CUSTOM_DOMAIN', 'S3_VERIFY_SSL',
)
GITHUB_ENV = (
    'GITHUB_OWNER', 'GITHUB_REPO', 'GITHUB_BRANCH', 'GITHUB_TOKEN',
    'GITHUB_PATH', 'GITHUB_USE_RAW_URL',
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration variables from the environment."""
    for name in S3_ENV + GITHUB_ENV + ('STORAGE_PROVIDER',):
        monkeypatch.delenv(name, raising=False)
    for name in ('BUILDER_CONCURRENCY', 'BUILDER_MAX_PHOTOS', 'BUILDER_CLUSTER_MODE',
                 'BUILDER_WORKER_CONCURRENCY', 'BUILDER_LIVE_PHOTOS'):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvHelpers:
    """Tests for environment parsing helpers."""

    @pytest.mark.parametrize('value', ['1', 'true', 'TRUE', 'yes', 'on'])
    def test_env_bool_true(self, clean_env, value):
        clean_env.setenv('FLAG', value)
        assert env_bool('FLAG', False) is True

    @pytest.mark.parametrize('value', ['0', 'false', 'no', 'off'])
    def test_env_bool_false(self, clean_env, value):
        clean_env.setenv('FLAG', value)
        assert env_bool('FLAG', True) is False

    def test_env_bool_default(self, clean_env):
        clean_env.delenv('FLAG', raising=False)
        assert env_bool('FLAG', True) is True

    def test_env_int_invalid(self, clean_env):
        clean_env.setenv('COUNT', 'ten')
        with pytest.raises(ValueError, match='COUNT'):
            env_int('COUNT', 1)


class TestS3Config:
    """Tests for S3Config class."""

    def test_defaults(self):
        config = S3Config()

        assert config.region == 'us-east-1'
        assert config.prefix == ''
        assert config.verify_ssl is True
        assert config.provider == 's3'

    def test_from_env(self, clean_env):
        clean_env.setenv('S3_BUCKET_NAME', 'photos')
        clean_env.setenv('S3_REGION', 'eu-west-1')
        clean_env.setenv('S3_ENDPOINT', 'https://minio.local:9000')
        clean_env.setenv('S3_ACCESS_KEY_ID', 'key')
        clean_env.setenv('S3_SECRET_ACCESS_KEY', 'secret')
        clean_env.setenv('S3_PREFIX', 'gallery/')
        clean_env.setenv('S3_CUSTOM_DOMAIN', 'https://img.example.com')
        clean_env.setenv('S3_VERIFY_SSL', 'false')

        config = S3Config.from_env()

        assert config.bucket == 'photos'
        assert config.region == 'eu-west-1'
        assert config.endpoint == 'https://minio.local:9000'
        assert config.access_key == 'key'
        assert config.secret_key == 'secret'
        assert config.prefix == 'gallery/'
        assert config.custom_domain == 'https://img.example.com'
        assert config.verify_ssl is False

    def test_validate_valid(self, s3_config):
        assert s3_config.validate() == []

    def test_validate_missing(self):
        errors = S3Config().validate()

        assert len(errors) == 3
        assert any('S3_BUCKET_NAME' in e for e in errors)


class TestGitHubConfig:
    """Tests for GitHubConfig class."""

    def test_from_env(self, clean_env):
        clean_env.setenv('GITHUB_OWNER', 'octo')
        clean_env.setenv('GITHUB_REPO', 'gallery')
        clean_env.setenv('GITHUB_USE_RAW_URL', 'no')

        config = GitHubConfig.from_env()

        assert config.owner == 'octo'
        assert config.repo == 'gallery'
        assert config.branch == 'main'
        assert config.token is None
        assert config.use_raw_url is False
        assert config.provider == 'github'

    def test_validate_missing_repo(self):
        errors = GitHubConfig(owner='octo').validate()

        assert errors == ["GitHub repository is not set (GITHUB_REPO)"]


class TestStorageConfigFromEnv:
    """Tests for provider selection."""

    def test_defaults_to_s3(self, clean_env):
        assert isinstance(storage_config_from_env(), S3Config)

    def test_github(self, clean_env):
        clean_env.setenv('STORAGE_PROVIDER', 'GitHub')
        assert isinstance(storage_config_from_env(), GitHubConfig)

    def test_unknown_provider(self, clean_env):
        clean_env.setenv('STORAGE_PROVIDER', 'ftp')
        with pytest.raises(ValueError, match='ftp'):
            storage_config_from_env()


class TestBuilderConfig:
    """Tests for BuilderConfig class."""

    def test_defaults(self):
        config = BuilderConfig()

        assert config.default_concurrency == 10
        assert config.max_photos == 10000
        assert config.enable_live_photo_detection is True
        assert config.use_cluster_mode is False
        assert config.worker_concurrency == 5
        assert config.max_listed_objects == 1000

    def test_from_env(self, clean_env):
        clean_env.setenv('BUILDER_CONCURRENCY', '4')
        clean_env.setenv('BUILDER_CLUSTER_MODE', 'true')
        clean_env.setenv('BUILDER_WORKER_CONCURRENCY', '2')
        clean_env.setenv('BUILDER_LIVE_PHOTOS', '0')

        config = BuilderConfig.from_env()

        assert config.default_concurrency == 4
        assert config.use_cluster_mode is True
        assert config.worker_concurrency == 2
        assert config.enable_live_photo_detection is False

    def test_validate_includes_storage_errors(self):
        config = BuilderConfig(storage=S3Config(), default_concurrency=0)

        errors = config.validate()

        assert "Concurrency must be at least 1" in errors
        assert any('S3 bucket' in e for e in errors)


class TestProjectPaths:
    """Tests for ProjectPaths class."""

    def test_locations(self, tmp_path):
        paths = ProjectPaths(tmp_path)

        assert paths.manifest_path == tmp_path / 'src' / 'data' / 'photos-manifest.json'
        assert paths.thumbnail_dir == tmp_path / 'public' / 'thumbnails'
        assert paths.thumbnail_path('abc') == tmp_path / 'public' / 'thumbnails' / 'abc.webp'
        assert paths.thumbnail_url('abc') == '/thumbnails/abc.webp'

    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert ProjectPaths().root.resolve() == tmp_path.resolve()
