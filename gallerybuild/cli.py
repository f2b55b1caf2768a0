"""
Command Line Interface for building the photo gallery manifest.
"""

import argparse
import logging
from dataclasses import asdict
from typing import List, Optional

import urllib3

from .builder import PhotoGalleryBuilder
from .config import BuilderConfig, GitHubConfig, ProjectPaths, S3Config, StorageConfig
from .manifest import ManifestStore
from .photo_processor import ProcessorOptions
from .reporter import Reporter

SECRET_FIELDS = {'secret_key', 'access_key', 'token'}


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('gallerybuild')


def apply_storage_overrides(config: StorageConfig, args: argparse.Namespace) -> StorageConfig:
    """Apply CLI overrides to the storage configuration from the environment."""
    if isinstance(config, S3Config):
        if getattr(args, 's3_endpoint', None):
            config.endpoint = args.s3_endpoint
        if getattr(args, 's3_bucket', None):
            config.bucket = args.s3_bucket
        if getattr(args, 's3_region', None):
            config.region = args.s3_region
        if getattr(args, 's3_prefix', None):
            config.prefix = args.s3_prefix
        if getattr(args, 's3_custom_domain', None):
            config.custom_domain = args.s3_custom_domain
        if getattr(args, 's3_access_key', None):
            config.access_key = args.s3_access_key
        if getattr(args, 's3_secret_key', None):
            config.secret_key = args.s3_secret_key
    elif isinstance(config, GitHubConfig):
        if getattr(args, 'github_owner', None):
            config.owner = args.github_owner
        if getattr(args, 'github_repo', None):
            config.repo = args.github_repo
        if getattr(args, 'github_branch', None):
            config.branch = args.github_branch
        if getattr(args, 'github_path', None):
            config.path = args.github_path
        if getattr(args, 'github_token', None):
            config.token = args.github_token
    return config


def get_builder_config(args: argparse.Namespace) -> BuilderConfig:
    """
    Get builder configuration from environment and CLI overrides.

    Raises:
        ValueError: If an environment variable or override is invalid
    """
    config = BuilderConfig.from_env()

    provider = getattr(args, 'storage_provider', None)
    if provider == 's3' and not isinstance(config.storage, S3Config):
        config.storage = S3Config.from_env()
    elif provider == 'github' and not isinstance(config.storage, GitHubConfig):
        config.storage = GitHubConfig.from_env()

    config.storage = apply_storage_overrides(config.storage, args)

    if getattr(args, 'cluster', False):
        config.use_cluster_mode = True
    if getattr(args, 'worker_concurrency', None):
        config.worker_concurrency = args.worker_concurrency

    return config


def mask_secret(value: Optional[str]) -> str:
    """Show only the last four characters of a secret."""
    if not value:
        return '(not set)'
    if len(value) <= 4:
        return '****'
    return '****' + value[-4:]


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    parser.add_argument('--storage-provider', choices=['s3', 'github'],
                        help='Override STORAGE_PROVIDER')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override S3_BUCKET_NAME')
    s3_group.add_argument('--s3-region', help='Override S3_REGION')
    s3_group.add_argument('--s3-prefix', help='Override S3_PREFIX')
    s3_group.add_argument('--s3-custom-domain', help='Override S3_CUSTOM_DOMAIN')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY_ID')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_ACCESS_KEY')

    github_group = parser.add_argument_group('GitHub Storage')
    github_group.add_argument('--github-owner', help='Override GITHUB_OWNER')
    github_group.add_argument('--github-repo', help='Override GITHUB_REPO')
    github_group.add_argument('--github-branch', help='Override GITHUB_BRANCH')
    github_group.add_argument('--github-path', help='Override GITHUB_PATH')
    github_group.add_argument('--github-token', help='Override GITHUB_TOKEN')


def cmd_build(args: argparse.Namespace) -> int:
    """Execute build command."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        config = get_builder_config(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    errors = config.validate()
    if args.worker is not None and args.worker < 1:
        errors.append("--worker must be at least 1")
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    options = ProcessorOptions(
        force_mode=args.force,
        force_manifest=args.force_manifest,
        force_thumbnails=args.force_thumbnails,
    )

    if options.force_mode:
        logger.info("Force mode: rebuilding every photo")
    elif options.force_manifest:
        logger.info("Force manifest: rebuilding manifest data")
    if options.force_thumbnails:
        logger.info("Force thumbnails: regenerating thumbnails")

    try:
        builder = PhotoGalleryBuilder(config, paths=ProjectPaths(args.root), logger=logger)
        builder.build_manifest(options, concurrency=args.worker)
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Build failed: {e}")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    logger = setup_logging(args.verbose)

    try:
        config = get_builder_config(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    paths = ProjectPaths(args.root)

    print("Storage:")
    for name, value in asdict(config.storage).items():
        if name in SECRET_FIELDS:
            value = mask_secret(value)
        print(f"  {name + ':':<22} {value}")

    print("Builder:")
    for name, value in asdict(config).items():
        if name == 'storage':
            continue
        print(f"  {name + ':':<22} {value}")

    print("Paths:")
    print(f"  {'manifest:':<22} {paths.manifest_path}")
    print(f"  {'thumbnails:':<22} {paths.thumbnail_dir}")

    errors = config.validate()
    if errors:
        print()
        for error in errors:
            print(f"  ! {error}")
        return 1

    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Execute report command."""
    logger = setup_logging(args.verbose)

    store = ManifestStore(ProjectPaths(args.root), logger=logger)
    if not store.path.exists():
        logger.error(f"Manifest not found: {store.path}")
        return 1

    reporter = Reporter()
    reporter.report_summary(store.load())
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='gallerybuild',
        description='Photo gallery manifest builder',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Typical workflow:
  1. Check:    python -m gallerybuild config
  2. Build:    python -m gallerybuild build
  3. Report:   python -m gallerybuild report

Storage is configured through environment variables (STORAGE_PROVIDER,
S3_* or GITHUB_*); the options below override them.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Build command
    build_parser = subparsers.add_parser('build', help='Build the photo manifest and thumbnails')
    build_parser.add_argument('--force', action='store_true', help='Reprocess every photo')
    build_parser.add_argument('--force-manifest', action='store_true',
                              help='Rebuild manifest data, reusing thumbnails on disk')
    build_parser.add_argument('--force-thumbnails', action='store_true',
                              help='Regenerate thumbnails and blurhashes')
    build_parser.add_argument('--worker', type=int, metavar='N',
                              help='Concurrent workers (processes in cluster mode)')
    build_parser.add_argument('--cluster', action='store_true',
                              help='Process photos in worker processes')
    build_parser.add_argument('--worker-concurrency', type=int, metavar='N',
                              help='Concurrent tasks per worker process')
    build_parser.add_argument('--root', metavar='PATH', help='Project root (default: current directory)')
    build_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(build_parser)

    # Config command
    config_parser = subparsers.add_parser('config', help='Show the effective configuration')
    config_parser.add_argument('--root', metavar='PATH', help='Project root (default: current directory)')
    config_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(config_parser)

    # Report command
    report_parser = subparsers.add_parser('report', help='Summarize the current manifest')
    report_parser.add_argument('--root', metavar='PATH', help='Project root (default: current directory)')
    report_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'build':
        return cmd_build(parsed_args)
    elif parsed_args.command == 'config':
        return cmd_config(parsed_args)
    elif parsed_args.command == 'report':
        return cmd_report(parsed_args)

    return 1
