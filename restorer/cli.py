"""
Command line entry point: restore all course backups in a directory.
"""

import argparse
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import RestoreConfig, RestoreSettings
from .exceptions import ConfigError
from .orchestrator import RestoreOrchestrator

EXAMPLE = """\
Example:
  restoreall --path=/var/www/moodledata/backups
  restoreall -p /srv/backups --remove
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='restoreall',
        description='Restore all courses to their categories.',
        epilog=EXAMPLE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False
    )
    parser.add_argument('-p', '--path', default='',
                        help='full path to source folder containing course backups')
    parser.add_argument('-r', '--remove', action='store_true',
                        help='remove source backups after a successful restore')
    parser.add_argument('--database-url', default=None,
                        help='SQLAlchemy URL of the target database (default: RESTOREALL_DATABASE_URL)')
    parser.add_argument('--temp-dir', default=None,
                        help='scratch area for extracted backups (default: RESTOREALL_TEMP_DIR)')
    parser.add_argument('--cleanup-scratch', action='store_true',
                        help='remove each extracted backup once it has been processed')
    return parser


def build_config(args: argparse.Namespace) -> RestoreConfig:
    """
    Turn parsed arguments into a run configuration.

    Raises:
        ConfigError: If no source path is given or the settings are invalid
    """
    if not args.path:
        raise ConfigError("--path is required")

    overrides = {}
    if args.database_url:
        overrides['database_url'] = args.database_url
    if args.temp_dir:
        overrides['temp_dir'] = args.temp_dir
    if args.cleanup_scratch:
        overrides['cleanup_scratch'] = True

    try:
        settings = RestoreSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    return RestoreConfig(source_dir=args.path, remove_source=args.remove, settings=settings)


def main(argv: Optional[List[str]] = None) -> int:
    """Run a batch restore from the command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        parser.print_help()
        print(f"\nError: {e.message}", file=sys.stderr)
        return 2

    orchestrator = RestoreOrchestrator(config)
    try:
        orchestrator.run()
    except KeyboardInterrupt:
        print("\nStopped. Archives already restored are kept.")
        return 130
    finally:
        orchestrator.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
