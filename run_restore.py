"""
Simple runner - just run: python run_restore.py --path <dir>

Usage:
    python run_restore.py --path /srv/backups            # Restore every .mbz in the folder
    python run_restore.py --path /srv/backups --remove   # Delete each backup once restored
    python run_restore.py --help                         # Show all options

Target database and scratch area are configured with RESTOREALL_* environment
variables or a .env file in the working directory.
"""
import sys

from restorer.cli import main


if __name__ == '__main__':
    sys.exit(main())
