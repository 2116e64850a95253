"""
Discovery of backup archives in a source directory.
"""

import os
from pathlib import Path
from typing import List

from .exceptions import DirectoryUnreadable
from .models import BackupArchive


def is_backup_archive(path: Path, suffix: str = ".mbz") -> bool:
    """Check whether *path* has the backup extension, ignoring case."""
    return path.suffix.lower() == suffix.lower()


def scan_backups(source_dir, suffix: str = ".mbz") -> List[BackupArchive]:
    """
    List backup archives in a directory.

    Entries are returned in directory order, not sorted.

    Args:
        source_dir: Directory to scan
        suffix: Archive file extension, matched case-insensitively

    Returns:
        List of BackupArchive

    Raises:
        DirectoryUnreadable: If the directory cannot be listed
    """
    source = Path(source_dir)
    try:
        with os.scandir(source) as entries:
            return [
                BackupArchive(source_path=source / entry.name)
                for entry in entries
                if entry.is_file() and is_backup_archive(Path(entry.name), suffix)
            ]
    except OSError as e:
        raise DirectoryUnreadable(
            f"Cannot read source directory: {e.strerror or e}",
            context={'path': str(source)}
        ) from e
