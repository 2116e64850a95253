"""
Backup archive extraction.

Backups are either ZIP files or gzip-compressed tarballs; both use the
same extension, so the container is detected from the file content.
"""

import tarfile
import zlib
import zipfile
from pathlib import Path

from .exceptions import ExtractionError


def _extract_zip(archive: Path, dest: Path):
    with zipfile.ZipFile(archive, 'r') as zf:
        root = dest.resolve()
        for member in zf.namelist():
            target = (dest / member).resolve()
            if target != root and root not in target.parents:
                raise ExtractionError(f"Unsafe member path: {member}", archive=str(archive))
        zf.extractall(dest)


def _extract_tar(archive: Path, dest: Path):
    with tarfile.open(archive, 'r:*') as tf:
        tf.extractall(dest, filter='data')


def extract_backup(archive, dest) -> Path:
    """
    Unpack a backup archive into *dest*, creating it if needed.

    Args:
        archive: Path to the backup file
        dest: Scratch directory to extract into

    Returns:
        The destination directory

    Raises:
        ExtractionError: If the file is missing, not a known container or corrupt
    """
    archive = Path(archive)
    dest = Path(dest)

    if not archive.is_file():
        raise ExtractionError("Backup file not found", archive=str(archive))

    try:
        dest.mkdir(parents=True, exist_ok=True)
        if zipfile.is_zipfile(archive):
            _extract_zip(archive, dest)
        elif tarfile.is_tarfile(archive):
            _extract_tar(archive, dest)
        else:
            raise ExtractionError("Unknown backup container format", archive=str(archive))
    # zipfile reports encrypted members with RuntimeError and unsupported
    # compression with NotImplementedError
    except (zipfile.BadZipFile, tarfile.TarError, zlib.error, OSError, EOFError,
            RuntimeError, NotImplementedError) as e:
        raise ExtractionError(f"Corrupt backup: {e}", archive=str(archive)) from e

    return dest
