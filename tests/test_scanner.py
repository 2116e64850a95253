import os

import pytest

from restorer.exceptions import DirectoryUnreadable
from restorer.scanner import scan_backups, is_backup_archive


def test_filters_backup_extension_case_insensitively(source_dir):
    for name in ["a.mbz", "B.MBZ", "c.Mbz", "notes.txt", "archive.zip", "mbz"]:
        (source_dir / name).write_bytes(b"x")

    names = {archive.name for archive in scan_backups(source_dir)}

    assert names == {"a.mbz", "B.MBZ", "c.Mbz"}


def test_keeps_directory_order(source_dir):
    for name in ["z.mbz", "a.mbz", "m.mbz", "b.mbz"]:
        (source_dir / name).write_bytes(b"x")
    expected = [entry.name for entry in os.scandir(source_dir) if entry.name.endswith(".mbz")]

    assert [archive.name for archive in scan_backups(source_dir)] == expected


def test_ignores_directories_with_backup_extension(source_dir):
    (source_dir / "folder.mbz").mkdir()
    (source_dir / "real.mbz").write_bytes(b"x")

    assert [a.name for a in scan_backups(source_dir)] == ["real.mbz"]


def test_empty_directory(source_dir):
    assert scan_backups(source_dir) == []


def test_missing_directory_raises(tmp_path):
    with pytest.raises(DirectoryUnreadable) as excinfo:
        scan_backups(tmp_path / "nope")
    assert str(tmp_path / "nope") in excinfo.value.context['path']


def test_custom_suffix(source_dir):
    (source_dir / "one.bak").write_bytes(b"x")
    (source_dir / "two.mbz").write_bytes(b"x")

    assert [a.name for a in scan_backups(source_dir, suffix=".BAK")] == ["one.bak"]
    assert is_backup_archive(source_dir / "x.BaK", ".bak")
