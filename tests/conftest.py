"""Shared fixtures: a file-backed SQLite store and a builder for .mbz backups."""

import io
import sys
import tarfile
import zipfile
from pathlib import Path
from xml.sax.saxutils import escape

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from restorer.config import RestoreConfig, RestoreSettings  # noqa: E402
from restorer.database_storage import DatabaseStorage  # noqa: E402
from restorer.extractor import extract_backup  # noqa: E402

DEFAULT_SECTIONS = [
    # (sectionid, number, name)
    (10, 0, None),
    (11, 1, "Week 1"),
]

DEFAULT_ACTIVITIES = [
    # (moduleid, sectionid, modulename, title)
    (20, 10, "forum", "Announcements"),
    (21, 11, "page", "Reading list"),
]


def _course_xml(course_id, shortname, fullname, category):
    category_block = ""
    if category is not None:
        category_block = (
            '  <category id="3">\n'
            f'    <name>{escape(category)}</name>\n'
            '    <description>$@NULL@$</description>\n'
            '  </category>\n'
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<course id="{course_id}" contextid="100">\n'
        f'  <shortname>{escape(shortname)}</shortname>\n'
        f'  <fullname>{escape(fullname)}</fullname>\n'
        '  <idnumber>SRC-1</idnumber>\n'
        '  <summary>Restored summary</summary>\n'
        '  <format>weeks</format>\n'
        '  <startdate>1577836800</startdate>\n'
        '  <visible>1</visible>\n'
        f'{category_block}'
        '</course>\n'
    )


def _backup_xml(course_id, fullname, sections, activities):
    section_items = "".join(
        f"<section><sectionid>{sid}</sectionid><title>{number}</title>"
        f"<directory>sections/section_{sid}</directory></section>"
        for sid, number, _ in sections
    )
    activity_items = "".join(
        f"<activity><moduleid>{mid}</moduleid><sectionid>{sid}</sectionid>"
        f"<modulename>{mod}</modulename><title>{escape(title)}</title>"
        f"<directory>activities/{mod}_{mid}</directory></activity>"
        for mid, sid, mod, title in activities
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<moodle_backup><information>'
        f'<name>backup-{course_id}.mbz</name>'
        f'<original_course_id>{course_id}</original_course_id>'
        f'<original_course_fullname>{escape(fullname)}</original_course_fullname>'
        f'<contents><activities>{activity_items}</activities>'
        f'<sections>{section_items}</sections></contents>'
        '</information></moodle_backup>\n'
    )


def backup_files(
    course_id=5,
    shortname="SCI101",
    fullname="Introduction to Science",
    category="Science",
    sections=None,
    activities=None,
    with_course_xml=True,
    with_backup_xml=True,
    broken_module=False,
):
    """Return {relative path: content} for an extracted backup."""
    sections = DEFAULT_SECTIONS if sections is None else sections
    activities = DEFAULT_ACTIVITIES if activities is None else activities

    files = {}
    if with_backup_xml:
        files["moodle_backup.xml"] = _backup_xml(course_id, fullname, sections, activities)
    if with_course_xml:
        files["course/course.xml"] = _course_xml(course_id, shortname, fullname, category)

    for sid, number, name in sections:
        files[f"sections/section_{sid}/section.xml"] = (
            f'<section id="{sid}"><number>{number}</number>'
            f'<name>{escape(name) if name else "$@NULL@$"}</name>'
            '<summary></summary><visible>1</visible><sequence></sequence></section>'
        )

    for index, (mid, sid, mod, _) in enumerate(activities):
        if broken_module and index == len(activities) - 1:
            files[f"activities/{mod}_{mid}/module.xml"] = "<module><modulename>"
        else:
            files[f"activities/{mod}_{mid}/module.xml"] = (
                f'<module id="{mid}"><modulename>{mod}</modulename>'
                f'<sectionid>{sid}</sectionid><idnumber></idnumber><visible>1</visible></module>'
            )
    return files


def write_archive(path: Path, files: dict, container: str = "zip") -> Path:
    """Pack *files* into a zip or gzip tarball at *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if container == "zip":
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, content in files.items():
                zf.writestr(name, content)
    else:
        with tarfile.open(path, "w:gz") as tf:
            for name, content in files.items():
                data = content.encode("utf-8")
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
    return path


def damage_payload(path: Path, start: int = 60, end: int = 90) -> Path:
    """Flip bytes inside the first member's data, leaving the zip directory intact."""
    data = bytearray(path.read_bytes())
    for i in range(start, min(end, len(data))):
        data[i] ^= 0xFF
    path.write_bytes(bytes(data))
    return path


def mark_encrypted(path: Path) -> Path:
    """Set the encryption flag on every local and central zip header."""
    data = bytearray(path.read_bytes())
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        pos = data.find(signature)
        while pos != -1:
            data[pos + flag_offset] |= 0x01
            pos = data.find(signature, pos + 4)
    path.write_bytes(bytes(data))
    return path


@pytest.fixture()
def source_dir(tmp_path) -> Path:
    path = tmp_path / "backups"
    path.mkdir()
    return path


@pytest.fixture()
def make_backup(source_dir):
    """Factory writing a backup archive into the source directory."""
    def _make(name="course.mbz", container="zip", **kwargs) -> Path:
        return write_archive(source_dir / name, backup_files(**kwargs), container)
    return _make


@pytest.fixture()
def make_extracted(tmp_path):
    """Factory returning an extracted backup directory."""
    counter = {'n': 0}

    def _make(**kwargs) -> Path:
        counter['n'] += 1
        archive = write_archive(tmp_path / "archives" / f"b{counter['n']}.mbz", backup_files(**kwargs))
        return extract_backup(archive, tmp_path / "extracted" / str(counter['n']))
    return _make


@pytest.fixture()
def storage(tmp_path):
    store = DatabaseStorage(database_path=str(tmp_path / "database" / "test.db"))
    yield store
    store.close()


@pytest.fixture()
def settings(tmp_path) -> RestoreSettings:
    return RestoreSettings(
        _env_file=None,
        temp_dir=str(tmp_path / "temp"),
        database_path=str(tmp_path / "database" / "test.db"),
    )


@pytest.fixture()
def make_config(source_dir, settings):
    def _make(remove_source=False, **overrides) -> RestoreConfig:
        run_settings = settings.model_copy(update=overrides) if overrides else settings
        return RestoreConfig(source_dir=str(source_dir), remove_source=remove_source, settings=run_settings)
    return _make
