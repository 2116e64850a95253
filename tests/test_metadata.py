import pytest

from restorer.exceptions import MetadataError
from restorer.metadata import (
    read_course_metadata, read_course_settings, read_backup_contents,
    read_section, read_module, has_course_descriptor
)


def _write(root, files):
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def test_reads_course_identity(make_extracted):
    folder = make_extracted(course_id=42, shortname="BIO & CHEM", fullname="Biology", category="Life Sciences")

    metadata = read_course_metadata(folder)

    assert metadata.source_course_id == 42
    assert metadata.shortname == "BIO & CHEM"
    assert metadata.fullname == "Biology"
    assert metadata.category_name == "Life Sciences"


def test_missing_category_gives_empty_name(make_extracted):
    assert read_course_metadata(make_extracted(category=None)).category_name == ""
    assert read_course_metadata(make_extracted(category="")).category_name == ""


def test_non_numeric_id_reads_as_zero(tmp_path):
    folder = _write(tmp_path, {"course/course.xml": '<course id="abc"><shortname>S</shortname></course>'})

    metadata = read_course_metadata(folder)

    assert metadata.source_course_id == 0
    assert metadata.fullname == ""


def test_missing_descriptor(tmp_path):
    assert not has_course_descriptor(tmp_path)
    with pytest.raises(MetadataError):
        read_course_metadata(tmp_path)


def test_malformed_descriptor(tmp_path):
    folder = _write(tmp_path, {"course/course.xml": "<course id='2'><shortname>"})

    assert has_course_descriptor(folder)
    with pytest.raises(MetadataError):
        read_course_metadata(folder)


def test_rejects_entity_expansion(tmp_path):
    folder = _write(tmp_path, {"course/course.xml": (
        '<?xml version="1.0"?>\n'
        '<!DOCTYPE course [<!ENTITY a "aaaaaaaaaa">]>\n'
        '<course id="3"><shortname>&a;</shortname></course>'
    )})

    with pytest.raises(MetadataError):
        read_course_metadata(folder)


def test_course_settings(make_extracted):
    settings = read_course_settings(make_extracted())

    assert settings.idnumber == "SRC-1"
    assert settings.summary == "Restored summary"
    assert settings.format == "weeks"
    assert settings.startdate == 1577836800
    assert settings.visible is True


def test_backup_contents(make_extracted):
    contents = read_backup_contents(make_extracted(course_id=7))

    assert contents.original_course_id == 7
    assert [s.section_id for s in contents.sections] == [10, 11]
    assert [(a.module_id, a.modulename, a.directory) for a in contents.activities] == [
        (20, "forum", "activities/forum_20"),
        (21, "page", "activities/page_21"),
    ]


def test_backup_contents_rejects_other_documents(tmp_path):
    folder = _write(tmp_path, {"moodle_backup.xml": "<something/>"})

    with pytest.raises(MetadataError):
        read_backup_contents(folder)


def test_section_and_module(make_extracted):
    folder = make_extracted()

    section = read_section(folder, "sections/section_10")
    named = read_section(folder, "sections/section_11")
    module = read_module(folder, "activities/page_21")

    assert section.number == 0 and section.name is None
    assert named.name == "Week 1"
    assert module.modulename == "page"
    assert module.section_id == 11
