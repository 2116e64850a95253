"""
Readers for the XML documents inside an extracted backup.

Backups come from outside the installation, so every document is parsed
with defusedxml.
"""

from pathlib import Path
from typing import Optional
from xml.etree import ElementTree as ET

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from .exceptions import MetadataError
from .models import (
    CourseMetadata, CourseSettings, BackupContents, SectionRef, ActivityRef,
    SectionData, ModuleData
)

COURSE_DESCRIPTOR = Path("course") / "course.xml"
BACKUP_DESCRIPTOR = Path("moodle_backup.xml")

# Marker the backup format writes for NULL column values
NULL_MARKER = "$@NULL@$"


def get_text(elem: Optional[ET.Element], default: str = "") -> str:
    """Safely get text from an element."""
    if elem is not None and elem.text:
        text = elem.text.strip()
        if text != NULL_MARKER:
            return text
    return default


def to_int(value: Optional[str], default: int = 0) -> int:
    """Lenient integer conversion; anything non-numeric becomes *default*."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _parse(path: Path) -> ET.Element:
    """Parse an XML document and return its root element."""
    if not path.is_file():
        raise MetadataError(f"Failed to open {path.name}", context={'path': str(path)})
    try:
        return DefusedET.parse(path).getroot()
    except (ET.ParseError, DefusedXmlException, OSError) as e:
        raise MetadataError(f"Failed to parse {path.name}: {e}", context={'path': str(path)}) from e


def has_course_descriptor(working_dir) -> bool:
    return (Path(working_dir) / COURSE_DESCRIPTOR).is_file()


def read_course_metadata(working_dir) -> CourseMetadata:
    """
    Read the identity of the backed up course.

    Args:
        working_dir: Extracted backup directory

    Returns:
        CourseMetadata; category_name is empty when the backup has none

    Raises:
        MetadataError: If course/course.xml is missing or malformed
    """
    root = _parse(Path(working_dir) / COURSE_DESCRIPTOR)
    return CourseMetadata(
        source_course_id=to_int(root.get('id')),
        shortname=get_text(root.find('shortname')),
        fullname=get_text(root.find('fullname')),
        category_name=get_text(root.find('category/name')),
    )


def read_course_settings(working_dir) -> CourseSettings:
    """Read the course fields a restore applies to the target course."""
    root = _parse(Path(working_dir) / COURSE_DESCRIPTOR)
    startdate = get_text(root.find('startdate'))
    return CourseSettings(
        idnumber=get_text(root.find('idnumber')),
        summary=get_text(root.find('summary')),
        format=get_text(root.find('format'), 'topics'),
        startdate=to_int(startdate) if startdate else None,
        visible=to_int(get_text(root.find('visible'), '1'), 1) != 0,
    )


def read_backup_contents(working_dir) -> BackupContents:
    """
    Read moodle_backup.xml.

    Raises:
        MetadataError: If the document is missing, malformed or not a backup descriptor
    """
    root = _parse(Path(working_dir) / BACKUP_DESCRIPTOR)
    information = root.find('information')
    if root.tag != 'moodle_backup' or information is None:
        raise MetadataError("moodle_backup.xml is not a backup descriptor")

    contents = BackupContents(
        name=get_text(information.find('name')),
        original_course_id=to_int(get_text(information.find('original_course_id'))),
    )

    for section in information.findall('contents/sections/section'):
        contents.sections.append(SectionRef(
            section_id=to_int(get_text(section.find('sectionid'))),
            title=get_text(section.find('title')),
            directory=get_text(section.find('directory')),
        ))

    for activity in information.findall('contents/activities/activity'):
        contents.activities.append(ActivityRef(
            module_id=to_int(get_text(activity.find('moduleid'))),
            section_id=to_int(get_text(activity.find('sectionid'))),
            modulename=get_text(activity.find('modulename')),
            title=get_text(activity.find('title')),
            directory=get_text(activity.find('directory')),
        ))

    return contents


def read_section(working_dir, directory: str) -> SectionData:
    """Read sections/section_N/section.xml."""
    root = _parse(Path(working_dir) / directory / "section.xml")
    name = get_text(root.find('name'))
    return SectionData(
        number=to_int(get_text(root.find('number'))),
        name=name or None,
        summary=get_text(root.find('summary')),
        visible=to_int(get_text(root.find('visible'), '1'), 1) != 0,
    )


def read_module(working_dir, directory: str) -> ModuleData:
    """Read activities/<mod>_<id>/module.xml."""
    root = _parse(Path(working_dir) / directory / "module.xml")
    modulename = get_text(root.find('modulename'))
    if not modulename:
        raise MetadataError(f"Module without a name in {directory}")
    return ModuleData(
        modulename=modulename,
        section_id=to_int(get_text(root.find('sectionid'))),
        idnumber=get_text(root.find('idnumber')),
        visible=to_int(get_text(root.find('visible'), '1'), 1) != 0,
    )
