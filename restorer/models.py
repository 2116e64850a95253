"""
Data models for batch course restores.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class RestoreOutcome(str, Enum):
    """Terminal state of a single archive."""
    RESTORED = "Restored"
    SKIPPED_SITE_COURSE = "SkippedSiteCourse"
    SKIPPED_MISSING_METADATA = "SkippedMissingMetadata"
    SKIPPED_EXTRACTION_FAILED = "SkippedExtractionFailed"
    SKIPPED_RESTORE_FAILED = "SkippedRestoreFailed"
    FAILED = "Failed"


class CategoryStatus(str, Enum):
    """How a category id was obtained."""
    FOUND = "Found"
    CREATED = "Created"
    USED_DEFAULT = "UsedDefault"


@dataclass(frozen=True)
class BackupArchive:
    """A backup file discovered in the source directory."""
    source_path: Path

    @property
    def name(self) -> str:
        return self.source_path.name


@dataclass
class ExtractedBackup:
    """An archive unpacked into its scratch directory."""
    working_dir: Path
    archive: BackupArchive


@dataclass(frozen=True)
class CourseMetadata:
    """Course identity read from course/course.xml."""
    source_course_id: int
    shortname: str
    fullname: str
    category_name: str = ""


@dataclass(frozen=True)
class CategoryResolution:
    """Result of resolving a category name."""
    category_id: int
    status: CategoryStatus


@dataclass
class RestoreResult:
    """Result of a transactional restore call."""
    ok: bool
    error: Optional[str] = None


@dataclass
class ItemResult:
    """Outcome for one archive."""
    archive: BackupArchive
    outcome: RestoreOutcome
    course_id: Optional[int] = None
    category_id: Optional[int] = None
    category_status: Optional[CategoryStatus] = None
    source_removed: bool = False
    message: str = ""


@dataclass
class RunResult:
    """Result of a whole batch run."""
    source_dir: str
    started_at: str
    completed_at: str = ""
    total_found: int = 0
    items: List[ItemResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    def count(self, outcome: RestoreOutcome) -> int:
        """Number of archives that ended in *outcome*."""
        return sum(1 for item in self.items if item.outcome is outcome)

    @property
    def total_restored(self) -> int:
        return self.count(RestoreOutcome.RESTORED)

    @property
    def total_failed(self) -> int:
        return self.count(RestoreOutcome.FAILED)

    @property
    def total_skipped(self) -> int:
        return len(self.items) - self.total_restored - self.total_failed


@dataclass(frozen=True)
class CourseSettings:
    """Course fields applied by a restore, read from course/course.xml."""
    idnumber: str = ""
    summary: str = ""
    format: str = "topics"
    startdate: Optional[int] = None  # unix timestamp
    visible: bool = True


@dataclass(frozen=True)
class SectionRef:
    """Section listed in moodle_backup.xml."""
    section_id: int
    title: str
    directory: str


@dataclass(frozen=True)
class ActivityRef:
    """Activity listed in moodle_backup.xml."""
    module_id: int
    section_id: int
    modulename: str
    title: str
    directory: str


@dataclass
class BackupContents:
    """Contents section of moodle_backup.xml."""
    name: str
    original_course_id: int
    sections: List[SectionRef] = field(default_factory=list)
    activities: List[ActivityRef] = field(default_factory=list)


@dataclass(frozen=True)
class SectionData:
    """A section as stored in sections/section_N/section.xml."""
    number: int
    name: Optional[str]
    summary: str
    visible: bool


@dataclass(frozen=True)
class ModuleData:
    """An activity as stored in activities/<mod>_<id>/module.xml."""
    modulename: str
    section_id: int
    idnumber: str
    visible: bool
