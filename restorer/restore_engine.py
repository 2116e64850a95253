"""
Transactional restore of an extracted backup into an existing course.

A restore runs in two phases, a precheck that validates the extracted
backup against the target course, and a plan that writes the course
content. Both run inside one delegated transaction that is committed only
after the plan completes.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .database_storage import DatabaseStorage, DelegatedTransaction
from .db_models import Course, CourseSection, CourseModule
from .exceptions import RestoreAllError, RestoreError
from .metadata import (
    read_backup_contents, read_course_settings, read_section, read_module,
    COURSE_DESCRIPTOR
)
from .models import BackupContents, RestoreResult


class Interactive(Enum):
    NO = 0
    YES = 1


class RestoreMode(Enum):
    GENERAL = 10
    SAMESITE = 40


class RestoreTarget(Enum):
    NEW_COURSE = 1
    EXISTING_ADDING = 3


class ControllerStatus(Enum):
    CREATED = "created"
    PRECHECKED = "prechecked"
    EXECUTED = "executed"
    DESTROYED = "destroyed"


class RestoreController:
    """Drives one restore of an extracted backup into one course."""

    def __init__(
        self,
        folder,
        course_id: int,
        interactive: Interactive,
        mode: RestoreMode,
        user_id: int,
        target: RestoreTarget,
        transaction: DelegatedTransaction,
        trace: Callable[[str], None] = print
    ):
        """
        Args:
            folder: Extracted backup directory
            course_id: Course to restore into
            interactive: Only Interactive.NO is supported
            mode: SAMESITE keeps the course idnumber, GENERAL drops it
            user_id: Identity the restore is executed as
            target: NEW_COURSE requires the course to be empty
            transaction: Open delegated transaction all writes go through
            trace: Progress output
        """
        self.folder = Path(folder)
        self.course_id = course_id
        self.interactive = interactive
        self.mode = mode
        self.user_id = user_id
        self.target = target
        self.transaction = transaction
        self.trace = trace
        self.status = ControllerStatus.CREATED
        self.precheck_results: Dict[str, List[str]] = {'errors': [], 'warnings': []}
        self._contents: Optional[BackupContents] = None

    def execute_precheck(self) -> bool:
        """
        Validate the backup and the target course.

        Results are kept in ``precheck_results``; warnings are traced.

        Returns:
            True if no errors were found
        """
        if self.status is not ControllerStatus.CREATED:
            raise RestoreError(f"Cannot precheck a {self.status.value} restore", course_id=self.course_id)

        errors: List[str] = []
        warnings: List[str] = []

        if self.interactive is not Interactive.NO:
            errors.append("Interactive restores are not supported")
        if self.user_id <= 0:
            errors.append(f"Invalid restore user {self.user_id}")

        try:
            self._contents = read_backup_contents(self.folder)
        except RestoreAllError as e:
            errors.append(e.message)

        if not (self.folder / COURSE_DESCRIPTOR).is_file():
            errors.append("Backup has no course descriptor")

        session = self.transaction.session
        course = session.get(Course, self.course_id)
        if course is None:
            errors.append(f"Target course {self.course_id} does not exist")
        elif self.target is RestoreTarget.NEW_COURSE:
            has_sections = session.query(CourseSection.id).filter(
                CourseSection.course == self.course_id
            ).first() is not None
            if has_sections:
                errors.append(f"Target course {self.course_id} is not empty")

        if self._contents is not None:
            section_ids = set()
            for section in self._contents.sections:
                section_ids.add(section.section_id)
                if not (self.folder / section.directory / "section.xml").is_file():
                    errors.append(f"Missing section data: {section.directory}")
            for activity in self._contents.activities:
                if not (self.folder / activity.directory / "module.xml").is_file():
                    errors.append(f"Missing activity data: {activity.directory}")
                elif activity.section_id not in section_ids:
                    warnings.append(
                        f"Activity {activity.title or activity.module_id} has no section in the backup"
                    )
            if not self._contents.sections:
                warnings.append("Backup contains no sections")

        for warning in warnings:
            self.trace(f"Warning: {warning}")

        self.precheck_results = {'errors': errors, 'warnings': warnings}
        if not errors:
            self.status = ControllerStatus.PRECHECKED
        return not errors

    def execute_plan(self):
        """
        Write the backup content into the target course.

        Nothing is committed here; the caller commits the transaction.

        Raises:
            RestoreError: If the precheck has not passed
            MetadataError: If a section or activity document is malformed
        """
        if self.status is not ControllerStatus.PRECHECKED:
            raise RestoreError("Restore plan executed before a successful precheck",
                               course_id=self.course_id, phase="plan")

        session = self.transaction.session
        now = datetime.utcnow()

        course = session.get(Course, self.course_id)
        settings = read_course_settings(self.folder)
        course.idnumber = settings.idnumber if self.mode is RestoreMode.SAMESITE else ''
        course.summary = settings.summary
        course.format = settings.format
        if settings.startdate:
            course.startdate = datetime.fromtimestamp(settings.startdate, timezone.utc).replace(tzinfo=None)
        course.visible = settings.visible
        course.timemodified = now

        sections: Dict[int, CourseSection] = {}
        for ref in self._contents.sections:
            data = read_section(self.folder, ref.directory)
            section = CourseSection(
                course=self.course_id,
                section=data.number,
                name=data.name,
                summary=data.summary,
                visible=data.visible,
                sequence=''
            )
            session.add(section)
            sections[ref.section_id] = section
        session.flush()

        for ref in self._contents.activities:
            data = read_module(self.folder, ref.directory)
            section = sections.get(data.section_id) or self._fallback_section(session, sections)
            module = CourseModule(
                course=self.course_id,
                section=section.id,
                modname=data.modulename,
                name=ref.title,
                idnumber=data.idnumber,
                visible=data.visible,
                added=now
            )
            session.add(module)
            session.flush()
            section.sequence = ','.join(filter(None, [section.sequence, str(module.id)]))

        session.flush()
        self.status = ControllerStatus.EXECUTED

    def _fallback_section(self, session, sections: Dict[int, CourseSection]) -> CourseSection:
        """Section for activities whose own section is not in the backup."""
        if sections:
            return min(sections.values(), key=lambda s: s.section)
        section = CourseSection(course=self.course_id, section=0, sequence='')
        session.add(section)
        session.flush()
        sections[0] = section
        return section

    def destroy(self):
        """Release the parsed backup."""
        self._contents = None
        self.status = ControllerStatus.DESTROYED


def restore_into_course(
    storage: DatabaseStorage,
    folder,
    course_id: int,
    user_id: int,
    trace: Callable[[str], None] = print
) -> RestoreResult:
    """
    Restore an extracted backup into a course, all or nothing.

    Any failure leaves the transaction uncommitted, so no restored records
    become visible. The course itself was created beforehand and is not
    removed.

    Args:
        storage: Target data store
        folder: Extracted backup directory
        course_id: Empty course to restore into
        user_id: Identity the restore is executed as
        trace: Progress output

    Returns:
        RestoreResult with ok=False and the error message on failure
    """
    try:
        with storage.start_delegated_transaction() as transaction:
            controller = RestoreController(
                folder,
                course_id,
                Interactive.NO,
                RestoreMode.SAMESITE,
                user_id,
                RestoreTarget.NEW_COURSE,
                transaction,
                trace=trace
            )

            if not controller.execute_precheck():
                raise RestoreError(
                    "Precheck failed: " + "; ".join(controller.precheck_results['errors']),
                    course_id=course_id,
                    phase="precheck"
                )

            trace(f"Restoring {Path(folder).name} to course {course_id}")
            controller.execute_plan()
            controller.destroy()

            transaction.allow_commit()

        return RestoreResult(ok=True)

    except Exception as e:
        message = e.message if isinstance(e, RestoreAllError) else str(e)
        return RestoreResult(ok=False, error=message)
