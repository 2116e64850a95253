"""
Main orchestrator for batch course restores.
Coordinates scanning, extraction, category resolution and restore per archive.
"""

import hashlib
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .category_resolver import CategoryResolver
from .config import RestoreConfig
from .database_storage import DatabaseStorage
from .exceptions import DirectoryUnreadable, ExtractionError, MetadataError, PolicyError
from .extractor import extract_backup
from .metadata import has_course_descriptor, read_course_metadata
from .models import (
    BackupArchive, ExtractedBackup, ItemResult, RestoreOutcome, RunResult, CategoryStatus
)
from .reporter import RunReporter
from .restore_engine import restore_into_course
from .scanner import scan_backups

# Id of the site-level course, which is never restored
SITE_COURSE_ID = 1


def create_storage(config: RestoreConfig) -> DatabaseStorage:
    """Create the data store described by the run settings."""
    settings = config.settings
    return DatabaseStorage(
        connection_string=settings.database_url or None,
        database_path=settings.database_path
    )


class RestoreOrchestrator:
    """
    Restores every backup in a directory, one archive at a time.

    A failure in one archive is reported and the batch moves on; only
    configuration errors stop a run before it starts.
    """

    def __init__(
        self,
        config: RestoreConfig,
        storage: Optional[DatabaseStorage] = None,
        reporter: Optional[RunReporter] = None,
        extractor: Callable = extract_backup,
        restore_engine: Callable = restore_into_course
    ):
        """
        Initialize orchestrator.

        Args:
            config: Run configuration
            storage: Target data store, created from the settings if None
            reporter: Progress output, stdout if None
            extractor: extractor(archive_path, dest_dir); raises ExtractionError
            restore_engine: restore_engine(storage, folder, course_id, user_id, trace=...)
                            returning a RestoreResult
        """
        self.config = config
        self.settings = config.settings
        self._owns_storage = storage is None
        self.storage = storage or create_storage(config)
        self.reporter = reporter or RunReporter()
        self.extractor = extractor
        self.restore_engine = restore_engine
        self.category_resolver = CategoryResolver(
            self.storage,
            default_category_id=self.settings.default_category_id,
            default_category_name=self.settings.default_category_name
        )

    def close(self):
        """Release the data store if this orchestrator created it."""
        if self._owns_storage:
            self.storage.close()

    def run(self) -> RunResult:
        """
        Restore all archives found in the source directory.

        Returns:
            RunResult with one ItemResult per archive
        """
        source_dir = self.config.source_dir
        result = RunResult(source_dir=source_dir, started_at=datetime.now().isoformat())

        self.reporter.start(source_dir)
        archives = self._discover(source_dir)
        result.total_found = len(archives)
        self.reporter.found(len(archives))

        for index, archive in enumerate(archives):
            item = self._restore_archive(index, archive)
            result.items.append(item)
            self.reporter.item_result(item)

        result.completed_at = datetime.now().isoformat()
        result.duration_seconds = self.reporter.elapsed()
        self.reporter.finish(result)
        return result

    def _discover(self, source_dir: str) -> List[BackupArchive]:
        # An unreadable directory counts as empty rather than aborting the run
        try:
            return scan_backups(source_dir, self.settings.archive_suffix)
        except DirectoryUnreadable as e:
            self.reporter.trace(f"Warning: {e.message}")
            return []

    def _scratch_dir(self, index: int) -> Path:
        """Unique extraction directory for the archive at *index*."""
        name = hashlib.md5(f"{int(time.time())}{index}".encode()).hexdigest()
        return self.settings.backup_temp_dir / name

    def _restore_archive(self, index: int, archive: BackupArchive) -> ItemResult:
        """Run the pipeline for one archive and convert errors into outcomes."""
        scratch = self._scratch_dir(index)
        try:
            return self._process(ExtractedBackup(working_dir=scratch, archive=archive))
        except ExtractionError as e:
            return ItemResult(archive, RestoreOutcome.SKIPPED_EXTRACTION_FAILED, message=e.message)
        except MetadataError as e:
            return ItemResult(archive, RestoreOutcome.SKIPPED_MISSING_METADATA, message=e.message)
        except PolicyError as e:
            return ItemResult(archive, RestoreOutcome.SKIPPED_SITE_COURSE, message=e.message)
        except SQLAlchemyError as e:
            return ItemResult(archive, RestoreOutcome.FAILED, message=str(e))
        except Exception as e:
            # One bad archive must not end the batch
            return ItemResult(archive, RestoreOutcome.FAILED, message=f"{type(e).__name__}: {e}")
        finally:
            if self.settings.cleanup_scratch:
                shutil.rmtree(scratch, ignore_errors=True)

    def _process(self, backup: ExtractedBackup) -> ItemResult:
        archive = backup.archive
        scratch = backup.working_dir

        self.reporter.trace(f"Extracting: {archive.source_path} to {scratch}")
        self.extractor(archive.source_path, scratch)

        if not has_course_descriptor(scratch):
            raise MetadataError("Failed to open course.xml", archive=str(archive.source_path))
        metadata = read_course_metadata(scratch)

        if metadata.source_course_id == SITE_COURSE_ID:
            raise PolicyError("Backup of the site course", archive=str(archive.source_path))

        resolution = self.category_resolver.resolve(metadata.category_name)
        if resolution.status is CategoryStatus.USED_DEFAULT:
            self.reporter.trace("Category not found in backup, using default category.")
        elif resolution.status is CategoryStatus.CREATED:
            self.reporter.trace(f"Created new category {metadata.category_name} ({resolution.category_id})")

        course_id = self.storage.create_new_course(
            metadata.fullname, metadata.shortname, resolution.category_id
        )

        item = ItemResult(
            archive,
            RestoreOutcome.RESTORED,
            course_id=course_id,
            category_id=resolution.category_id,
            category_status=resolution.status
        )

        restored = self.restore_engine(
            self.storage, scratch, course_id, self.settings.admin_user_id,
            trace=self.reporter.trace
        )
        if not restored.ok:
            # The empty course is left in place
            item.outcome = RestoreOutcome.SKIPPED_RESTORE_FAILED
            item.message = restored.error or "Unknown error"
            return item

        if self.config.remove_source:
            item.source_removed = self._remove_source(archive)
        return item

    def _remove_source(self, archive: BackupArchive) -> bool:
        """Delete a restored source archive."""
        try:
            archive.source_path.unlink()
            return True
        except OSError as e:
            self.reporter.trace(f"Warning: could not delete {archive.source_path}: {e}")
            return False
