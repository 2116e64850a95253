"""
Exception hierarchy for batch course restores.

Only ConfigError is fatal to a run. Everything else is raised for a single
archive and converted into a skip outcome by the orchestrator.
"""

from typing import Optional, Dict, Any


class RestoreAllError(Exception):
    """
    Base exception for the restore tool.

    Attributes:
        message: Human-readable error message
        archive: Path of the archive involved (if applicable)
        context: Additional context information as key-value pairs
    """

    def __init__(
        self,
        message: str,
        archive: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.archive = archive
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.archive:
            parts.append(f"Archive: {self.archive}")
        if self.context:
            parts.append(f"Context: {self.context}")
        return " | ".join(parts)


class ConfigError(RestoreAllError):
    """Missing or invalid run configuration (e.g. no source path, unknown option)."""


class DirectoryUnreadable(RestoreAllError):
    """The source directory could not be listed."""


class ArchiveError(RestoreAllError):
    """Base class for errors scoped to a single archive."""


class ExtractionError(ArchiveError):
    """The archive could not be unpacked into its scratch directory."""


class MetadataError(ArchiveError):
    """The course descriptor is missing or cannot be parsed."""


class PolicyError(ArchiveError):
    """
    The archive is valid but must not be restored.

    Raised for backups of the site course, which can never be restored
    as a new course.
    """


class RestoreError(ArchiveError):
    """
    Failed to restore an extracted backup into a course.

    Additional Attributes:
        course_id: Target course id
        phase: Restore phase that failed ("precheck" or "plan")
    """

    def __init__(
        self,
        message: str,
        archive: Optional[str] = None,
        course_id: Optional[int] = None,
        phase: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, archive, context)
        self.course_id = course_id
        self.phase = phase
