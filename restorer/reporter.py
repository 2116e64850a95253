"""
Progress output for a batch restore run.
One line per event on stdout, with a summary block at the end.
"""

import sys
import time
from email.utils import formatdate

from .models import ItemResult, RestoreOutcome, RunResult

_SKIP_REASONS = {
    RestoreOutcome.SKIPPED_SITE_COURSE: "Skipping backup (cannot restore site)",
    RestoreOutcome.SKIPPED_MISSING_METADATA: "Skipped: Failed to open course.xml",
    RestoreOutcome.SKIPPED_EXTRACTION_FAILED: "Skipped: Unable to extract",
}


class RunReporter:
    """Timing and per-item reporting for one run."""

    def __init__(self, stream=None):
        self.stream = stream
        self._timenow = time.time()
        self._start = time.perf_counter()

    def trace(self, message: str = ""):
        """Write one line of progress."""
        print(message, file=self.stream or sys.stdout, flush=True)

    def start(self, source_dir: str):
        """Reset the clock and announce the run."""
        self._timenow = time.time()
        self._start = time.perf_counter()
        self.trace(f"Restoring all courses from {source_dir}")
        self.trace(f"Server Time: {formatdate(self._timenow, localtime=True)}\n\n")

    def elapsed(self) -> float:
        """Seconds since :meth:`start`."""
        return time.perf_counter() - self._start

    def found(self, count: int):
        self.trace(f"Found {count} moodle backups.")

    def item_result(self, item: ItemResult):
        """Report how one archive ended."""
        if item.outcome is RestoreOutcome.RESTORED:
            self.trace(f"  ✓ Restored {item.archive.name} into course {item.course_id}")
            if item.source_removed:
                self.trace(f"Deleted {item.archive.source_path}")
        elif item.outcome is RestoreOutcome.SKIPPED_EXTRACTION_FAILED:
            self.trace(f"{_SKIP_REASONS[item.outcome]} {item.archive.name}")
        elif item.outcome in _SKIP_REASONS:
            self.trace(_SKIP_REASONS[item.outcome])
        else:
            self.trace(f"Failed: {item.message}")

    def finish(self, result: RunResult):
        """Print timing and the run summary."""
        self.trace(f"\n\nServer Time: {formatdate(self._timenow, localtime=True)}\n")
        self.trace(f"Execution took {result.duration_seconds:.6f} seconds")

        self.trace("\n" + "=" * 60)
        self.trace("RESTORE COMPLETE")
        self.trace("=" * 60)
        self.trace(f"Source:      {result.source_dir}")
        self.trace(f"Found:       {result.total_found}")
        self.trace(f"Restored:    {result.total_restored}")
        self.trace(f"Skipped:     {result.total_skipped}")
        self.trace(f"Failed:      {result.total_failed}")

        not_restored = [i for i in result.items if i.outcome is not RestoreOutcome.RESTORED]
        if not_restored:
            self.trace(f"\nNot restored ({len(not_restored)}):")
            for item in not_restored[:10]:
                reason = item.message or item.outcome.value
                self.trace(f"  - {item.archive.name}: {item.outcome.value} ({reason[:60]})")
            if len(not_restored) > 10:
                self.trace(f"  ... and {len(not_restored) - 10} more")
