"""Registry of per-lesson processing status."""

import logging
import threading
from datetime import UTC, datetime
from typing import Dict, List, Optional

from lesson_engine.errors import NotFoundError
from lesson_engine.models.processing import ProcessingState, ProcessingStatus

logger = logging.getLogger(__name__)


class ProcessingStatusTracker:
    """Tracks the most recent pipeline run for each lesson id.

    One record per lesson; every update replaces the previous record, so a
    rerun overwrites the status of the run before it.
    """

    def __init__(self):
        self._statuses: Dict[str, ProcessingStatus] = {}
        self._lock = threading.Lock()

    def update(
        self,
        lesson_id: str,
        status: ProcessingState,
        progress: int,
        processing_time_ms: Optional[float] = None,
        errors: Optional[List[str]] = None,
    ) -> ProcessingStatus:
        """Replace the status record for a lesson.

        Args:
            lesson_id: Lesson identity
            status: New lifecycle state
            progress: Progress percentage (0-100)
            processing_time_ms: Elapsed time of the run so far
            errors: Error messages, set on failure

        Returns:
            The stored status record
        """
        record = ProcessingStatus(
            lesson_id=lesson_id,
            status=status,
            progress=progress,
            processing_time_ms=processing_time_ms,
            errors=errors,
            updated_at=datetime.now(UTC),
        )
        with self._lock:
            self._statuses[lesson_id] = record

        logger.debug(f"Status for {lesson_id}: {status.value} ({progress}%)")
        return record

    def get(self, lesson_id: str) -> ProcessingStatus:
        """Get the status record for a lesson.

        Raises:
            NotFoundError: If no run was ever started for the lesson
        """
        with self._lock:
            record = self._statuses.get(lesson_id)
        if record is None:
            raise NotFoundError(f"no processing run recorded for lesson {lesson_id!r}")
        return record

    def __contains__(self, lesson_id: object) -> bool:
        with self._lock:
            return lesson_id in self._statuses

    def get_summary(self) -> dict:
        """Count of tracked lessons per state."""
        with self._lock:
            records = list(self._statuses.values())

        summary = {state.value: 0 for state in ProcessingState}
        for record in records:
            summary[record.status.value] += 1
        summary["total"] = len(records)
        return summary
