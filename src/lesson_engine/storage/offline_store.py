"""Durable store for lessons, processed content, progress and cached data.

The store is agnostic to its backend (SQLite or flat files, picked by
``select_backend``). Writes that do not fit in the available quota trigger
one eviction sweep; if the record still does not fit, StorageQuotaExceeded
is raised.
"""

import time
from typing import Any, Callable, List, Optional

from loguru import logger
from pydantic import ValidationError

from constants import LOW_WATER_MARK_BYTES
from lesson_engine.cache.processing_cache import ProcessingCache
from lesson_engine.errors import StorageQuotaExceeded
from lesson_engine.models.lesson import Lesson
from lesson_engine.models.processing import ProcessedLessonContent
from lesson_engine.models.storage import (
    ProgressRecord,
    StorageQuota,
    StoredCacheRecord,
    StoredLesson,
    estimate_size,
)
from lesson_engine.storage.backends import StorageBackend, payload_size, select_backend
from lesson_engine.storage.eviction import EvictionManager

LESSONS = "lessons"
PROGRESS = "progress"
CACHE = "cache"

DEFAULT_CACHE_DATA_TTL_SECONDS = 24 * 60 * 60


class DurableStore:
    """Persistent lesson storage with quota accounting and eviction."""

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        capacity_bytes: Optional[int] = None,
        low_water_mark_bytes: int = LOW_WATER_MARK_BYTES,
        processing_cache: Optional[ProcessingCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize durable store.

        Args:
            backend: Storage backend (default: probed via select_backend)
            capacity_bytes: Total capacity (default: the backend's default)
            low_water_mark_bytes: Available space that triggers lesson eviction
            processing_cache: In-memory cache swept during cleanup
            clock: Time source in epoch seconds
        """
        self.backend = backend or select_backend()
        self.capacity_bytes = (
            capacity_bytes if capacity_bytes is not None else self.backend.default_capacity_bytes
        )
        self.clock = clock
        self.eviction = EvictionManager(
            self,
            processing_cache=processing_cache,
            low_water_mark_bytes=low_water_mark_bytes,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Lessons
    # ------------------------------------------------------------------

    def store(self, lesson: Lesson, processed: Optional[ProcessedLessonContent] = None) -> StoredLesson:
        """Persist a lesson, optionally with its processed content.

        Raises:
            StorageQuotaExceeded: If the record does not fit even after cleanup
        """
        timestamp = self.clock()
        record = StoredLesson(**lesson.model_dump(), processed=processed, timestamp=timestamp)
        record = record.model_copy(update={"size": estimate_size(record)})

        self._write(LESSONS, lesson.id, record.model_dump_json(), timestamp)
        logger.debug(f"Stored lesson {lesson.id} ({record.size}B)")
        return record

    def get(self, lesson_id: str) -> Optional[StoredLesson]:
        payload = self.backend.get(LESSONS, lesson_id)
        if payload is None:
            return None
        return self._parse_lesson(payload)

    def get_all(self) -> List[StoredLesson]:
        """All stored lessons, oldest write first."""
        records = (self._parse_lesson(payload) for payload in self.backend.values(LESSONS))
        return [record for record in records if record is not None]

    def delete(self, lesson_id: str) -> bool:
        """Delete a lesson and its progress record. Returns whether the lesson existed."""
        freed = self.backend.delete(LESSONS, lesson_id)
        self.backend.delete(PROGRESS, lesson_id)
        return freed > 0

    def lesson_count(self) -> int:
        return self.backend.count(LESSONS)

    def evict_oldest_lessons(self, count: int) -> int:
        """Delete the ``count`` oldest lessons by write timestamp. Returns bytes freed."""
        freed = 0
        for lesson_id, _ in self.backend.oldest(LESSONS, count):
            freed += self.backend.delete(LESSONS, lesson_id)
            self.backend.delete(PROGRESS, lesson_id)
            logger.debug(f"Evicted lesson {lesson_id}")
        return freed

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def store_progress(self, progress: ProgressRecord) -> ProgressRecord:
        self._write(PROGRESS, progress.lesson_id, progress.model_dump_json(), self.clock())
        return progress

    def get_progress(self, lesson_id: str) -> Optional[ProgressRecord]:
        payload = self.backend.get(PROGRESS, lesson_id)
        if payload is None:
            return None
        return ProgressRecord.model_validate_json(payload)

    # ------------------------------------------------------------------
    # Cached data
    # ------------------------------------------------------------------

    def cache_data(
        self, key: str, data: Any, ttl_seconds: int = DEFAULT_CACHE_DATA_TTL_SECONDS
    ) -> StoredCacheRecord:
        """Persist an arbitrary JSON-serializable payload with an expiry."""
        now = self.clock()
        record = StoredCacheRecord(key=key, data=data, timestamp=now, expiry=now + ttl_seconds)
        record = record.model_copy(update={"size": estimate_size(record)})
        self._write(CACHE, key, record.model_dump_json(), now, expiry=record.expiry)
        return record

    def get_cached_data(self, key: str) -> Any:
        """Cached payload, or None if missing or expired.

        Expired records are left in place for the next cleanup.
        """
        payload = self.backend.get(CACHE, key)
        if payload is None:
            return None
        record = StoredCacheRecord.model_validate_json(payload)
        if record.is_expired(self.clock()):
            return None
        return record.data

    def remove_cached_data(self, key: str) -> bool:
        return self.backend.delete(CACHE, key) > 0

    def purge_expired_cache_data(self, now: Optional[float] = None) -> int:
        """Delete expired cached data records. Returns bytes freed."""
        now = self.clock() if now is None else now
        freed = 0
        for key, _ in self.backend.expired(CACHE, now):
            freed += self.backend.delete(CACHE, key)
        return freed

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def quota(self) -> StorageQuota:
        used = self.backend.total_size()
        return StorageQuota(
            used=used,
            available=max(0, self.capacity_bytes - used),
            total=self.capacity_bytes,
        )

    def cleanup(self) -> int:
        """Run an eviction sweep. Returns estimated bytes reclaimed."""
        return self.eviction.cleanup()

    def clear_all(self) -> None:
        self.backend.clear()
        logger.info("Durable store cleared")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write(
        self,
        namespace: str,
        key: str,
        payload: str,
        timestamp: float,
        expiry: Optional[float] = None,
    ) -> int:
        required = payload_size(payload) - self.backend.size_of(namespace, key)
        available = self.quota().available

        if required > available:
            logger.warning(
                f"Write of {namespace}/{key} needs {required}B, {available}B available; running cleanup"
            )
            self.eviction.cleanup()
            required = payload_size(payload) - self.backend.size_of(namespace, key)
            available = self.quota().available
            if required > available:
                raise StorageQuotaExceeded(
                    f"{namespace}/{key} needs {required}B but only {available}B available",
                    required=required,
                    available=available,
                )

        return self.backend.put(namespace, key, payload, timestamp, expiry)

    def _parse_lesson(self, payload: str) -> Optional[StoredLesson]:
        try:
            return StoredLesson.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable stored lesson: {e.error_count()} validation errors")
            return None
