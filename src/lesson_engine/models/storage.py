"""Storage bookkeeping models for the durable store and processing cache."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from constants import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS, STORAGE_SCHEMA_VERSION
from lesson_engine.models.lesson import Lesson
from lesson_engine.models.processing import ProcessedLessonContent


def estimate_size(model: BaseModel) -> int:
    """Estimate the stored size of a model as its UTF-8 encoded JSON length."""
    return len(model.model_dump_json().encode("utf-8"))


class StoredLesson(Lesson):
    """Durable record: a lesson plus storage bookkeeping."""

    processed: Optional[ProcessedLessonContent] = Field(
        None, description="Processed content persisted alongside the lesson"
    )
    size: int = Field(default=0, ge=0, description="Estimated bytes on disk")
    version: str = Field(default=STORAGE_SCHEMA_VERSION, description="Schema version")
    timestamp: float = Field(..., description="Write time (epoch seconds)")

    def to_lesson(self) -> Lesson:
        """Drop storage fields and return the plain lesson."""
        return Lesson.model_validate(
            self.model_dump(include=set(Lesson.model_fields.keys()))
        )


# Alias used across the storage layer
DurableRecord = StoredLesson


class ProgressRecord(BaseModel):
    """Per-lesson study progress persisted across sessions."""

    lesson_id: str
    completed: bool = False
    score: Optional[float] = None
    attempts: int = Field(default=0, ge=0)
    last_attempt: float = Field(default=0.0, description="Epoch seconds")
    time_spent: float = Field(default=0.0, ge=0, description="Seconds spent studying")


class StoredCacheRecord(BaseModel):
    """Arbitrary cached payload persisted with an expiry."""

    key: str
    data: Any = None
    timestamp: float
    expiry: float = Field(..., description="Expiry time (epoch seconds)")
    size: int = Field(default=0, ge=0)

    def is_expired(self, now: float) -> bool:
        return now > self.expiry


class StorageQuota(BaseModel):
    """Byte accounting for the durable store."""

    used: int = Field(..., ge=0)
    available: int = Field(..., ge=0)
    total: int = Field(..., ge=0)


class CacheEntry(BaseModel):
    """In-memory processing cache entry. Never mutated after creation."""

    key: str
    lesson_id: str
    options_key: str
    content: ProcessedLessonContent
    cached_at: float
    expires_at: float
    size: int = Field(default=0, ge=0)

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class CacheConfig(BaseModel):
    """Size and TTL policy for the processing cache."""

    max_entries: int = Field(default=CACHE_MAX_ENTRIES, ge=0)
    default_ttl_seconds: int = Field(default=CACHE_TTL_SECONDS, ge=0)


class CacheStats(BaseModel):
    """Snapshot of processing cache contents."""

    total_entries: int
    expired_entries: int
    total_size: int
    oldest_cached_at: Optional[float] = None
    newest_cached_at: Optional[float] = None
    max_entries: int
    default_ttl_seconds: int
