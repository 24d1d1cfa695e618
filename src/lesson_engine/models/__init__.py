"""Pydantic models for lessons, processing output and storage records."""

from lesson_engine.models.lesson import Difficulty, Lesson, LessonMetadata, VocabularyItem
from lesson_engine.models.library import SearchFilters, SearchPage
from lesson_engine.models.processing import (
    ProcessedLessonContent,
    ProcessingOptions,
    ProcessingState,
    ProcessingStatus,
    SegmentationResult,
    Token,
    TokenKind,
    ValidationResult,
    VocabularyEntry,
    VocabularyMap,
    VocabularyReference,
)
from lesson_engine.models.storage import (
    CacheConfig,
    CacheEntry,
    CacheStats,
    DurableRecord,
    ProgressRecord,
    StorageQuota,
    StoredCacheRecord,
    StoredLesson,
    estimate_size,
)

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "Difficulty",
    "DurableRecord",
    "Lesson",
    "LessonMetadata",
    "ProcessedLessonContent",
    "ProcessingOptions",
    "ProcessingState",
    "ProcessingStatus",
    "ProgressRecord",
    "SearchFilters",
    "SearchPage",
    "SegmentationResult",
    "StorageQuota",
    "StoredCacheRecord",
    "StoredLesson",
    "Token",
    "TokenKind",
    "ValidationResult",
    "VocabularyEntry",
    "VocabularyItem",
    "VocabularyMap",
    "VocabularyReference",
    "estimate_size",
]
