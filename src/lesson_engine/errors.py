"""Error taxonomy for lesson processing.

Every error carries a stable ``code`` so callers (and the processing status
record) can distinguish failure classes without parsing messages.
"""

from typing import List, Optional


class LessonEngineError(Exception):
    """Base class for all lesson engine errors."""

    code = "LESSON_ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(f"{self.code}: {message}")
        self.detail = message


class InvalidLessonError(LessonEngineError):
    """Lesson content is empty or whitespace-only. Fatal, never retried."""

    code = "INVALID_LESSON"


class AdapterFailure(LessonEngineError):
    """External adapter (romanization) failed for a single input."""

    code = "ADAPTER_FAILURE"


class RomanizationTimeout(AdapterFailure):
    """Adapter call exceeded its time bound. Handled like AdapterFailure."""

    code = "TIMEOUT"


class NotFoundError(LessonEngineError):
    """Status query for a lesson id that was never processed."""

    code = "NOT_FOUND"


class StorageQuotaExceeded(LessonEngineError):
    """Durable store has no room for a write, even after cleanup."""

    code = "STORAGE_QUOTA_EXCEEDED"

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class ValidationFailure(LessonEngineError):
    """Processed content violates its structural invariants."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []
