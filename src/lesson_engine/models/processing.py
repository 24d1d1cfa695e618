"""Pydantic models produced and consumed by the processing pipeline."""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

from constants import CACHE_TTL_SECONDS, ROMANIZATION_TIMEOUT_SECONDS
from lesson_engine.models.lesson import Difficulty


# ============================================================================
# Enums
# ============================================================================


class TokenKind(str, Enum):
    """Character class of a token."""

    WORD = "word"
    PUNCTUATION = "punctuation"
    LATIN_RUN = "latin_run"
    DIGIT_RUN = "digit_run"


class ProcessingState(str, Enum):
    """Lifecycle state of a pipeline run."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Tokens
# ============================================================================


class VocabularyReference(BaseModel):
    """Vocabulary word found inside a token, with offsets relative to the token text."""

    word: str
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    difficulty: Optional[Difficulty] = None


class Token(BaseModel):
    """Contiguous span of lesson content."""

    id: str = Field(default="", description="Stable id within one processing run")
    text: str
    start: int = Field(..., ge=0, description="Start offset in the lesson content")
    end: int = Field(..., ge=0, description="End offset (exclusive) in the lesson content")
    kind: TokenKind
    romanization: Optional[str] = None
    vocabulary_refs: List[VocabularyReference] = Field(default_factory=list)
    audio_ready: bool = False
    audio_id: Optional[str] = None


class SegmentationResult(BaseModel):
    """Tagged outcome of a segmentation attempt."""

    strategy_used: str = Field(..., description="Name of the strategy that produced tokens")
    fallback_occurred: bool = False
    tokens: List[Token] = Field(default_factory=list)
    processing_time_ms: float = 0.0
    error: Optional[str] = Field(None, description="Why the preferred strategy was abandoned")


# ============================================================================
# Vocabulary
# ============================================================================


class VocabularyEntry(BaseModel):
    """Vocabulary word enriched with romanization, frequency and study stats."""

    word: str = Field(..., min_length=1)
    translation: str = ""
    part_of_speech: str = "unknown"
    romanization: str = ""
    frequency: int = Field(default=0, ge=0, description="Occurrences in lesson text")
    difficulty: Difficulty = Difficulty.BEGINNER

    # Per-user study stats (mutable)
    study_count: int = Field(default=0, ge=0)
    last_studied: Optional[datetime] = None
    mastery_level: int = Field(default=0, ge=0, le=100)

    def record_study(self, mastery_level: Optional[int] = None) -> None:
        """Bump study stats after a review session."""
        self.study_count += 1
        self.last_studied = datetime.now(UTC)
        if mastery_level is not None:
            self.mastery_level = max(0, min(100, mastery_level))


class VocabularyMap(RootModel[Dict[str, VocabularyEntry]]):
    """Word -> VocabularyEntry container. Every key equals its entry's word."""

    root: Dict[str, VocabularyEntry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_keys(self) -> "VocabularyMap":
        mismatched = [key for key, entry in self.root.items() if key != entry.word]
        if mismatched:
            raise ValueError(f"vocabulary keys do not match entry words: {mismatched}")
        return self

    def add(self, entry: VocabularyEntry) -> None:
        self.root[entry.word] = entry

    def get(self, word: str) -> Optional[VocabularyEntry]:
        return self.root.get(word)

    def keys(self) -> List[str]:
        return list(self.root.keys())

    def values(self) -> List[VocabularyEntry]:
        return list(self.root.values())

    def items(self):
        return self.root.items()

    def __contains__(self, word: object) -> bool:
        return word in self.root

    def __getitem__(self, word: str) -> VocabularyEntry:
        return self.root[word]

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


# ============================================================================
# Pipeline input/output
# ============================================================================


class ProcessingOptions(BaseModel):
    """Options controlling a pipeline run. Part of the processing cache key."""

    model_config = ConfigDict(frozen=True)

    generate_romanization: bool = True
    prepare_audio: bool = False
    vocabulary_enhancement: bool = True
    extract_content_vocabulary: bool = False
    max_tokens: Optional[int] = Field(None, ge=1)
    romanization_timeout_seconds: float = Field(default=ROMANIZATION_TIMEOUT_SECONDS, gt=0)

    # Cache controls do not change the output, so they stay out of the key
    cache_results: bool = True
    cache_ttl_seconds: int = Field(default=CACHE_TTL_SECONDS, ge=0)

    def cache_key(self) -> str:
        """Stable serialization of the output-affecting options."""
        data = self.model_dump(mode="json", exclude={"cache_results", "cache_ttl_seconds"})
        return json.dumps(data, sort_keys=True, separators=(",", ":"))


class ProcessedLessonContent(BaseModel):
    """Pipeline output for one lesson."""

    lesson_id: str
    tokens: List[Token] = Field(default_factory=list)
    vocabulary: VocabularyMap = Field(default_factory=VocabularyMap)
    total_tokens: int = Field(..., ge=0)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    romanization_generated: bool = False
    audio_ready: bool = False
    segmentation_strategy: str = "rule_based"
    segmentation_fallback: bool = False

    @model_validator(mode="after")
    def validate_token_count(self) -> "ProcessedLessonContent":
        if self.total_tokens != len(self.tokens):
            raise ValueError(
                f"total_tokens ({self.total_tokens}) != len(tokens) ({len(self.tokens)})"
            )
        return self


class ProcessingStatus(BaseModel):
    """Per-lesson status of the most recent pipeline run."""

    lesson_id: str
    status: ProcessingState
    progress: int = Field(default=0, ge=0, le=100)
    processing_time_ms: Optional[float] = None
    errors: Optional[List[str]] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ValidationResult(BaseModel):
    """Outcome of validating processed content."""

    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
