"""Pydantic models for library lessons.

Lessons are loaded once per library refresh and are read-only afterwards,
so every model here is frozen.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enums
# ============================================================================


class Difficulty(str, Enum):
    """Lesson and vocabulary difficulty level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# ============================================================================
# Core Entities
# ============================================================================


class VocabularyItem(BaseModel):
    """Vocabulary entry declared by the lesson author."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    word: str = Field(..., min_length=1, description="Chinese word or phrase")
    translation: str = Field(default="", description="English translation")
    part_of_speech: Optional[str] = Field(
        None,
        alias="partOfSpeech",
        description="Part of speech: noun, verb, adjective, etc.",
    )


class LessonMetadata(BaseModel):
    """Structured lesson metadata used for filtering and display."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    category: str = Field(default="general", description="Lesson category")
    difficulty: Difficulty = Field(default=Difficulty.BEGINNER)
    tags: List[str] = Field(default_factory=list, description="Searchable tags")
    estimated_time: int = Field(
        default=0,
        ge=0,
        alias="estimatedTime",
        description="Minutes to complete",
    )
    source: Optional[str] = Field(None, description="Content source attribution")
    grammar_points: List[str] = Field(default_factory=list, alias="grammarPoints")
    cultural_notes: List[str] = Field(default_factory=list, alias="culturalNotes")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="createdAt"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), alias="updatedAt"
    )


class Lesson(BaseModel):
    """Core learning unit: Chinese text content plus metadata and vocabulary."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "greetings",
                "title": "Greetings",
                "description": "Basic greetings",
                "content": "你好，世界！",
                "metadata": {"category": "daily", "difficulty": "beginner"},
                "vocabulary": [{"word": "你好", "translation": "hello"}],
            }
        },
    )

    id: str = Field(..., min_length=1, description="Unique within the library")
    title: str = Field(..., description="Display title")
    description: str = Field(default="", description="Lesson description")
    content: str = Field(default="", description="Raw Chinese text content")
    metadata: LessonMetadata = Field(default_factory=LessonMetadata)
    vocabulary: List[VocabularyItem] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Lesson ids are used as storage keys, so surrounding whitespace is rejected."""
        if v != v.strip():
            raise ValueError("lesson id must not have leading or trailing whitespace")
        return v

    @property
    def has_vocabulary(self) -> bool:
        return len(self.vocabulary) > 0
