"""Pydantic models for library search."""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from lesson_engine.models.lesson import Difficulty, Lesson


class SearchFilters(BaseModel):
    """Conjunctive search facets. ``None`` or an empty list matches everything."""

    categories: Optional[List[str]] = None
    difficulties: Optional[List[Difficulty]] = None
    tags: Optional[List[str]] = Field(None, description="Matches lessons having ANY of these tags")
    has_vocabulary: Optional[bool] = None
    min_estimated_time: Optional[int] = Field(None, ge=0, description="Inclusive, minutes")
    max_estimated_time: Optional[int] = Field(None, ge=0, description="Inclusive, minutes")

    @model_validator(mode="after")
    def validate_time_range(self) -> "SearchFilters":
        if (
            self.min_estimated_time is not None
            and self.max_estimated_time is not None
            and self.min_estimated_time > self.max_estimated_time
        ):
            raise ValueError("min_estimated_time must not exceed max_estimated_time")
        return self


class SearchPage(BaseModel):
    """One page of search results."""

    items: List[Lesson] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    has_more: bool
    next_page: Optional[int] = None
