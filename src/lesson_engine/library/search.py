"""Search and filtering over the lesson library."""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from pypinyin import Style, lazy_pinyin

from lesson_engine.models.lesson import Difficulty, Lesson
from lesson_engine.models.library import SearchFilters, SearchPage

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def collation_key(title: str) -> Tuple[str, str]:
    """Sort key ordering titles the way a Chinese locale would.

    Han characters sort by their toneless pinyin, everything else by itself,
    case-folded. The raw title breaks ties.
    """
    spelled = " ".join(lazy_pinyin(title, style=Style.NORMAL, errors="default"))
    return spelled.casefold(), title


def matches_query(lesson: Lesson, query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    return needle in lesson.title.casefold() or needle in lesson.description.casefold()


def matches_filters(lesson: Lesson, filters: SearchFilters) -> bool:
    metadata = lesson.metadata

    if filters.categories and metadata.category not in filters.categories:
        return False

    if filters.difficulties and metadata.difficulty not in filters.difficulties:
        return False

    if filters.tags and not any(tag in filters.tags for tag in metadata.tags):
        return False

    if filters.has_vocabulary is not None and lesson.has_vocabulary != filters.has_vocabulary:
        return False

    if filters.min_estimated_time is not None and metadata.estimated_time < filters.min_estimated_time:
        return False

    if filters.max_estimated_time is not None and metadata.estimated_time > filters.max_estimated_time:
        return False

    return True


class LibrarySearchEngine:
    """In-memory lesson library with text search, facet filters and pagination."""

    def __init__(self, lessons: Optional[Iterable[Lesson]] = None):
        self._lock = threading.Lock()
        self._lessons: Dict[str, Lesson] = {}
        if lessons is not None:
            self.refresh(lessons)

    def refresh(self, lessons: Iterable[Lesson]) -> int:
        """Replace the library contents. Later duplicates of an id win."""
        indexed: Dict[str, Lesson] = {}
        for lesson in lessons:
            if lesson.id in indexed:
                logger.warning(f"Duplicate lesson id in library: {lesson.id}")
            indexed[lesson.id] = lesson

        with self._lock:
            self._lessons = indexed

        logger.info(f"Library refreshed with {len(indexed)} lessons")
        return len(indexed)

    def __len__(self) -> int:
        return len(self._lessons)

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        return self._lessons.get(lesson_id)

    def search(
        self,
        query: str = "",
        filters: Optional[SearchFilters] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> SearchPage:
        """Search the library.

        Args:
            query: Case-insensitive substring of title or description ("" matches all)
            filters: Facet filters, all of which must match
            page: 1-indexed page number
            page_size: Items per page

        Returns:
            SearchPage with the requested slice of title-sorted results

        Raises:
            ValueError: If page or page_size is less than 1
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        filters = filters or SearchFilters()
        with self._lock:
            lessons = list(self._lessons.values())

        results = [
            lesson
            for lesson in lessons
            if matches_query(lesson, query) and matches_filters(lesson, filters)
        ]
        results.sort(key=lambda lesson: collation_key(lesson.title))

        total_count = len(results)
        offset = (page - 1) * page_size
        has_more = page * page_size < total_count

        return SearchPage(
            items=results[offset:offset + page_size],
            total_count=total_count,
            page=page,
            page_size=page_size,
            has_more=has_more,
            next_page=page + 1 if has_more else None,
        )

    def all_matching(self, query: str = "", filters: Optional[SearchFilters] = None) -> List[Lesson]:
        """Every matching lesson in title order, without pagination."""
        first = self.search(query, filters, page=1, page_size=max(1, len(self._lessons)))
        return first.items

    def by_category(self, category: str) -> List[Lesson]:
        return self.all_matching(filters=SearchFilters(categories=[category]))

    def by_difficulty(self, difficulty: Difficulty) -> List[Lesson]:
        return self.all_matching(filters=SearchFilters(difficulties=[difficulty]))

    def categories(self) -> List[str]:
        """Distinct categories, sorted."""
        with self._lock:
            return sorted({lesson.metadata.category for lesson in self._lessons.values()})

    def tags(self) -> List[str]:
        """Distinct tags, sorted."""
        with self._lock:
            return sorted({tag for lesson in self._lessons.values() for tag in lesson.metadata.tags})
