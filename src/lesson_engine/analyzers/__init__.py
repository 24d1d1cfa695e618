from lesson_engine.analyzers.frequency import (
    WordAnalysis,
    analyze,
    classify_difficulty,
    count_occurrences,
    extract_candidate_words,
)

__all__ = [
    "WordAnalysis",
    "analyze",
    "classify_difficulty",
    "count_occurrences",
    "extract_candidate_words",
]
