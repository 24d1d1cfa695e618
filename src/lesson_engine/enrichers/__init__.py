"""
Lesson enrichment pipeline.

- lesson_processor.py: five-stage processing of a lesson into enriched content
- status.py: per-lesson processing status registry
"""

from lesson_engine.enrichers.lesson_processor import LessonProcessor
from lesson_engine.enrichers.status import ProcessingStatusTracker

__all__ = ["LessonProcessor", "ProcessingStatusTracker"]
