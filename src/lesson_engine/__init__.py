"""
Lesson Content Processing Engine

This package turns raw Chinese lesson text into study-ready content:
segmented tokens, pinyin, vocabulary cross-references and audio-readiness
flags. Processed lessons are cached in memory, persisted to a durable store
with a capacity budget, and searchable through the library engine.

**Version**: 0.1.0
**Key Dependencies**: pydantic, pypinyin, loguru
"""

__version__ = "0.1.0"
__author__ = "Lesson Engine"

__all__ = [
    "__version__",
    "__author__",
]
