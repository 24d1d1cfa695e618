"""
Lesson library.

- search.py: text search, facet filters and pagination
- manifest.py: local JSON manifest loader
"""

from lesson_engine.library.manifest import load_manifest, parse_manifest
from lesson_engine.library.search import LibrarySearchEngine, collation_key

__all__ = ["LibrarySearchEngine", "collation_key", "load_manifest", "parse_manifest"]
