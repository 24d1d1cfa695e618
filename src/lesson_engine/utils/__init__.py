"""
Shared utilities for the lesson engine.

- characters.py: CJK/Latin/digit/punctuation classification
- romanization.py: pypinyin helpers and the RomanizationAdapter
- logging_config.py: stage-level pipeline logging
- file_io.py: JSON read/atomic write
- timeouts.py: bounded calls on daemon threads
"""

__all__ = [
    "characters",
    "romanization",
    "logging_config",
    "file_io",
    "timeouts",
]
