"""Load lessons from a local JSON manifest.

Accepted shapes::

    {"lessons": [{...}, {...}]}
    [{...}, {...}]

Lesson authors often nest the vocabulary list under ``metadata``; it is
lifted to the lesson's top-level ``vocabulary`` when that is absent.
Lessons that fail validation are skipped with a warning.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from lesson_engine.models.lesson import Lesson
from lesson_engine.utils.file_io import read_json

logger = logging.getLogger(__name__)


def _normalize(raw: Dict[str, Any]) -> Dict[str, Any]:
    metadata = raw.get("metadata")
    if "vocabulary" not in raw and isinstance(metadata, dict) and "vocabulary" in metadata:
        raw = dict(raw)
        metadata = dict(metadata)
        raw["vocabulary"] = metadata.pop("vocabulary") or []
        raw["metadata"] = metadata
    return raw


def parse_manifest(data: Any) -> List[Lesson]:
    """Validate manifest data into lessons, skipping invalid entries."""
    if isinstance(data, dict):
        entries = data.get("lessons", [])
    elif isinstance(data, list):
        entries = data
    else:
        raise ValueError(f"manifest must be an object or a list, got {type(data).__name__}")

    lessons: List[Lesson] = []
    for index, raw in enumerate(entries):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping manifest entry {index}: not an object")
            continue
        try:
            lessons.append(Lesson.model_validate(_normalize(raw)))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid lesson {raw.get('id', index)!r}: {e.error_count()} validation errors"
            )

    return lessons


def load_manifest(path: Union[str, Path]) -> List[Lesson]:
    """Read a manifest file and return its valid lessons.

    Raises:
        FileNotFoundError: If the manifest doesn't exist
        json.JSONDecodeError: If the manifest is not valid JSON
        ValueError: If the top-level JSON is neither an object nor a list
    """
    lessons = parse_manifest(read_json(path))
    logger.info(f"Loaded {len(lessons)} lessons from {path}")
    return lessons
