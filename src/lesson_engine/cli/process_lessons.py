"""CLI for processing lessons from a local manifest.

Usage:
    lesson-engine-process \
        --manifest data/manifest.json \
        --output output/report.json \
        --lesson-id greetings \
        --prepare-audio \
        --parallel 4

Features:
- Runs the enrichment pipeline for every lesson (or one lesson)
- Persists lessons and processed content to the durable store
- Parallel processing with ThreadPoolExecutor
- Progress bar with tqdm
- JSON report with per-lesson status
"""

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from constants import LESSON_ENGINE_DB_PATH, LESSON_ENGINE_STORAGE_DIR, LOG_LEVEL
from lesson_engine.enrichers.lesson_processor import LessonProcessor
from lesson_engine.errors import LessonEngineError, NotFoundError
from lesson_engine.library.manifest import load_manifest
from lesson_engine.models.lesson import Lesson
from lesson_engine.models.processing import ProcessingOptions
from lesson_engine.storage.backends import select_backend
from lesson_engine.storage.offline_store import DurableStore
from lesson_engine.utils.file_io import write_json
from libs.logging_helper import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Process Chinese lessons: segmentation, pinyin, vocabulary and audio tagging",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process every lesson in a manifest
  lesson-engine-process --manifest data/manifest.json --output output/report.json

  # Process one lesson with audio tagging, without persisting
  lesson-engine-process --manifest data/manifest.json --output output/report.json \\
      --lesson-id greetings --prepare-audio --no-store
        """,
    )

    parser.add_argument(
        "--manifest",
        required=True,
        type=Path,
        help="Local JSON manifest ({\"lessons\": [...]} or a list of lessons)",
    )

    parser.add_argument(
        "--output",
        required=True,
        type=Path,
        help="Output JSON report path",
    )

    parser.add_argument(
        "--lesson-id",
        default=None,
        help="Only process the lesson with this id",
    )

    parser.add_argument(
        "--no-romanization",
        action="store_true",
        help="Skip pinyin generation",
    )

    parser.add_argument(
        "--prepare-audio",
        action="store_true",
        help="Tag tokens as audio-ready with audio identifiers",
    )

    parser.add_argument(
        "--extract-vocabulary",
        action="store_true",
        help="Add candidate words found in the content to the vocabulary map",
    )

    parser.add_argument(
        "--max-tokens",
        type=int,
        default=None,
        help="Maximum number of tokens per lesson",
    )

    parser.add_argument(
        "--no-store",
        action="store_true",
        help="Do not persist results to the durable store",
    )

    parser.add_argument(
        "--db-path",
        type=Path,
        default=LESSON_ENGINE_DB_PATH,
        help=f"SQLite database path (default: {LESSON_ENGINE_DB_PATH})",
    )

    parser.add_argument(
        "--storage-dir",
        type=Path,
        default=LESSON_ENGINE_STORAGE_DIR,
        help=f"Directory for the file storage fallback (default: {LESSON_ENGINE_STORAGE_DIR})",
    )

    parser.add_argument(
        "--capacity-bytes",
        type=int,
        default=None,
        help="Durable store capacity in bytes (default: the backend's default)",
    )

    parser.add_argument(
        "--parallel",
        type=int,
        default=1,
        help="Number of parallel workers (default: 1)",
    )

    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    return parser.parse_args(argv)


def describe_error(error: Exception) -> str:
    if isinstance(error, LessonEngineError):
        return str(error)
    return f"{type(error).__name__}: {error}"


def process_single_lesson(
    lesson: Lesson,
    processor: LessonProcessor,
    options: ProcessingOptions,
    store: Optional[DurableStore] = None,
) -> dict:
    """Process one lesson and build its report entry.

    Failures (invalid lesson, validation, storage quota, unexpected errors)
    are logged and reported; they do not stop the batch. A lesson that
    processed but could not be persisted is reported as "store_failed".
    """
    entry = {"lesson_id": lesson.id, "title": lesson.title}

    try:
        content = processor.process(lesson, options)
    except LessonEngineError as e:
        logger.error(f"Failed to process lesson {lesson.id}: {e}")
        entry["error"] = str(e)
        content = None
    except Exception as e:
        logger.error(f"Unexpected error processing lesson {lesson.id}: {e}", exc_info=True)
        entry["error"] = describe_error(e)
        content = None

    store_failed = False
    if content is not None:
        entry.update(
            {
                "total_tokens": content.total_tokens,
                "vocabulary_size": len(content.vocabulary),
                "segmentation_strategy": content.segmentation_strategy,
            }
        )
        if store is not None:
            try:
                record = store.store(lesson, content)
                entry["stored_bytes"] = record.size
            except Exception as e:
                logger.error(f"Failed to store lesson {lesson.id}: {e}", exc_info=True)
                entry["error"] = describe_error(e)
                store_failed = True

    try:
        status = processor.get_processing_status(lesson.id)
        entry.update(
            {
                "status": status.status.value,
                "progress": status.progress,
                "processing_time_ms": status.processing_time_ms,
                "errors": status.errors or [],
            }
        )
    except NotFoundError:
        entry["status"] = "unknown"

    if store_failed:
        entry["status"] = "store_failed"
    elif "error" in entry and entry["status"] == "completed":
        entry["status"] = "failed"

    return entry


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(log_level=args.log_level)

    logger.info("=" * 80)
    logger.info("Lesson Processing")
    logger.info("=" * 80)
    logger.info(f"Manifest: {args.manifest}")
    logger.info(f"Output: {args.output}")
    if args.lesson_id:
        logger.info(f"Lesson: {args.lesson_id}")
    if args.parallel > 1:
        logger.info(f"Parallel Workers: {args.parallel}")
    logger.info("=" * 80)

    if not args.manifest.exists():
        logger.error(f"Manifest not found: {args.manifest}")
        return 1

    try:
        lessons = load_manifest(args.manifest)
    except ValueError as e:
        logger.error(f"Failed to load manifest: {e}")
        return 1

    if args.lesson_id:
        lessons = [lesson for lesson in lessons if lesson.id == args.lesson_id]
        if not lessons:
            logger.error(f"Lesson not found in manifest: {args.lesson_id}")
            return 1

    options = ProcessingOptions(
        generate_romanization=not args.no_romanization,
        prepare_audio=args.prepare_audio,
        extract_content_vocabulary=args.extract_vocabulary,
        max_tokens=args.max_tokens,
    )

    processor = LessonProcessor()
    store = None
    if not args.no_store:
        store = DurableStore(
            select_backend(args.db_path, args.storage_dir),
            capacity_bytes=args.capacity_bytes,
            processing_cache=processor.cache,
        )

    start_time = time.time()
    entries = []

    if args.parallel == 1:
        for lesson in tqdm(lessons, desc="Processing", unit="lesson"):
            entries.append(process_single_lesson(lesson, processor, options, store))
    else:
        with ThreadPoolExecutor(max_workers=args.parallel) as executor:
            future_to_lesson = {
                executor.submit(process_single_lesson, lesson, processor, options, store): lesson
                for lesson in lessons
            }

            with tqdm(total=len(lessons), desc="Processing", unit="lesson") as pbar:
                for future in as_completed(future_to_lesson):
                    entries.append(future.result())
                    pbar.update(1)

    elapsed = time.time() - start_time
    failed = [entry for entry in entries if entry.get("status") != "completed"]
    entries.sort(key=lambda entry: entry["lesson_id"])

    report = {
        "manifest": str(args.manifest),
        "options": options.model_dump(mode="json"),
        "total": len(entries),
        "completed": len(entries) - len(failed),
        "failed": len(failed),
        "elapsed_seconds": round(elapsed, 2),
        "lessons": entries,
    }
    if store is not None:
        report["storage"] = {"backend": store.backend.name, **store.quota().model_dump()}

    write_json(report, args.output)

    logger.info("\n" + "=" * 80)
    logger.info("PROCESSING SUMMARY")
    logger.info("=" * 80)
    logger.info(f"Total lessons: {len(entries)}")
    logger.info(f"Completed: {report['completed']}")
    logger.info(f"Failed: {report['failed']}")
    logger.info(f"Elapsed: {elapsed:.2f}s")
    logger.info(f"Report: {args.output}")
    logger.info("=" * 80)

    return 0 if not failed else 2


if __name__ == "__main__":
    sys.exit(main())
