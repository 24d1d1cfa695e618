"""Stage-level logging for the processing pipeline.

Records are emitted through stdlib logging; ``libs.logging_helper.setup_logging``
routes them into loguru.
"""

import logging
from contextlib import contextmanager
from datetime import UTC, datetime


@contextmanager
def pipeline_stage_logger(stage_name: str, **context):
    """Context manager for logging pipeline stage execution.

    Logs entry and exit of pipeline stages with timing information.

    Args:
        stage_name: Name of the pipeline stage
        **context: Additional context fields to include in logs

    Yields:
        Logger instance for the stage

    Example:
        >>> with pipeline_stage_logger("tokenize", lesson_id="greetings") as logger:
        ...     logger.info("Segmenting lesson content")
    """
    logger = logging.getLogger(f"lesson_engine.pipeline.{stage_name}")

    start_time = datetime.now(UTC)
    logger.debug(
        f"Starting pipeline stage: {stage_name}",
        extra={"stage": stage_name, "status": "started", **context},
    )

    try:
        yield logger

        duration_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
        logger.debug(
            f"Completed pipeline stage: {stage_name} ({duration_ms:.2f}ms)",
            extra={
                "stage": stage_name,
                "status": "completed",
                "duration_ms": round(duration_ms, 2),
                **context,
            },
        )

    except Exception as e:
        duration_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
        logger.error(
            f"Failed pipeline stage: {stage_name}",
            extra={
                "stage": stage_name,
                "status": "failed",
                "duration_ms": round(duration_ms, 2),
                "error": str(e)[:200],
                **context,
            },
            exc_info=True,
        )
        raise
