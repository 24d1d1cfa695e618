import inspect
import logging
import sys

from loguru import logger

from constants import ENV, LOG_FORMAT, LOG_LEVEL, PRODUCT

__all__ = ["logger", "setup_logging", "InterceptHandler"]


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            is_logging = filename == logging.__file__
            is_frozen = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (is_logging or is_frozen):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(log_level: str | int = LOG_LEVEL, log_format: str = LOG_FORMAT) -> None:
    """Route stdlib logging through loguru and configure the stdout sink.

    Args:
        log_level: Minimum level for the stdout sink (default: LOG_LEVEL env var)
        log_format: "json" for serialized records, anything else for plain text
    """
    if isinstance(log_level, int):
        log_level = logging.getLevelName(log_level)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logger.remove()  # Remove default configuration
    if log_format == "json":
        logger.add(sys.stdout, level=log_level, backtrace=True, diagnose=False, serialize=True)
    else:
        logger.add(sys.stdout, level=log_level, backtrace=True, diagnose=False)

    if ENV == "dev":
        logger.add(f"/tmp/{PRODUCT}-{ENV}.log", level=log_level)

    logger.info("Logging setup completed")
