"""
Logging Configuration
Structured logging with loguru, with stdlib records from the service layer
routed into the same sinks.
Source: https://github.com/Delgan/loguru
Source: https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
"""

import logging
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Service loggers that are forwarded to loguru
SERVICE_LOGGERS = ("healthcover", "sqlalchemy.engine", "uvicorn")


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back to the frame that issued the stdlib call
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
    intercept_stdlib: bool = True,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_logs: Whether to output JSON format (useful for production)
        intercept_stdlib: Route stdlib loggers of the service layer through loguru
    """
    logger.remove()

    if json_logs:
        logger.add(sys.stderr, format="{message}", level=level, serialize=True)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            format=FILE_FORMAT,
            level=level,
            serialize=json_logs,
        )

    if intercept_stdlib:
        handler = InterceptHandler()
        for name in SERVICE_LOGGERS:
            std_logger = logging.getLogger(name)
            std_logger.handlers = [handler]
            std_logger.setLevel(level)
            std_logger.propagate = False

    logger.info(f"Logging configured: level={level}, json_logs={json_logs}")


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance

    Example:
        >>> from healthcover.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Claim desk started")
    """
    return logger.bind(name=name)
