"""
Loguru logging configuration.

Features:
- Human-readable console logging for development
- Structured JSON logging for staging/production
- Optional rotating file sink
- Operation correlation ID in every log record
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from core.correlation import get_correlation_id
from models.config import settings

if TYPE_CHECKING:
    from loguru import Record


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[correlation_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID to log record.

    Args:
        record: Loguru log record.

    Returns:
        Always True (filter never drops messages).
    """
    record["extra"]["correlation_id"] = get_correlation_id() or "-"
    return True


def configure_logging(
    environment: str | None = None,
    level: str | None = None,
    log_to_file: bool | None = None,
) -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for console, anything else for JSON.
            Defaults to settings.ENVIRONMENT.
        level: Minimum log level. Defaults to settings.LOG_LEVEL.
        log_to_file: Add the rotating file sink. Defaults to settings.LOG_TO_FILE.
    """
    environment = environment or settings.ENVIRONMENT
    level = level or settings.LOG_LEVEL
    if log_to_file is None:
        log_to_file = settings.LOG_TO_FILE

    logger.remove()

    if environment == "development":
        logger.add(
            sys.stderr,
            format=LOG_FORMAT,
            level="DEBUG",
            filter=correlation_filter,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            filter=correlation_filter,
            serialize=True,
        )

    if not log_to_file:
        return

    logs_dir = Path(settings.LOG_DIR)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(logs_dir / "moderation.log"),
        format=LOG_FORMAT if environment == "development" else "{message}",
        level=level,
        filter=correlation_filter,
        rotation="10 MB",
        retention="7 days",
        serialize=(environment != "development"),
    )
