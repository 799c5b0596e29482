"""Logger configuration for the storefront backend.

Console output always; optional rotating application log; optional audit log
that receives only revision lifecycle messages (the "[REVISION]" prefix).
"""

import sys
from pathlib import Path

from loguru import logger

from storefront.revisions.constants import LOG_PREFIX

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
AUDIT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}"


def is_revision_record(record: dict) -> bool:
    return record["message"].startswith(LOG_PREFIX)


def _prepare_path(path: str) -> Path:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return log_path


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    revision_log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with console and optional file outputs.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional application log path
        revision_log_file: Optional audit log path; receives revision messages only
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
    """
    logger.remove()

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            _prepare_path(log_file),
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=True,
        )

    if revision_log_file:
        logger.add(
            _prepare_path(revision_log_file),
            format=AUDIT_FORMAT,
            level="INFO",
            filter=is_revision_record,
            rotation=rotation,
            retention=retention,
            compression="zip",
        )

    logger.info(f"Logger initialized with level={level}, revision_log_file={revision_log_file or 'none'}")
