"""
Logging setup for the catalog resolver.

Everything goes to a rotating file under ``resolver-data/logs``; only
warnings and errors reach stderr, keeping stdout free for CLI output. The
HTTP stack logs one line per request, so its loggers are held at WARNING.

Usage:
    from catalog_resolver.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Resolved %s", path)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence

_logging_initialized = False

# Third-party loggers that log every request at INFO/DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
    console_level: str = "WARNING",
    quiet_loggers: Sequence[str] = QUIET_LOGGERS,
) -> None:
    """
    Install the file and stderr handlers on the root logger; repeat calls are no-ops.

    Args:
        log_level: File handler level
        log_file: Log path (default: ./resolver-data/logs/resolver.log)
        max_bytes: Rotation size
        backup_count: Rotated files kept
        console_level: stderr handler level
        quiet_loggers: Logger names capped at WARNING
    """
    global _logging_initialized

    if _logging_initialized:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_formatter = logging.Formatter(fmt="%(levelname)s: %(message)s")

    log_file = Path(log_file) if log_file is not None else default_log_file()

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler: Optional[RotatingFileHandler] = RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        # Read-only working directory
        sys.stderr.write(f"File logging disabled ({log_file}): {exc}\n")
        file_handler = None

    if file_handler is not None:
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_initialized = True

    root_logger.info(
        "Logging initialized: file=%s (level=%s), console (level=%s)",
        log_file if file_handler is not None else None,
        log_level,
        console_level,
    )


def default_log_file() -> Path:
    return Path.cwd() / "resolver-data" / "logs" / "resolver.log"


def get_logger(name: str) -> logging.Logger:
    """Module logger; sets up logging with defaults if nothing has yet."""
    if not _logging_initialized:
        setup_logging()

    return logging.getLogger(name)


def reset_logging() -> None:
    """Remove every root handler so tests and the CLI can configure again."""
    global _logging_initialized

    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    root_logger.setLevel(logging.WARNING)
    _logging_initialized = False
