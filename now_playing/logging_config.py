"""Logging setup: JSON lines to a rotating file, plain text to the console.

Every record written through log_with_context carries its keyword fields as
top-level JSON keys, so a line for a source fetch looks like:

    {"time": "...", "logger": "now_playing.services.spotify_service",
     "level": "INFO", "message": "Spotify: currently playing",
     "app": "now-playing", "title": "...", "event_type": "spotify_now_playing"}
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE_NAME = "now_playing.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

JSON_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s %(filename)s %(lineno)d"
CONSOLE_LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# Libraries whose INFO output duplicates our own request logging
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _json_file_handler(log_dir: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            JSON_LOG_FORMAT,
            rename_fields={"asctime": "time", "name": "logger", "levelname": "level"},
            static_fields={"app": "now-playing"},
        )
    )
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> logging.Logger:
    """Install the file and console handlers on the root logger.

    Unknown level names fall back to INFO. Calling this again replaces the
    handlers instead of stacking them.

    Args:
        log_level: Console level name (DEBUG, INFO, WARNING, ...)
        log_dir: Directory for now_playing.log (defaults to ./logs)

    Returns:
        The root logger
    """
    level = _resolve_level(log_level)
    log_dir = log_dir or LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(_json_file_handler(log_dir))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT, datefmt="%H:%M:%S"))
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **fields: Any) -> None:
    """Log message with fields attached as structured context.

    Args:
        logger: Module logger
        level: Method name on the logger (debug, info, warning, error)
        message: Human-readable message
        **fields: Context such as source, track_id and event_type
    """
    getattr(logger, level.lower())(message, extra=fields)
