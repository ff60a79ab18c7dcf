"""
Logging setup for the schoolsite command and server.

Modules log through ``logging.getLogger(__name__)``; ``setup_logging`` attaches
handlers once, on the package logger, from the SCHOOLSITE_LOG_* settings.
"""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_DIR = Path("logs")

ENV_LOG_LEVEL = "SCHOOLSITE_LOG_LEVEL"
# "text" (default layout), "json", or a logging format string
ENV_LOG_FORMAT = "SCHOOLSITE_LOG_FORMAT"
ENV_LOG_FILE = "SCHOOLSITE_LOG_FILE"
ENV_LOG_DIR = "SCHOOLSITE_LOG_DIR"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _formatter() -> logging.Formatter:
    layout = os.getenv(ENV_LOG_FORMAT) or "text"
    if layout == "json":
        return JsonFormatter(datefmt=DEFAULT_DATE_FORMAT)
    if layout == "text":
        layout = DEFAULT_LOG_FORMAT
    return logging.Formatter(layout, datefmt=DEFAULT_DATE_FORMAT)


def setup_logging(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Attach console and file handlers to a logger.

    Args:
        name: Logger name, normally the package name so every module's
              ``getLogger(__name__)`` inherits the handlers
        level: Log level; defaults to SCHOOLSITE_LOG_LEVEL or INFO
        log_file: File name inside log_dir; defaults to SCHOOLSITE_LOG_FILE,
                  no file logging when unset
        log_dir: Directory for log_file; defaults to SCHOOLSITE_LOG_DIR or ./logs
        console: Log to stdout (the export command turns this off)

    Returns:
        Configured logger
    """
    level = (level or os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper()
    log_file = log_file or os.getenv(ENV_LOG_FILE) or None
    if log_dir is None:
        log_dir = Path(os.getenv(ENV_LOG_DIR) or DEFAULT_LOG_DIR)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()
    formatter = _formatter()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
