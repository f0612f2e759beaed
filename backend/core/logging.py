"""
Logging configuration: console handler plus an optional file handler
"""
import logging
import sys
from pathlib import Path

from core.config import settings

_logging_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging() -> None:
    """Configure the root logger once per process"""
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.LOG_FILE:
        try:
            path = Path(settings.LOG_FILE)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            # uvicorn loggers may not propagate to root
            for uvicorn_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
                logging.getLogger(uvicorn_name).addHandler(file_handler)
        except OSError as e:
            root.warning("Could not open log file %s: %s", settings.LOG_FILE, e)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, file=%s", settings.LOG_LEVEL, settings.LOG_FILE or "console only"
    )
