import logging
import os
from logging.config import dictConfig
from typing import Optional

from .storage import default_app_dir


LOG_FILE_NAME = "clipstack.jsonl"


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """Console plus JSON-lines file logging for the ``clipstack`` package."""
    level = (level or os.getenv("CLIPSTACK_LOG_LEVEL") or "INFO").upper()
    log_dir = log_dir or os.path.join(default_app_dir(), "logs")
    os.makedirs(log_dir, exist_ok=True)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
            "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": os.path.join(log_dir, LOG_FILE_NAME),
                "maxBytes": 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
                "formatter": "json",
                "level": level,
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
        },
        "loggers": {
            "clipstack": {
                "handlers": ["file", "console"],
                "level": level,
                "propagate": False,
            },
        },
    }
    dictConfig(config)
    logger = logging.getLogger("clipstack")
    logger.debug("Logging initialised at %s in %s", level, log_dir)
    return logger
