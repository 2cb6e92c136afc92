from __future__ import annotations

import logging
import logging.config
from typing import Any, Dict

from repowrap.config import settings

LOGGER_NAME = "repowrap"


def _build_logging_config() -> Dict[str, Any]:
    formatter = {
        "format": settings.log_format,
        "datefmt": "%Y-%m-%d %H:%M:%S",
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": formatter},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "standard",
            },
        },
        "loggers": {
            LOGGER_NAME: {
                "level": settings.log_level,
                "handlers": ["console"],
                "propagate": True,
            },
        },
    }


def setup_logging() -> None:
    """Configure the repowrap logger once at application start."""

    logging.config.dictConfig(_build_logging_config())


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)
