"""Logging setup for applications embedding a peer."""

import logging.config
from typing import Any

from navalpeer.settings import settings

LOG_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "navalpeer": {
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


def configure_logging(level: str | None = None) -> None:
    """Apply LOG_CONFIG with the requested level.

    Parameters
    ----------
    level : str | None
        Level name for the ``navalpeer`` logger. Defaults to ``settings.log_level``.

    """
    config = {**LOG_CONFIG, "loggers": {**LOG_CONFIG["loggers"]}}
    config["loggers"]["navalpeer"] = {
        **LOG_CONFIG["loggers"]["navalpeer"],
        "level": (level or settings.log_level).upper(),
    }
    logging.config.dictConfig(config)
