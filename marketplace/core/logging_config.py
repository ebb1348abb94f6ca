"""Logging configuration."""

import logging.config

from marketplace.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure the root and uvicorn loggers for the application."""
    level = (level or settings.log_level).upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "marketplace": {"level": level},
                "uvicorn.access": {"level": "WARNING"},
            },
            "root": {"level": level, "handlers": ["console"]},
        }
    )
