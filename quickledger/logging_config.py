import logging
import logging.config
from typing import Optional

from .config import get_settings


def get_logging_config(level: Optional[str] = None) -> dict:
    log_level = (level or get_settings().log_level).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "default",
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": log_level},
            # Library chatter stays at INFO or above.
            "httpx": {"level": "WARNING"},
            "telegram": {"level": "INFO"},
            "sqlalchemy.engine": {"level": "WARNING"},
            "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
        },
    }


def configure_logging(level: Optional[str] = None) -> None:
    logging.config.dictConfig(get_logging_config(level))
