"""
Centralized logging configuration for the API and the Celery workers.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from app.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER_NAME = "aikotoba"


class LoggingConfig:
    """Configure the root logger once per process."""

    _configured = False

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        self.level = getattr(logging, settings.log_level.upper(), logging.INFO)
        if not LoggingConfig._configured:
            self._configure()
            LoggingConfig._configured = True

    def _configure(self) -> None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root = logging.getLogger()
        root.setLevel(self.level)
        root.addHandler(handler)
        # Keep SQL echo and HTTP client chatter out of the application log.
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the application root logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
