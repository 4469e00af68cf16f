"""
Base utilities shared by the storefront services.

This module provides:
- Logging setup (console, rotating file, separate error file)
- Event/error logging helpers
- The BaseService class every workflow and accessor inherits
"""
import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from storefront.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOGGER_NAME = "storefront"


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Configure the ``storefront`` logger hierarchy.

    Args:
        settings: Runtime settings (LOG_LEVEL, LOG_FILE)

    Returns:
        The root storefront logger
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.log_file:
        log_dir = os.path.dirname(settings.log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file, maxBytes=10 * 1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

        error_handler = RotatingFileHandler(
            os.path.join(log_dir or ".", "error.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root.addHandler(error_handler)

    root.propagate = True
    return root


class BaseService:
    """
    Base class for the storefront services. Provides:
    - A named logger under the ``storefront`` hierarchy
    - Structured event logging
    - Structured error logging
    """

    def __init__(self, service_name: str = "core"):
        self.service_name = service_name
        self.logger = logging.getLogger(f"{LOGGER_NAME}.{service_name}")

    def log_event(self, event: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Log a business event at INFO level."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "event": event,
            "data": details or {},
        }
        self.logger.info("EVENT: %s", json.dumps(log_data, default=str))
        return log_data

    def log_error(self, error: Exception, context: str = "", **details: Any) -> Dict[str, Any]:
        """Log an error with its context. Never pass secrets as details."""
        error_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "error": str(error),
            "error_type": error.__class__.__name__,
            "context": context or "unknown",
            "data": details,
        }
        self.logger.error("ERROR: %s", json.dumps(error_data, default=str))
        return error_data
