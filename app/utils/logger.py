# app/utils/logger.py
"""
Logging for the alert backend.

    get_logger(__name__)   console + logs/service.log
    get_audit_logger()     additionally writes logs/alerts.log, one line per
                           alert created or acknowledged

Both files rotate at 5MB and keep 10 backups.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = settings.LOG_DIR or os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
AUDIT_LOGGER_NAME = "sentinel.audit"

FORMAT = logging.Formatter(
    fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_configured = False
_audit_configured = False


def _rotating_handler(filename: str, level) -> RotatingFileHandler:
    os.makedirs(LOG_DIR, exist_ok=True)
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(FORMAT)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(FORMAT)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    root.addHandler(_rotating_handler("service.log", LOG_LEVEL))

    # Keep SQL echo and access lines out of the alert logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)


def get_audit_logger() -> logging.Logger:
    """Alert audit trail. Records still reach the console and service.log."""
    global _audit_configured
    logger = get_logger(AUDIT_LOGGER_NAME)
    if not _audit_configured:
        _audit_configured = True
        logger.setLevel(logging.INFO)
        logger.addHandler(_rotating_handler("alerts.log", logging.INFO))
    return logger
