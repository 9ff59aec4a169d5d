# intake/utils/logger.py
"""
Logging setup shared by every module: console plus a rotating file
(LOG_DIR/intake.log). Tests set LOG_DIR to an empty string to stay
console-only.
"""

import logging
import os
from typing import Optional
from logging.handlers import RotatingFileHandler

from intake.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE = "intake.log"

# third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "uvicorn.access")

_configured = False


def _file_handler(log_dir: str, level: str, fmt: logging.Formatter):
    try:
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            filename=os.path.join(log_dir, LOG_FILE),
            maxBytes=5 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        )
    except OSError as e:
        logging.getLogger(__name__).warning(f"File logging disabled ({log_dir}): {e}")
        return None
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None):
    """Idempotent; the first call wins."""
    global _configured
    if _configured:
        return
    _configured = True

    level = (level or settings.LOG_LEVEL).upper()
    log_dir = settings.LOG_DIR if log_dir is None else log_dir
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root = logging.getLogger()
    root.setLevel(level)
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)
    root.addHandler(console)

    if log_dir:
        handler = _file_handler(log_dir, level, fmt)
        if handler:
            root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
