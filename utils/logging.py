"""Project-wide logging configuration helpers."""
from __future__ import annotations

import logging
import os
from typing import Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Playwright and urllib3 are chatty at DEBUG; keep them at WARNING unless asked.
_NOISY_LOGGERS = ("urllib3", "asyncio", "playwright")


def configure_logging(level_name: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Configure the root logger if it has not been configured yet.

    Parameters
    ----------
    level_name:
        Optional logging level name. If omitted, ``LOG_LEVEL`` from the
        environment (default ``INFO``) is used.
    log_file:
        Optional path of a file that receives a copy of every record. Falls
        back to ``LOG_FILE`` from the environment.
    """
    resolved_level = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, resolved_level, logging.INFO)
    resolved_file = log_file or os.getenv("LOG_FILE")

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=numeric_level,
            format=_DEFAULT_FORMAT,
            datefmt=_DEFAULT_DATE_FORMAT,
        )
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    else:
        root_logger.setLevel(numeric_level)

    if resolved_file and not _has_file_handler(root_logger, resolved_file):
        handler = logging.FileHandler(resolved_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, _DEFAULT_DATE_FORMAT))
        root_logger.addHandler(handler)


def _has_file_handler(root_logger: logging.Logger, path: str) -> bool:
    target = os.path.abspath(path)
    return any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == target
        for handler in root_logger.handlers
    )


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger configured with project defaults."""
    configure_logging()
    return logging.getLogger(name)
