"""Logging configuration for scripts driving the path tracer.

Library modules only create loggers with ``logging.getLogger(__name__)``;
they never install handlers. Scripts and viewers call `setup_logging` once
at startup.
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = "INFO"


def setup_logging(
    name: str = "pathtracer",
    level: str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """Set up logging configuration.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        name: Logger name; "pathtracer" covers every module of the package.
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a rotating log file.

    Returns:
        Configured logger instance
    """
    if level is None:
        level = DEFAULT_LEVEL
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10485760,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
