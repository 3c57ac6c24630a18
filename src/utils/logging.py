"""
Logging configuration for WhenKas.

All loggers live under the "whenkas" namespace so a single call to
setup_logging controls the CLI, the pipeline and the data sources.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Console output stays short unless verbose
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"

ROOT_LOGGER_NAME = "whenkas"

# Libraries whose INFO chatter hides pipeline messages
NOISY_LOGGERS = ("urllib3", "requests", "tenacity")

_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Configure the whenkas logger hierarchy.

    Args:
        level: Console logging level (default: INFO)
        log_file: Optional file that receives DEBUG output
        verbose: Force DEBUG level and the detailed console format

    Returns:
        The configured root "whenkas" logger
    """
    if verbose:
        level = logging.DEBUG
    console_format = LOG_FORMAT if verbose else CONSOLE_FORMAT

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format, LOG_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a namespaced logger for a module.

    Usage:
        from utils.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Loaded %d rows from %s", len(rows), source)
        logger.debug("Fitted slope %.4f, intercept %.4f", slope, intercept)

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger under the "whenkas" namespace
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return _loggers[name]
