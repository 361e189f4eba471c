"""
Logging configuration for Global Sentinel.

Both the API process and the collector process log through the shared
``logger``: console output at INFO, a rotating full log and a rotating
error log under ``settings.LOG_DIR``.
"""

import logging
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

from sentinel.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Third-party loggers that are only interesting when something breaks
QUIET_LOGGERS = ("urllib3", "sqlalchemy", "aiohttp", "asyncio", "multipart")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: str = None) -> logging.Logger:
    """
    Install the console and file handlers on the root logger.

    Safe to call more than once; previously installed handlers are replaced.

    Args:
        log_dir: Directory for the log files. Defaults to settings.LOG_DIR.

    Returns:
        The ``sentinel`` logger.
    """
    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)

    root.addHandler(_rotating_handler(directory / "sentinel.log", logging.DEBUG, formatter))
    root.addHandler(_rotating_handler(directory / "error.log", logging.ERROR, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("sentinel")


logger = setup_logging()
