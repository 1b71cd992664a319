"""Logging setup for formacli.

Log records go to stderr so command output on stdout can be piped as JSON.
An optional rotating file keeps a longer history of retries and failures.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
LOG_FILE_MAX_BYTES = 1_000_000
LOG_FILE_BACKUPS = 3

# Third-party loggers that log each request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

logger = logging.getLogger(__name__)


def resolve_log_level(name: Optional[str], default: int = DEFAULT_LOG_LEVEL) -> int:
    """Maps a level name from config ('debug', 'INFO') to a logging constant."""
    if not name:
        return default
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = None,
) -> None:
    """Points the root logger at stderr and, if given, a rotating log file.

    Calling it again replaces the handlers installed by the previous call.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
            ))
        except OSError as e:
            file_error = e

    formatter = logging.Formatter(log_format)
    root = logging.getLogger()
    root.setLevel(log_level)
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if file_error is not None:
        logger.error(f"Cannot write log file {log_file}: {file_error}")
    logger.debug(f"Logging at {logging.getLevelName(log_level)}" + (f", file {log_file}" if log_file else ""))
