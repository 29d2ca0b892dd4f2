"""
Logging Configuration Module.

Configures logging for the command line tools. Library modules only create
loggers with ``logging.getLogger(__name__)``; handlers are installed here.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_DIR = "logs"
LOG_FILENAME = "attachery.log"
MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SafeRotatingFileHandler(RotatingFileHandler):
    """
    A RotatingFileHandler that keeps logging when rotation fails because the
    file is locked (Windows).
    """

    def doRollover(self) -> None:
        try:
            super().doRollover()
        except PermissionError:
            if sys.platform != "win32":
                raise


def setup_logging(
    debug_mode: bool = False,
    log_to_console: bool = True,
    log_dir: Optional[str] = LOG_DIR,
) -> None:
    """
    Configures the root logger with a rotating file handler
    and optional console handler.

    Args:
        debug_mode (bool): If True, sets level to DEBUG. Defaults to False (INFO).
        log_to_console (bool): If True, adds a StreamHandler. Defaults to True.
        log_dir (Optional[str]): Directory for the log file. None disables
            file logging.
    """
    root_logger = logging.getLogger()

    # Remove existing handlers to avoid duplicates if called multiple times
    if root_logger.handlers:
        root_logger.handlers.clear()

    level = logging.DEBUG if debug_mode else logging.INFO
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir is not None:
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = SafeRotatingFileHandler(
                os.path.join(log_dir, LOG_FILENAME),
                maxBytes=MAX_BYTES,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as e:
            print(f"Could not set up file logging in {log_dir}: {e}", file=sys.stderr)
        else:
            file_handler.setFormatter(formatter)
            file_handler.setLevel(level)
            root_logger.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Convenience function to get a logger with the given name.

    Args:
        name (str): The name of the logger (usually __name__).

    Returns:
        logging.Logger: The logger instance.
    """
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """
    Explicitly closes all logging handlers to release file locks.
    """
    logging.shutdown()
