"""
Storyframe Logging Configuration

Every module logs under the ``storyframe`` namespace. The API server writes
a timestamped log file into the configured logs directory as well.
"""

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

ROOT_LOGGER_NAME = "storyframe"

_initialized: bool = False


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console_output: bool = True
) -> None:
    """
    (Re)configure the ``storyframe`` logger tree.

    Args:
        level: Minimum level for every handler
        log_file: Also write records to this file
        verbose: Include line numbers in each record
        console_output: Write records to stdout
    """
    global _initialized

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level.value)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        VERBOSE_FORMAT if verbose else DEFAULT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    handlers = []
    if console_output:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setLevel(level.value)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, namespaced under ``storyframe``."""
    if not _initialized:
        setup_logging()

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_server_logging(config, prefix: str = "server") -> Path:
    """
    Log to the console and to a new timestamped file in ``config.logs_dir``.

    DEBUG records are kept when ``config.verbose_logging`` is set.

    Returns:
        Path of the log file
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = Path(config.logs_dir) / f"{prefix}_{timestamp}.log"
    setup_logging(
        level=LogLevel.DEBUG if config.verbose_logging else LogLevel.INFO,
        log_file=log_file,
        verbose=config.verbose_logging,
    )
    return log_file
