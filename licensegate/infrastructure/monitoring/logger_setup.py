"""Logging configuration for licensegate.

The root logger is configured from the `logging.*` configuration keys:

    logging.level   level name or number (default INFO)
    logging.format  record format string
    logging.file    optional log file; parent directories are created

Explicit arguments to `setup_logging` take precedence over configuration.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from licensegate.infrastructure.config.settings import get_config

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LevelSpec = Union[int, str]


def resolve_level(level: Optional[LevelSpec]) -> int:
    """Maps a level name such as 'debug' (or a number) to a logging level; INFO if unknown."""
    if isinstance(level, int):
        return level
    if level is None:
        return DEFAULT_LOG_LEVEL
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def _file_handler(log_file: str, formatter: logging.Formatter, level: int) -> Optional[logging.Handler]:
    path = Path(log_file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding='utf-8')
    except OSError as e:
        logging.error(f"Failed to set up file logging to {path}: {e}")
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_level: Optional[LevelSpec] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> int:
    """Configures the root logger, replacing any handlers it already has.

    Args:
        log_level: Overrides `logging.level`.
        log_format: Overrides `logging.format`.
        log_file: Overrides `logging.file`.

    Returns:
        The level the root logger was set to.
    """
    level = resolve_level(log_level if log_level is not None else get_config("logging.level"))
    formatter = logging.Formatter(log_format or get_config("logging.format", DEFAULT_LOG_FORMAT))
    log_file = log_file or get_config("logging.file")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = _file_handler(str(log_file), formatter, level)
        if file_handler is not None:
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}")
    return level
