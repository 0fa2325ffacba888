"""
Logging utilities.

WHAT: Centralized logging configuration for the freight exchange
WHY: One log format across route synthesis, negotiation, and storage, with
     per-module verbosity (e.g. a chatty simulator next to a quiet store)
HOW: Python logging with file and console handlers, then per-logger levels
     from settings.LOG_MODULE_LEVELS
"""

import logging
import sys
from pathlib import Path

from ..core.config import settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(name: str, default: int = logging.INFO) -> int:
    return getattr(logging, name.upper(), default)


def apply_module_levels(levels: dict[str, str] | None = None) -> dict[str, int]:
    """
    Set levels on individual loggers.

    Args:
        levels: Logger name to level name, e.g. {"freight_exchange.services": "DEBUG"}.
            Defaults to settings.LOG_MODULE_LEVELS.

    Returns:
        Logger name to the numeric level that was applied
    """
    levels = settings.LOG_MODULE_LEVELS if levels is None else levels
    applied = {}
    for name, level_name in levels.items():
        level = _level(level_name)
        logging.getLogger(name).setLevel(level)
        applied[name] = level
    return applied


def setup_logging(log_file: str | None = None):
    """
    Configure application logging.

    WHAT: Set up root logger with file and console handlers
    WHY: Ensure logs are captured to file and visible in console
    HOW: Create handlers with formatters, set root and per-module levels from config

    Args:
        log_file: Override for settings.LOG_FILE
    """
    log_path = Path(log_file or settings.LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(settings.LOG_LEVEL))

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_level(settings.CONSOLE_LOG_LEVEL))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(file_handler)

    applied = apply_module_levels()
    module_levels = ", ".join(f"{name}={logging.getLevelName(level)}" for name, level in applied.items())

    root_logger.info(f"Logging initialized (level={settings.LOG_LEVEL}, file={log_path}, modules: {module_levels})")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
