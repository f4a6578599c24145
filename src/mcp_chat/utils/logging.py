"""
Logging utilities for mcp-chat.

All package loggers share one set of handlers: a rich console handler on
stderr, plus an optional plain-text file handler.
"""

import logging
from typing import Dict, List, Optional, Union

from rich.console import Console
from rich.logging import RichHandler


_loggers: Dict[str, logging.Logger] = {}
_console = Console(stderr=True)
_log_level = logging.WARNING
_log_handlers: List[logging.Handler] = [
    RichHandler(console=_console, rich_tracebacks=True, show_path=False)
]

FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def configure_logging(
    level: Union[int, str] = logging.INFO, file_path: Optional[str] = None
) -> None:
    """
    Configure the logging system.

    Args:
        level: Logging level, as a number or a name such as ``"debug"``.
        file_path: If provided, also log to this file.
    """
    global _log_level, _log_handlers

    _log_level = _coerce_level(level)
    _log_handlers = [RichHandler(console=_console, rich_tracebacks=True, show_path=False)]

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        _log_handlers.append(file_handler)

    for logger in _loggers.values():
        _attach(logger)


class PatchedLogger(logging.Logger):
    """
    A logger that accepts a ``data`` keyword with structured context.
    """

    def _log(self, level, msg, args, exc_info=None, extra=None, stack_info=False,
             stacklevel=1, data=None):
        if data is not None:
            msg = f"{msg} {data}"
        super()._log(level, msg, args, exc_info, extra, stack_info, stacklevel + 1)


logging.setLoggerClass(PatchedLogger)


def _attach(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    for handler in _log_handlers:
        logger.addHandler(handler)
    logger.setLevel(_log_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance wired to the shared handlers.
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    _attach(logger)
    _loggers[name] = logger
    return logger
