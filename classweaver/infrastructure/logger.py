#!/usr/bin/env python3
"""Structured logging for ClassWeaver runs.

Every message may carry key-value context, rendered after a ``|``:

    writing transformation changes [/out/pkg/A.class] | artifact=/out mode=in_place

Context comes from two places: keyword arguments of a single call, and
the thread-local stack pushed with ``add_context``. The pipeline pushes
``artifact`` and ``mode`` once per run so each line of the run is tagged.

Example:
    >>> logger = Logger(level=LogLevel.INFO)
    >>> with logger.add_context(artifact="app.jar", mode="staged"):
    ...     logger.info("Replaced archive", backup="old-app.jar")
"""

import logging
import logging.handlers
import threading
from contextlib import contextmanager
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from classweaver.core.constants import Limits

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(IntEnum):
    """Log levels matching Python's logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, level: Union["LogLevel", int, str]) -> "LogLevel":
        """Accept a LogLevel, its numeric value or its name in any case.

        Raises:
            KeyError: If a name is unknown
        """
        if isinstance(level, str):
            return cls[level.upper()]
        return cls(level)


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


class Logger:
    """Wrapper around a standard library logger adding run context.

    Records do not propagate to the root logger, so output goes only to
    the handlers given here (a console handler by default).
    """

    _context_stack = threading.local()

    def __init__(
        self,
        name: str = "classweaver",
        level: Union[LogLevel, str] = LogLevel.INFO,
        handlers: Optional[List[logging.Handler]] = None,
    ):
        """Initialize logger.

        Args:
            name: Name of the underlying ``logging`` logger
            level: Minimum level, a LogLevel or its name
            handlers: Output handlers, replacing any already attached
        """
        self.name = name
        self.logger = logging.getLogger(name)
        self.set_level(level)

        self.logger.handlers.clear()
        for handler in handlers if handlers is not None else [self._create_console_handler()]:
            self.logger.addHandler(handler)

        self.logger.propagate = False

    def _create_console_handler(self) -> logging.StreamHandler:
        handler = logging.StreamHandler()
        handler.setFormatter(_formatter())
        return handler

    def create_file_handler(
        self,
        filename: Union[str, Path],
        max_bytes: int = Limits.LOG_FILE_MAX_BYTES,
        backup_count: int = Limits.LOG_FILE_BACKUPS,
    ) -> logging.handlers.RotatingFileHandler:
        """Create a rotating file handler using the console format.

        Raises:
            OSError: If the file cannot be opened
        """
        handler = logging.handlers.RotatingFileHandler(
            filename, maxBytes=max_bytes, backupCount=backup_count
        )
        handler.setFormatter(_formatter())
        return handler

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)

    def close(self) -> None:
        """Detach and close every handler."""
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

    def set_level(self, level: Union[LogLevel, str]) -> None:
        self.logger.setLevel(LogLevel.parse(level))

    def get_level(self) -> LogLevel:
        return LogLevel(self.logger.level)

    def _stack(self) -> List[Dict[str, Any]]:
        if not hasattr(self._context_stack, "stack"):
            self._context_stack.stack = []
        return self._context_stack.stack

    def _get_context(self) -> Dict[str, Any]:
        """Current thread's context, inner values overriding outer ones."""
        context: Dict[str, Any] = {}
        for layer in self._stack():
            context.update(layer)
        return context

    @contextmanager
    def add_context(self, **kwargs) -> Iterator[None]:
        """Tag every message logged by this thread inside the block.

        Example:
            >>> with logger.add_context(artifact="app.jar"):
            ...     logger.info("Rebuilding archive")
        """
        stack = self._stack()
        stack.append(kwargs)
        try:
            yield
        finally:
            stack.pop()

    def _log(self, level: int, msg: str, context: Dict[str, Any], exc_info: Any = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        combined = self._get_context()
        combined.update(context)
        if combined:
            msg = f"{msg} | " + " ".join(f"{k}={v}" for k, v in combined.items())
        self.logger.log(level, msg, exc_info=exc_info, extra={"context": combined})

    def debug(self, msg: str, **context) -> None:
        self._log(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log(logging.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._log(logging.ERROR, msg, context)

    def exception(self, msg: str, exc: BaseException, **context) -> None:
        """Log an error with the exception type, message and traceback.

        Args:
            msg: Log message
            exc: Exception to report
            **context: Additional context key-value pairs
        """
        context["exception_type"] = type(exc).__name__
        context["exception_message"] = str(exc)
        self._log(logging.ERROR, msg, context, exc_info=exc)


_global_logger: Optional[Logger] = None


def get_logger(name: str = "classweaver") -> Logger:
    """Return the global logger, creating one with a console handler if needed."""
    global _global_logger
    if _global_logger is None or _global_logger.name != name:
        _global_logger = Logger(name=name)
    return _global_logger


def set_global_logger(logger: Optional[Logger]) -> None:
    """Install ``logger`` as the global logger, or reset it with None."""
    global _global_logger
    _global_logger = logger
