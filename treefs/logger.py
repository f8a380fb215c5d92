"""
treefs Logger Module

Thin layer over the standard logging package:
- One cached Logger per subsystem ('vfs', 'descriptors', 'shell', ...)
- Structured context dictionaries appended to each message
- Console and optional file output with a shared formatter
- In-memory buffer of recent records for inspection and tests
"""

import logging
import sys
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Deque, List, Optional


class LogLevel(IntEnum):
    """Standard logging levels, usable wherever an int level is expected."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


def _render_context(context: Optional[dict[str, Any]]) -> str:
    if not context:
        return ""
    return " {" + ", ".join(f"{key}={value}" for key, value in context.items()) + "}"


class LogFormatter(logging.Formatter):
    """
    Formats records as::

        12:00:00.000 DEBUG    vfs: Created file {path=/a/f.txt}
    """

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }

    def __init__(self, use_colors: bool = False):
        super().__init__(datefmt='%H:%M:%S')
        stream_is_tty = getattr(sys.stderr, 'isatty', lambda: False)()
        self._colors = use_colors and stream_is_tty

    def format(self, record: logging.LogRecord) -> str:
        stamp = f"{self.formatTime(record, self.datefmt)}.{int(record.msecs):03d}"

        level = f"{record.levelname:<8}"
        if self._colors and record.levelno in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelno]}{level}\033[0m"

        origin = getattr(record, 'subsystem', record.name)
        line = f"{stamp} {level} {origin}: {record.getMessage()}"
        line += _render_context(getattr(record, 'context', None))

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


@dataclass(frozen=True)
class LogEntry:
    """One buffered log record."""
    created: float
    level: str
    levelno: int
    subsystem: Optional[str]
    message: str
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.level:<8} {self.subsystem}: {self.message}{_render_context(self.context)}"


class MemoryLogHandler(logging.Handler):
    """Keeps the last ``max_entries`` records for later inspection."""

    def __init__(self, max_entries: int = 1000):
        super().__init__()
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        entry = LogEntry(
            created=record.created,
            level=record.levelname,
            levelno=record.levelno,
            subsystem=getattr(record, 'subsystem', None),
            message=record.getMessage(),
            context=dict(getattr(record, 'context', None) or {}),
        )
        with self._entries_lock:
            self._entries.append(entry)

    def get_logs(
        self,
        level: Optional[int] = None,
        subsystem: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[LogEntry]:
        """
        Buffered entries, oldest first.

        Args:
            level: Only entries at this level or above
            subsystem: Only entries from this subsystem
            limit: Only the newest ``limit`` matches
        """
        with self._entries_lock:
            entries = list(self._entries)

        selected = [
            entry for entry in entries
            if (level is None or entry.levelno >= level)
            and (subsystem is None or entry.subsystem == subsystem)
        ]
        if limit is not None:
            selected = selected[-limit:] if limit > 0 else []
        return selected

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()


class Logger:
    """
    Subsystem logger facade.

    ``Logger('vfs')`` always returns the same object; its records go to
    the ``treefs.vfs`` standard logger and carry the subsystem name and
    an optional context dict.

    Example:
        >>> log = Logger('vfs')
        >>> log.debug("Created file", context={'path': '/a/f.txt'})
    """

    ROOT_NAME = 'treefs'

    _cache: dict[str, 'Logger'] = {}
    _cache_lock = threading.Lock()
    _memory_handler: Optional[MemoryLogHandler] = None

    def __new__(cls, subsystem: str = 'treefs') -> 'Logger':
        with cls._cache_lock:
            logger = cls._cache.get(subsystem)
            if logger is None:
                logger = super().__new__(cls)
                logger._subsystem = subsystem
                logger._logger = logging.getLogger(f'{cls.ROOT_NAME}.{subsystem}')
                cls._cache[subsystem] = logger
            return logger

    @classmethod
    def initialize(
        cls,
        level: int = LogLevel.WARNING,
        log_file: Optional[str] = None,
        console_output: bool = True,
        use_colors: bool = True
    ) -> None:
        """
        Attach handlers to the ``treefs`` logger tree.

        Only the first call has an effect.

        Args:
            level: Minimum level for every handler
            log_file: Also append records to this file
            console_output: Also write records to stderr
            use_colors: Color the level name on a terminal
        """
        with cls._cache_lock:
            if cls._memory_handler is not None:
                return

            handlers: List[logging.Handler] = [MemoryLogHandler()]
            if console_output:
                console = logging.StreamHandler(sys.stderr)
                console.setFormatter(LogFormatter(use_colors=use_colors))
                handlers.append(console)
            if log_file:
                Path(log_file).parent.mkdir(parents=True, exist_ok=True)
                to_file = logging.FileHandler(log_file, encoding='utf-8')
                to_file.setFormatter(LogFormatter())
                handlers.append(to_file)

            tree = logging.getLogger(cls.ROOT_NAME)
            tree.setLevel(level)
            for handler in handlers:
                handler.setLevel(level)
                tree.addHandler(handler)

            cls._memory_handler = handlers[0]

    @classmethod
    def get_recent_logs(
        cls,
        level: Optional[int] = None,
        subsystem: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[LogEntry]:
        """Entries held by the buffer that initialize() attached."""
        if cls._memory_handler is None:
            return []
        return cls._memory_handler.get_logs(level=level, subsystem=subsystem, limit=limit)

    @property
    def subsystem(self) -> str:
        return self._subsystem

    def log(
        self,
        level: int,
        message: str,
        context: Optional[dict[str, Any]] = None,
        exc_info: Any = None
    ) -> None:
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={'subsystem': self._subsystem, 'context': context or {}},
        )

    def debug(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.log(LogLevel.INFO, message, context)

    def warning(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.log(LogLevel.WARNING, message, context)

    def error(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        self.log(LogLevel.ERROR, message, context)

    def exception(self, message: str, context: Optional[dict[str, Any]] = None) -> None:
        """Log at ERROR with the traceback of the exception being handled."""
        self.log(LogLevel.ERROR, message, context, exc_info=True)


def get_logger(subsystem: str) -> Logger:
    """Shorthand for ``Logger(subsystem)``."""
    return Logger(subsystem)
