"""
Command Parser Module

Splits shell input into a command name and arguments with POSIX shell
quoting, and keeps a bounded history of the lines it parsed.
"""

import shlex
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional


@dataclass
class ParsedCommand:
    """A parsed command line."""
    command: str
    args: List[str] = field(default_factory=list)


class CommandParser:
    """
    Parses shell command lines.

    Words are split on whitespace; single quotes, double quotes and
    backslash escapes work as in a POSIX shell, so ``""`` is an empty
    argument. Lines starting with ``#`` are comments.

    Example:
        >>> parser = CommandParser()
        >>> parser.parse('write notes.txt "Hello, World!"').args
        ['notes.txt', 'Hello, World!']
    """

    def __init__(self, history_size: int = 1000):
        self._history: Deque[str] = deque(maxlen=max(history_size, 0))

    def parse(self, line: str) -> Optional[ParsedCommand]:
        """
        Parse a command line.

        Returns:
            ParsedCommand, or None for a blank or comment line

        Raises:
            ValueError: On an unterminated quote or a trailing backslash
        """
        line = line.strip()
        if not line or line.startswith('#'):
            return None

        self._history.append(line)
        words = shlex.split(line)
        if not words:
            return None
        return ParsedCommand(command=words[0], args=words[1:])

    def get_history(self) -> List[str]:
        """Parsed lines, oldest first."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
