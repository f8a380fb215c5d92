"""
Metadata Module

Attribute flags, metadata snapshots and their display formatting.
"""

import time
from dataclasses import dataclass
from enum import Enum, IntFlag

from treefs.exceptions import InvalidArgumentError


class NodeType(Enum):
    """Types of nodes."""
    DIRECTORY = 1
    FILE = 2


class Attribute(IntFlag):
    """Per-node attribute bits (one byte)."""
    NONE = 0x00
    HIDDEN = 0x01
    READONLY = 0x02
    SYSTEM = 0x04
    ARCHIVE = 0x08

    ALL = HIDDEN | READONLY | SYSTEM | ARCHIVE


def coerce_attributes(bits: int) -> Attribute:
    """
    Convert an int or Attribute to an Attribute.

    Raises:
        InvalidArgumentError: If bits outside the defined flags are set
    """
    value = int(bits)
    if value < 0 or value & ~int(Attribute.ALL):
        raise InvalidArgumentError(f"Unknown attribute bits: {value:#04x}")
    return Attribute(value)


@dataclass(frozen=True)
class FileInfo:
    """
    Point-in-time snapshot of a node's metadata.

    ``size`` is only meaningful for files and ``child_count`` only for
    directories; the other one is always 0.
    """
    name: str
    node_type: NodeType
    created: float
    modified: float
    accessed: float
    attributes: Attribute
    size: int = 0
    child_count: int = 0

    @property
    def is_directory(self) -> bool:
        return self.node_type == NodeType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.node_type == NodeType.FILE

    @property
    def is_read_only(self) -> bool:
        return bool(self.attributes & Attribute.READONLY)


@dataclass(frozen=True)
class DirEntry:
    """One entry of a directory listing."""
    name: str
    node_type: NodeType

    @property
    def display_name(self) -> str:
        """Name with a trailing '/' for directories."""
        if self.node_type == NodeType.DIRECTORY:
            return f"{self.name}/"
        return self.name


_ATTRIBUTE_LETTERS = (
    (Attribute.HIDDEN, 'H'),
    (Attribute.READONLY, 'R'),
    (Attribute.SYSTEM, 'S'),
    (Attribute.ARCHIVE, 'A'),
)


def format_attributes(attributes: Attribute) -> str:
    """Render attribute bits as a fixed-width letter mask, e.g. ``-R-A``."""
    return ''.join(
        letter if attributes & flag else '-'
        for flag, letter in _ATTRIBUTE_LETTERS
    )


def parse_attributes(text: str) -> Attribute:
    """
    Parse a letter mask (``HRSA`` in any order, ``-`` ignored) or a number.

    Raises:
        InvalidArgumentError: On an unknown letter
    """
    text = text.strip()
    if not text:
        raise InvalidArgumentError("Empty attribute mask")

    try:
        return coerce_attributes(int(text, 0))
    except ValueError:
        pass

    result = Attribute.NONE
    letters = {letter: flag for flag, letter in _ATTRIBUTE_LETTERS}
    for char in text.upper():
        if char == '-':
            continue
        if char not in letters:
            raise InvalidArgumentError(f"Unknown attribute letter: {char}")
        result |= letters[char]
    return result


def format_time(timestamp: float) -> str:
    """Render an epoch timestamp in local time."""
    return time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(timestamp))
