"""
Descriptor Table Module

Fixed-capacity table of open-file handles. Each slot is either free or
holds an OpenDescriptor with its own cursor; the lowest free slot is
handed out first, so descriptor numbers start at 0.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, List, Optional

from .node import NodeHandle
from treefs.exceptions import BadDescriptorError, CapacityExceededError
from treefs.logger import get_logger


class OpenMode(Enum):
    """File open modes."""
    READ = 'r'
    WRITE = 'w'
    READ_WRITE = 'r+'

    @classmethod
    def parse(cls, text: str) -> 'OpenMode':
        """Accept 'r', 'w', 'r+'/'rw' (case-insensitive)."""
        normalized = text.strip().lower()
        if normalized == 'rw':
            normalized = 'r+'
        return cls(normalized)

    @property
    def readable(self) -> bool:
        return self in (OpenMode.READ, OpenMode.READ_WRITE)

    @property
    def writable(self) -> bool:
        return self in (OpenMode.WRITE, OpenMode.READ_WRITE)


class Whence(IntEnum):
    """Reference point for seek()."""
    SET = 0
    CUR = 1
    END = 2


@dataclass
class OpenDescriptor:
    """An in-use slot of the descriptor table."""
    fd: int
    node: NodeHandle
    mode: OpenMode
    offset: int = 0

    def can_read(self) -> bool:
        return self.mode.readable

    def can_write(self) -> bool:
        return self.mode.writable


class DescriptorTable:
    """
    Slot table mapping small integers to open descriptors.

    Example:
        >>> table = DescriptorTable(capacity=32)
        >>> fd = table.allocate(handle, OpenMode.READ, '/a/f.txt')
        >>> table.release(fd)
    """

    def __init__(self, capacity: int = 32):
        self._slots: List[Optional[OpenDescriptor]] = [None] * capacity
        self._logger = get_logger('descriptors')

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def allocate(self, node: NodeHandle, mode: OpenMode, path: Optional[str] = None) -> int:
        """
        Store a new descriptor in the first free slot.

        ``path`` only names the file in the error for a full table; the
        descriptor follows its node across renames.

        Raises:
            CapacityExceededError: If every slot is in use
        """
        for fd, slot in enumerate(self._slots):
            if slot is None:
                self._slots[fd] = OpenDescriptor(fd=fd, node=node, mode=mode)
                return fd
        raise CapacityExceededError(
            "Descriptor table full",
            path=path,
            limit=self.capacity
        )

    def get(self, fd: int) -> OpenDescriptor:
        """
        Look up an in-use descriptor.

        Raises:
            BadDescriptorError: Out of range or free
        """
        if not isinstance(fd, int) or fd < 0 or fd >= len(self._slots):
            raise BadDescriptorError(fd, reason="out of range")
        descriptor = self._slots[fd]
        if descriptor is None:
            raise BadDescriptorError(fd, reason="not open")
        return descriptor

    def release(self, fd: int) -> OpenDescriptor:
        """Free an in-use slot and return what it held."""
        descriptor = self.get(fd)
        self._slots[fd] = None
        return descriptor

    def invalidate(self, nodes: Iterable[NodeHandle]) -> List[int]:
        """
        Close every descriptor that refers to one of ``nodes``.

        Returns:
            The descriptor numbers that were closed
        """
        doomed = set(nodes)
        closed = []
        for fd, slot in enumerate(self._slots):
            if slot is not None and slot.node in doomed:
                self._slots[fd] = None
                closed.append(fd)
        if closed:
            self._logger.debug("Closed descriptors of removed nodes", context={'fds': closed})
        return closed

    def open_descriptors(self) -> List[OpenDescriptor]:
        """All in-use descriptors in slot order."""
        return [slot for slot in self._slots if slot is not None]

    def clear(self) -> None:
        """Free every slot."""
        self._slots = [None] * len(self._slots)
