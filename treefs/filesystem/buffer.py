"""
Content Buffer Module

Grow-only byte storage backing a file node.

The buffer keeps an allocated region (``capacity``) and a logical end
(``size``). Capacity doubles on demand and never shrinks; the bytes
between ``size`` and ``capacity`` are always zero, so a write past the
end leaves a zero-filled gap that reads back as zeros.
"""

from typing import Optional

from treefs.exceptions import CapacityExceededError


class ContentBuffer:
    """
    Growable, zero-filled byte buffer.

    Example:
        >>> buf = ContentBuffer()
        >>> buf.write_at(0, b'Hello')
        5
        >>> buf.capacity
        64
    """

    __slots__ = ('_data', '_size', '_initial_capacity', '_max_size')

    def __init__(self, initial_capacity: int = 64, max_size: Optional[int] = None):
        self._data = bytearray()
        self._size = 0
        self._initial_capacity = initial_capacity
        self._max_size = max_size

    @property
    def size(self) -> int:
        """Logical length of the content."""
        return self._size

    @property
    def capacity(self) -> int:
        """Allocated length; always >= size."""
        return len(self._data)

    def ensure_capacity(self, want: int) -> None:
        """
        Grow the allocation to at least ``want`` bytes.

        Raises:
            CapacityExceededError: If ``want`` is over the size limit or
                the allocation fails
        """
        if self._max_size is not None and want > self._max_size:
            raise CapacityExceededError(
                "File size limit exceeded",
                limit=self._max_size,
                requested=want
            )

        current = len(self._data)
        if current >= want:
            return

        new_capacity = current or self._initial_capacity
        while new_capacity < want:
            new_capacity *= 2

        try:
            self._data.extend(bytes(new_capacity - current))
        except MemoryError as e:
            raise CapacityExceededError(
                "Cannot allocate file buffer",
                requested=new_capacity
            ) from e

    def write_at(self, offset: int, data: bytes) -> int:
        """
        Copy ``data`` into the buffer at ``offset``, growing as needed.

        Returns:
            Number of bytes written
        """
        end = offset + len(data)
        self.ensure_capacity(end)
        self._data[offset:end] = data
        if end > self._size:
            self._size = end
        return len(data)

    def read_at(self, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes from ``offset``; empty at or past the end."""
        if offset >= self._size or length <= 0:
            return b''
        end = min(self._size, offset + length)
        return bytes(self._data[offset:end])

    def getvalue(self) -> bytes:
        """Return the whole logical content."""
        return bytes(self._data[:self._size])

    def __len__(self) -> int:
        return self._size
