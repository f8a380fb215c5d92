"""
Node Store Module

Owns every node of the tree.

Nodes live in a single arena and are addressed by ``NodeHandle``
(slot index + generation). Freeing a slot bumps its generation, so a
handle kept after its node was destroyed simply stops resolving instead
of pointing at a recycled node. Parent links are plain handles used for
traversal only; ownership runs from a directory to its children.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from .buffer import ContentBuffer
from .metadata import Attribute, FileInfo, NodeType
from treefs.exceptions import (
    CapacityExceededError,
    FileExistsError,
    FileSystemException,
    InvalidArgumentError,
    NameTooLongError,
    NotADirectoryError,
)
from treefs.logger import get_logger


@dataclass(frozen=True)
class NodeHandle:
    """Stable reference to a node in a NodeStore."""
    index: int
    generation: int


@dataclass
class Node:
    """
    A directory or file.

    Directories use ``children``; files use ``content``.
    """
    handle: NodeHandle
    node_type: NodeType
    name: str
    parent: Optional[NodeHandle]
    created: float
    modified: float
    accessed: float
    attributes: Attribute = Attribute.NONE
    children: List[NodeHandle] = field(default_factory=list, repr=False)
    content: Optional[ContentBuffer] = field(default=None, repr=False)

    @property
    def is_directory(self) -> bool:
        return self.node_type == NodeType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.node_type == NodeType.FILE

    @property
    def is_read_only(self) -> bool:
        return bool(self.attributes & Attribute.READONLY)

    @property
    def size(self) -> int:
        if self.content is None:
            return 0
        return self.content.size

    def mark_accessed(self, now: float) -> None:
        self.accessed = now

    def mark_modified(self, now: float) -> None:
        self.modified = now
        self.accessed = now

    def snapshot(self) -> FileInfo:
        """Build a FileInfo from the current state."""
        return FileInfo(
            name=self.name,
            node_type=self.node_type,
            created=self.created,
            modified=self.modified,
            accessed=self.accessed,
            attributes=self.attributes,
            size=self.size if self.is_file else 0,
            child_count=len(self.children) if self.is_directory else 0,
        )


def name_length(name: str) -> int:
    """Length of a name in bytes, as bounded by ``name_max``."""
    return len(name.encode('utf-8'))


class NodeStore:
    """
    Arena of nodes with a root directory.

    Example:
        >>> store = NodeStore()
        >>> docs = store.new(NodeType.DIRECTORY, 'docs', store.root)
        >>> store.add_child(store.root, docs)
        >>> store.path_of(docs)
        '/docs'
    """

    def __init__(
        self,
        name_max: int = 31,
        max_children: int = 64,
        initial_capacity: int = 64,
        max_file_size: Optional[int] = None,
        clock: Callable[[], float] = time.time
    ):
        self.name_max = name_max
        self.max_children = max_children
        self.initial_capacity = initial_capacity
        self.max_file_size = max_file_size
        self._clock = clock
        self._logger = get_logger('nodes')

        self._slots: List[Optional[Node]] = []
        self._generations: List[int] = []
        self._free: List[int] = []
        self._live = 0

        self._root = self._allocate(NodeType.DIRECTORY, '', None)

    @property
    def root(self) -> NodeHandle:
        return self._root

    def now(self) -> float:
        """Current time from the store clock."""
        return self._clock()

    def __len__(self) -> int:
        return self._live

    def _allocate(
        self,
        node_type: NodeType,
        name: str,
        parent: Optional[NodeHandle]
    ) -> NodeHandle:
        if self._free:
            index = self._free.pop()
            generation = self._generations[index]
        else:
            index = len(self._slots)
            generation = 0
            self._slots.append(None)
            self._generations.append(generation)

        handle = NodeHandle(index, generation)
        now = self.now()
        node = Node(
            handle=handle,
            node_type=node_type,
            name=name,
            parent=parent,
            created=now,
            modified=now,
            accessed=now,
        )
        if node_type == NodeType.FILE:
            node.content = ContentBuffer(self.initial_capacity, self.max_file_size)

        self._slots[index] = node
        self._live += 1
        return handle

    def _release(self, handle: NodeHandle) -> None:
        self._slots[handle.index] = None
        self._generations[handle.index] += 1
        self._free.append(handle.index)
        self._live -= 1

    def get(self, handle: Optional[NodeHandle]) -> Optional[Node]:
        """Return the node for ``handle``, or None if it was destroyed."""
        if handle is None or handle.index >= len(self._slots):
            return None
        if self._generations[handle.index] != handle.generation:
            return None
        return self._slots[handle.index]

    def node(self, handle: NodeHandle) -> Node:
        """Like get(), but a stale handle is a programming error."""
        node = self.get(handle)
        if node is None:
            raise KeyError(f"Stale node handle: {handle}")
        return node

    def is_alive(self, handle: Optional[NodeHandle]) -> bool:
        return self.get(handle) is not None

    def check_name(self, name: str) -> None:
        """
        Validate a node name.

        Raises:
            InvalidArgumentError: Empty, reserved, or containing '/'
            NameTooLongError: Longer than name_max bytes
        """
        if not name or name in ('.', '..') or '/' in name:
            raise InvalidArgumentError(f"Invalid name: {name!r}")
        if name_length(name) > self.name_max:
            raise NameTooLongError(name, self.name_max)

    def new(
        self,
        node_type: NodeType,
        name: str,
        parent: Optional[NodeHandle]
    ) -> NodeHandle:
        """
        Create a detached node. The caller attaches it with add_child().

        Raises:
            InvalidArgumentError, NameTooLongError: Bad name
        """
        self.check_name(name)
        return self._allocate(node_type, name, parent)

    def new_child(self, dir_handle: NodeHandle, node_type: NodeType, name: str) -> NodeHandle:
        """
        Create a node and attach it to ``dir``.

        If the attach fails the new slot is released again, so a failed
        call leaves no orphan behind.
        """
        handle = self.new(node_type, name, dir_handle)
        try:
            self.add_child(dir_handle, handle)
        except FileSystemException:
            self._release(handle)
            raise
        return handle

    def add_child(self, dir_handle: NodeHandle, child_handle: NodeHandle) -> None:
        """
        Attach ``child`` to ``dir``.

        Re-adding a current child is a no-op.

        Raises:
            NotADirectoryError: dir is not a directory
            InvalidArgumentError: child belongs to another directory
            FileExistsError: another child already uses the name
            CapacityExceededError: dir is at the fan-out limit
        """
        directory = self.node(dir_handle)
        child = self.node(child_handle)

        if not directory.is_directory:
            raise NotADirectoryError(self.path_of(dir_handle))

        if child_handle in directory.children:
            return

        if child.parent is not None and child.parent != dir_handle:
            raise InvalidArgumentError(
                f"Node already belongs to another directory: {child.name}",
                context={'parent': self.path_of(child.parent)}
            )

        if self.find_child(dir_handle, child.name) is not None:
            raise FileExistsError(self.join(dir_handle, child.name))

        if len(directory.children) >= self.max_children:
            raise CapacityExceededError(
                "Directory is full",
                path=self.path_of(dir_handle),
                limit=self.max_children
            )

        directory.children.append(child_handle)
        child.parent = dir_handle
        directory.mark_modified(self.now())

    def find_child(self, dir_handle: NodeHandle, name: str) -> Optional[NodeHandle]:
        """Exact, case-sensitive lookup of ``name`` among dir's children."""
        directory = self.get(dir_handle)
        if directory is None or not directory.is_directory:
            return None
        for child_handle in directory.children:
            if self.node(child_handle).name == name:
                return child_handle
        return None

    def detach(self, dir_handle: NodeHandle, child_handle: NodeHandle) -> None:
        """
        Remove ``child`` from ``dir`` by swapping it with the last entry.

        Listing order is not preserved. The child's parent link is cleared.
        """
        directory = self.node(dir_handle)
        children = directory.children
        position = children.index(child_handle)
        children[position] = children[-1]
        children.pop()
        self.node(child_handle).parent = None

    def destroy(self, handle: NodeHandle) -> List[NodeHandle]:
        """
        Release a detached node and its whole subtree, children first.

        Returns:
            Handles of every destroyed node
        """
        order: List[NodeHandle] = []
        stack = [handle]
        while stack:
            current = stack.pop()
            order.append(current)
            stack.extend(self.node(current).children)

        # Reverse pre-order visits every child before its parent.
        for current in reversed(order):
            self._release(current)

        self._logger.debug("Destroyed subtree", context={'nodes': len(order)})
        return order

    def path_of(self, handle: NodeHandle) -> str:
        """Absolute path of a node; the root is '/'."""
        parts: List[str] = []
        node = self.get(handle)
        while node is not None and node.parent is not None:
            parts.append(node.name)
            node = self.get(node.parent)
        if not parts:
            return '/'
        return '/' + '/'.join(reversed(parts))

    def join(self, dir_handle: NodeHandle, name: str) -> str:
        """Path of ``name`` inside ``dir``."""
        base = self.path_of(dir_handle)
        if base == '/':
            return f"/{name}"
        return f"{base}/{name}"

    def is_ancestor(self, ancestor: NodeHandle, handle: NodeHandle) -> bool:
        """True if ``ancestor`` is ``handle`` or one of its parents."""
        current: Optional[NodeHandle] = handle
        while current is not None:
            if current == ancestor:
                return True
            current = self.node(current).parent
        return False

    def walk(self, handle: NodeHandle) -> Iterator[Node]:
        """Pre-order iteration of a subtree in storage order."""
        stack = [handle]
        while stack:
            node = self.node(stack.pop())
            yield node
            stack.extend(reversed(node.children))

    def total_bytes(self) -> int:
        """Sum of the logical sizes of all files."""
        return sum(node.size for node in self.walk(self._root) if node.is_file)
