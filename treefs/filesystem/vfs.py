"""
Virtual File System (VFS) Module

The filesystem context: one NodeStore, its root, the current-directory
cursor and the descriptor table, plus every public operation:

- Directory mutation (create, mkdir -p, remove, rename/move)
- Path-addressed and descriptor-addressed I/O
- Metadata (info snapshots, attributes, touch) and name search

Failures raise the exceptions in ``treefs.exceptions``. Every operation
checks its preconditions before changing anything, so a failed call
leaves the tree as it was.

The context does no locking. Callers sharing one instance between
threads must guard it with a single lock of their own.
"""

import time
from typing import Any, Callable, List, Optional, Tuple, Union

from .descriptors import DescriptorTable, OpenDescriptor, OpenMode, Whence
from .metadata import DirEntry, FileInfo, NodeType, coerce_attributes
from .node import Node, NodeHandle, NodeStore
from .path_resolver import PathResolver
from treefs.core.config_loader import FilesystemConfig, get_config, validate_filesystem_config
from treefs.core.subsystem import Subsystem, SubsystemState
from treefs.exceptions import (
    BadDescriptorError,
    CapacityExceededError,
    ConfigValidationError,
    DirectoryNotEmptyError,
    FileExistsError,
    FileNotFoundError,
    FileSystemException,
    InvalidArgumentError,
    NotADirectoryError,
    NotAFileError,
    ReadOnlyError,
)


# A planned directory's parent: an existing node or an earlier plan step.
_PlanParent = Union[NodeHandle, int]


class FileSystem(Subsystem):
    """
    In-memory hierarchical filesystem.

    Example:
        >>> fs = create_filesystem()
        >>> fs.make_directory_path('/a/b/c')
        >>> fs.create_file('/a/b/c/f.txt')
        >>> fs.write_file('/a/b/c/f.txt', 0, b'Hello, World!')
        13
        >>> fd = fs.open('/a/b/c/f.txt', OpenMode.READ)
        >>> fs.read(fd, 5)
        b'Hello'
    """

    def __init__(
        self,
        config: Optional[FilesystemConfig] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__('vfs')
        self._config = config or get_config().filesystem
        self._clock = clock
        self._store: Optional[NodeStore] = None
        self._resolver: Optional[PathResolver] = None
        self._descriptors: Optional[DescriptorTable] = None
        self._cwd: Optional[NodeHandle] = None

    def initialize(self) -> None:
        """Create the root directory and an empty descriptor table."""
        if self._store is not None:
            return

        try:
            validate_filesystem_config(self._config)
        except ConfigValidationError as e:
            self.set_state(SubsystemState.ERROR)
            self._logger.error(
                "Filesystem failed to initialize",
                context={'error': e.message, 'key': e.key}
            )
            raise

        self._store = NodeStore(
            name_max=self._config.name_max,
            max_children=self._config.max_children,
            initial_capacity=self._config.initial_capacity,
            max_file_size=self._config.max_file_size,
            clock=self._clock,
        )
        self._resolver = PathResolver(self._store)
        self._descriptors = DescriptorTable(self._config.max_open_files)
        self._cwd = self._store.root

        self.set_state(SubsystemState.INITIALIZED)
        self._logger.info(
            "Filesystem initialized",
            context={
                'max_children': self._config.max_children,
                'max_open_files': self._config.max_open_files,
            }
        )

    def cleanup(self) -> None:
        """Close all descriptors and drop the tree."""
        if self._descriptors is not None:
            self._descriptors.clear()
        self._store = None
        self._resolver = None
        self._descriptors = None
        self._cwd = None
        self.set_state(SubsystemState.STOPPED)

    @property
    def config(self) -> FilesystemConfig:
        return self._config

    @property
    def store(self) -> NodeStore:
        self.require_ready()
        return self._store

    @property
    def resolver(self) -> PathResolver:
        self.require_ready()
        return self._resolver

    @property
    def descriptors(self) -> DescriptorTable:
        self.require_ready()
        return self._descriptors

    @property
    def root(self) -> NodeHandle:
        return self.store.root

    @property
    def cwd(self) -> NodeHandle:
        self.require_ready()
        return self._cwd

    # Lookup helpers

    def _lookup(self, path: str) -> Node:
        handle = self.resolver.resolve(path, self._cwd)
        if handle is None:
            raise FileNotFoundError(path)
        return self._store.node(handle)

    def _lookup_file(self, path: str) -> Node:
        node = self._lookup(path)
        if not node.is_file:
            raise NotAFileError(path, actual_type="directory")
        return node

    def _lookup_directory(self, path: str) -> Node:
        node = self._lookup(path)
        if not node.is_directory:
            raise NotADirectoryError(path)
        return node

    def _check_room(self, directory: Node) -> None:
        if len(directory.children) >= self._store.max_children:
            raise CapacityExceededError(
                "Directory is full",
                path=self._store.path_of(directory.handle),
                limit=self._store.max_children
            )

    def _planned_path(self, plan: List[Tuple[_PlanParent, str]], ref: _PlanParent) -> str:
        """Path of an existing directory or of a directory still in the plan."""
        names: List[str] = []
        while isinstance(ref, int):
            ref, name = plan[ref]
            names.append(name)
        names.append(self._store.path_of(ref).rstrip('/'))
        return '/'.join(reversed(names)) or '/'

    def resolve(self, path: str) -> Optional[NodeHandle]:
        """Handle of the node at ``path``, or None."""
        return self.resolver.resolve(path, self._cwd)

    def exists(self, path: str) -> bool:
        """Check if a path exists."""
        return self.resolve(path) is not None

    def is_directory(self, path: str) -> bool:
        """Check if a path is a directory."""
        handle = self.resolve(path)
        return handle is not None and self._store.node(handle).is_directory

    def is_file(self, path: str) -> bool:
        """Check if a path is a file."""
        handle = self.resolve(path)
        return handle is not None and self._store.node(handle).is_file

    def path_of(self, handle: NodeHandle) -> str:
        """Absolute path of a node."""
        return self.store.path_of(handle)

    # Current directory

    def change_directory(self, path: str) -> str:
        """
        Move the current-directory cursor.

        Returns:
            The new absolute current directory
        """
        directory = self._lookup_directory(path)
        self._cwd = directory.handle
        return self._store.path_of(self._cwd)

    def current_directory(self) -> str:
        """Absolute path of the current directory."""
        return self.store.path_of(self.cwd)

    # Directory mutation

    def create_file(self, path: str) -> NodeHandle:
        """
        Create an empty file.

        Returns:
            Handle of the new file

        Raises:
            FileNotFoundError: Parent directory missing
            InvalidArgumentError, NameTooLongError: Bad leaf name
            ReadOnlyError: Parent is read-only
            FileExistsError: An entry with that name exists
            CapacityExceededError: Parent is full
        """
        store = self.store
        parent_handle, leaf = self._resolver.resolve_parent(path, self._cwd)
        parent = store.node(parent_handle)

        if not parent.is_directory:
            raise NotADirectoryError(store.path_of(parent_handle))
        if parent.is_read_only:
            raise ReadOnlyError(store.path_of(parent_handle), operation="create")
        if store.find_child(parent_handle, leaf) is not None:
            raise FileExistsError(store.join(parent_handle, leaf))
        self._check_room(parent)

        handle = store.new_child(parent_handle, NodeType.FILE, leaf)

        self._logger.debug("Created file", context={'path': store.path_of(handle)})
        return handle

    def make_directory_path(self, path: str) -> None:
        """
        Create every missing directory along ``path`` (like ``mkdir -p``).

        Existing directories along the way are reused; '/' and '' succeed
        without doing anything. The whole path is checked before the
        first directory is created.

        Raises:
            NotADirectoryError: A file sits where a directory is needed
            InvalidArgumentError, NameTooLongError: Bad segment name
            ReadOnlyError: A new entry would go into a read-only directory
            CapacityExceededError: A directory would exceed its fan-out
        """
        store = self.store
        parsed = PathResolver.parse(path)
        if not parsed.components:
            return

        plan: List[Tuple[_PlanParent, str]] = []
        planned_per_dir: dict[_PlanParent, int] = {}
        position: _PlanParent = store.root if parsed.is_absolute else self._cwd

        for component in parsed.components:
            if component == '.':
                continue

            if component == '..':
                if isinstance(position, int):
                    position = plan[position][0]
                else:
                    parent = store.node(position).parent
                    if parent is not None:
                        position = parent
                continue

            store.check_name(component)

            step = next(
                (i for i, (p, n) in enumerate(plan) if p == position and n == component),
                None
            )
            if step is not None:
                position = step
                continue

            if isinstance(position, int):
                existing_children = 0
            else:
                existing = store.find_child(position, component)
                if existing is not None:
                    if not store.node(existing).is_directory:
                        raise NotADirectoryError(store.join(position, component))
                    position = existing
                    continue

                directory = store.node(position)
                if directory.is_read_only:
                    raise ReadOnlyError(store.path_of(position), operation="mkdir")
                existing_children = len(directory.children)

            pending = planned_per_dir.get(position, 0)
            if existing_children + pending >= store.max_children:
                raise CapacityExceededError(
                    "Directory is full",
                    path=self._planned_path(plan, position),
                    limit=store.max_children
                )
            planned_per_dir[position] = pending + 1
            plan.append((position, component))
            position = len(plan) - 1

        created: List[NodeHandle] = []
        try:
            for parent_ref, name in plan:
                parent = created[parent_ref] if isinstance(parent_ref, int) else parent_ref
                created.append(store.new_child(parent, NodeType.DIRECTORY, name))
        except FileSystemException:
            # Undo from the top: every created subtree hangs off an existing directory.
            for (parent_ref, _), handle in zip(plan, created):
                if not isinstance(parent_ref, int):
                    store.detach(parent_ref, handle)
                    store.destroy(handle)
            raise

        if created:
            self._logger.debug(
                "Created directories",
                context={'path': path, 'created': len(created)}
            )

    def remove_file(self, path: str) -> None:
        """
        Delete a file. Descriptors open on it are closed.

        Raises:
            FileNotFoundError: No such file
            NotAFileError: The entry is a directory
            ReadOnlyError: The file or its directory is read-only
        """
        store = self.store
        parent_handle, leaf = self._resolver.resolve_parent(path, self._cwd)
        parent = store.node(parent_handle)

        target: Optional[Node] = None
        for child_handle in parent.children:
            child = store.node(child_handle)
            if child.name == leaf:
                if not child.is_file:
                    raise NotAFileError(path, actual_type="directory")
                target = child
                break

        if target is None:
            raise FileNotFoundError(path)
        if parent.is_read_only:
            raise ReadOnlyError(store.path_of(parent_handle), operation="remove")
        if target.is_read_only:
            raise ReadOnlyError(path, operation="remove")

        store.detach(parent_handle, target.handle)
        destroyed = store.destroy(target.handle)
        self._descriptors.invalidate(destroyed)
        parent.mark_modified(store.now())

        self._logger.debug("Deleted file", context={'path': path})

    def remove_empty_directory(self, path: str) -> None:
        """
        Delete an empty directory.

        If it is the current directory, the cursor moves to its parent.

        Raises:
            FileNotFoundError: No such directory
            InvalidArgumentError: It is the root
            NotADirectoryError: It is a file
            DirectoryNotEmptyError: It has children
            ReadOnlyError: It or its parent is read-only
        """
        store = self.store
        directory = self._lookup(path)

        if directory.handle == store.root:
            raise InvalidArgumentError("Cannot remove the root directory", path=path)
        if not directory.is_directory:
            raise NotADirectoryError(path)
        if directory.children:
            raise DirectoryNotEmptyError(path)

        parent = store.node(directory.parent)
        if directory.is_read_only:
            raise ReadOnlyError(path, operation="rmdir")
        if parent.is_read_only:
            raise ReadOnlyError(store.path_of(parent.handle), operation="rmdir")

        if self._cwd == directory.handle:
            self._cwd = parent.handle

        store.detach(parent.handle, directory.handle)
        store.destroy(directory.handle)
        parent.mark_modified(store.now())

        self._logger.debug("Removed directory", context={'path': path})

    def rename_or_move(self, old_path: str, new_path: str) -> None:
        """
        Rename a node and/or move it to another directory.

        The node keeps its identity, content and open descriptors. All
        checks run before the node is detached, so on failure it is still
        where it was.

        Raises:
            FileNotFoundError: Source or destination parent missing
            InvalidArgumentError: Source is the root, or a directory would
                move into its own subtree
            ReadOnlyError: Source, its parent, or the destination is read-only
            NotADirectoryError: Destination parent is not a directory
            FileExistsError: Destination name is taken
            CapacityExceededError: Destination directory is full
        """
        store = self.store
        source = self._lookup(old_path)

        if source.handle == store.root:
            raise InvalidArgumentError("Cannot rename the root directory", path=old_path)

        old_parent = store.node(source.parent)
        if source.is_read_only:
            raise ReadOnlyError(old_path, operation="rename")
        if old_parent.is_read_only:
            raise ReadOnlyError(store.path_of(old_parent.handle), operation="rename")

        dest_handle, leaf = self._resolver.resolve_parent(new_path, self._cwd)
        destination = store.node(dest_handle)

        if not destination.is_directory:
            raise NotADirectoryError(store.path_of(dest_handle))
        if destination.is_read_only:
            raise ReadOnlyError(store.path_of(dest_handle), operation="rename")
        if store.find_child(dest_handle, leaf) is not None:
            raise FileExistsError(store.join(dest_handle, leaf))
        if source.is_directory and store.is_ancestor(source.handle, dest_handle):
            raise InvalidArgumentError(
                "Cannot move a directory into itself",
                path=new_path
            )

        old_name = source.name
        now = store.now()

        if dest_handle != old_parent.handle:
            self._check_room(destination)
            store.detach(old_parent.handle, source.handle)
            source.name = leaf
            try:
                store.add_child(dest_handle, source.handle)
            except Exception:
                source.name = old_name
                store.add_child(old_parent.handle, source.handle)
                raise
            old_parent.modified = now
        else:
            source.name = leaf

        source.modified = now
        destination.modified = now

        self._logger.debug(
            "Renamed",
            context={'from': old_path, 'to': store.path_of(source.handle)}
        )

    # Listing and search

    def list_directory(self, path: Optional[str] = None) -> List[DirEntry]:
        """
        Entries of a directory in storage order.

        Args:
            path: Directory to list; the current directory when omitted
        """
        if path is None or path == '':
            directory = self.store.node(self.cwd)
        else:
            directory = self._lookup_directory(path)

        store = self._store
        directory.mark_accessed(store.now())
        return [
            DirEntry(name=child.name, node_type=child.node_type)
            for child in (store.node(handle) for handle in directory.children)
        ]

    def search(self, term: str) -> List[str]:
        """
        Find nodes whose name contains ``term``, below the current directory.

        Every visited node has its accessed time stamped. The root never
        matches.

        Returns:
            Absolute paths of the matches in pre-order

        Raises:
            InvalidArgumentError: Empty search term
        """
        if not term:
            raise InvalidArgumentError("Search term must not be empty")

        store = self.store
        now = store.now()
        matches: List[str] = []
        for node in store.walk(self._cwd):
            node.mark_accessed(now)
            if node.handle != store.root and term in node.name:
                matches.append(store.path_of(node.handle))

        self._logger.debug("Search finished", context={'term': term, 'matches': len(matches)})
        return matches

    # Path-addressed I/O

    def write_file(self, path: str, offset: int, data: bytes) -> int:
        """
        Write ``data`` at ``offset``; a gap past the end is zero-filled.

        Returns:
            Number of bytes written
        """
        if offset < 0:
            raise InvalidArgumentError("Negative offset", path=path)
        payload = _as_bytes(data)

        node = self._lookup_file(path)
        if node.is_read_only:
            raise ReadOnlyError(path, operation="write")

        written = node.content.write_at(offset, payload)
        node.mark_modified(self._store.now())
        return written

    def read_file(self, path: str, offset: int, length: int) -> bytes:
        """Read up to ``length`` bytes from ``offset``; empty at or past the end."""
        if offset < 0 or length < 0:
            raise InvalidArgumentError("Negative offset or length", path=path)

        node = self._lookup_file(path)
        data = node.content.read_at(offset, length)
        node.mark_accessed(self._store.now())
        return data

    # Descriptor I/O

    def open(self, path: str, mode: Union[OpenMode, str] = OpenMode.READ) -> int:
        """
        Open a file and return its descriptor number.

        Raises:
            FileNotFoundError: No such file
            NotAFileError: Path is a directory
            ReadOnlyError: Write access requested on a read-only file
            CapacityExceededError: Descriptor table full
        """
        open_mode = _as_open_mode(mode)
        node = self._lookup_file(path)

        if open_mode.writable and node.is_read_only:
            raise ReadOnlyError(path, operation="open")

        fd = self.descriptors.allocate(node.handle, open_mode, path)
        node.mark_accessed(self._store.now())

        self._logger.debug("Opened", context={'path': path, 'fd': fd, 'mode': open_mode.value})
        return fd

    def close(self, fd: int) -> None:
        """Release a descriptor."""
        self.descriptors.release(fd)
        self._logger.debug("Closed", context={'fd': fd})

    def _descriptor(self, fd: int) -> Tuple[OpenDescriptor, Node]:
        descriptor = self.descriptors.get(fd)
        node = self._store.get(descriptor.node)
        if node is None:
            self._descriptors.release(fd)
            raise BadDescriptorError(fd, reason="file was removed")
        return descriptor, node

    def read(self, fd: int, length: int) -> bytes:
        """
        Read up to ``length`` bytes at the descriptor's cursor.

        Returns an empty bytes object at end of data.
        """
        descriptor, node = self._descriptor(fd)
        if not descriptor.can_read():
            raise BadDescriptorError(fd, reason="not open for reading")
        if length < 0:
            raise InvalidArgumentError("Negative length")

        data = node.content.read_at(descriptor.offset, length)
        descriptor.offset += len(data)
        node.mark_accessed(self._store.now())
        return data

    def write(self, fd: int, data: bytes) -> int:
        """
        Write at the descriptor's cursor and advance it.

        Returns:
            Number of bytes written
        """
        descriptor, node = self._descriptor(fd)
        if not descriptor.can_write():
            raise BadDescriptorError(fd, reason="not open for writing")
        if node.is_read_only:
            raise ReadOnlyError(self._store.path_of(node.handle), operation="write")
        payload = _as_bytes(data)

        written = node.content.write_at(descriptor.offset, payload)
        descriptor.offset += written
        node.mark_modified(self._store.now())
        return written

    def seek(self, fd: int, offset: int, whence: Union[Whence, int] = Whence.SET) -> int:
        """
        Move the descriptor's cursor.

        Positions past the end are allowed.

        Returns:
            The new absolute position

        Raises:
            InvalidArgumentError: Unknown whence or negative result
        """
        descriptor, node = self._descriptor(fd)
        try:
            reference = Whence(whence)
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid whence: {whence!r}") from e

        if reference == Whence.SET:
            position = offset
        elif reference == Whence.CUR:
            position = descriptor.offset + offset
        else:
            position = node.size + offset

        if position < 0:
            raise InvalidArgumentError(f"Negative seek position: {position}")

        descriptor.offset = position
        return position

    def tell(self, fd: int) -> int:
        """Current cursor of a descriptor."""
        descriptor, _ = self._descriptor(fd)
        return descriptor.offset

    # Metadata

    def get_info(self, path: str) -> FileInfo:
        """Metadata snapshot of a node; stamps its accessed time."""
        node = self._lookup(path)
        node.mark_accessed(self._store.now())
        return node.snapshot()

    def set_attributes(self, path: str, bits: int) -> None:
        """Replace a node's attribute bits."""
        attributes = coerce_attributes(bits)
        node = self._lookup(path)
        node.attributes = attributes
        node.modified = self._store.now()

    def touch(self, path: str) -> None:
        """Stamp modified and accessed time on an existing node."""
        node = self._lookup(path)
        node.mark_modified(self._store.now())

    def get_stats(self) -> dict[str, Any]:
        """Get filesystem statistics."""
        store = self.store
        return {
            'total_nodes': len(store),
            'open_files': len(self._descriptors),
            'max_open_files': self._descriptors.capacity,
            'total_size': store.total_bytes(),
            'cwd': store.path_of(self._cwd),
        }


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, (str, int)):
        raise InvalidArgumentError(f"Data must be bytes, not {type(data).__name__}")
    try:
        return bytes(data)
    except TypeError as e:
        raise InvalidArgumentError(f"Data must be bytes-like: {type(data).__name__}") from e


def _as_open_mode(mode: Union[OpenMode, str]) -> OpenMode:
    if isinstance(mode, OpenMode):
        return mode
    try:
        return OpenMode.parse(mode)
    except (ValueError, AttributeError) as e:
        raise InvalidArgumentError(f"Invalid open mode: {mode!r}") from e


def create_filesystem(
    config: Optional[FilesystemConfig] = None,
    clock: Callable[[], float] = time.time
) -> FileSystem:
    """Factory function returning an initialized, running filesystem."""
    fs = FileSystem(config=config, clock=clock)
    fs.initialize()
    fs.start()
    return fs
