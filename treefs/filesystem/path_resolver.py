"""
Path Resolver Module

Walks slash-separated paths over a NodeStore.

Absolute paths start at the root, relative ones at the caller's start
node (the current directory). Empty segments from leading, trailing or
doubled slashes are ignored; ``.`` stays put; ``..`` climbs to the
parent and stops at the root.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .node import NodeHandle, NodeStore, name_length
from treefs.exceptions import (
    FileSystemException,
    InvalidArgumentError,
    NameTooLongError,
    PathResolutionError,
)


@dataclass
class ParsedPath:
    """A parsed path with its components."""
    is_absolute: bool
    components: List[str]

    def __str__(self) -> str:
        if self.is_absolute:
            return '/' + '/'.join(self.components)
        return '/'.join(self.components) if self.components else '.'


class PathResolver:
    """
    Resolves path strings to node handles.

    Example:
        >>> resolver = PathResolver(store)
        >>> resolver.resolve('/a/b/../c', start=store.root)
        >>> resolver.resolve_parent('/a/new.txt', start=store.root)
        (NodeHandle(index=1, generation=0), 'new.txt')
    """

    def __init__(self, store: NodeStore):
        self._store = store

    @staticmethod
    def parse(path: str) -> ParsedPath:
        """
        Split a path into non-empty components.

        ``.`` and ``..`` are kept; they are interpreted while walking.
        """
        return ParsedPath(
            is_absolute=path.startswith('/'),
            components=[c for c in path.split('/') if c]
        )

    def _check_lengths(self, path: str, components: List[str]) -> None:
        for component in components:
            if name_length(component) > self._store.name_max:
                raise NameTooLongError(component, self._store.name_max, context={'path': path})

    def _walk(
        self,
        path: str,
        start: NodeHandle,
        want_parent: bool
    ) -> Tuple[NodeHandle, Optional[str]]:
        """
        Shared walk for resolve() and resolve_parent().

        Returns the final node with no leaf, or (directory, leaf) when
        ``want_parent`` is set and the last segment is a plain name.
        When ``want_parent`` is false the last plain name is looked up and
        a missing entry raises FileNotFoundError.
        """
        store = self._store
        parsed = self.parse(path)
        self._check_lengths(path, parsed.components)

        current = store.root if parsed.is_absolute else start
        if not parsed.components:
            return current, None

        last = len(parsed.components) - 1
        for position, component in enumerate(parsed.components):
            if component == '.':
                continue

            if component == '..':
                parent = store.node(current).parent
                if parent is not None:
                    current = parent
                continue

            if position == last:
                if want_parent:
                    return current, component
                child = store.find_child(current, component)
                if child is None:
                    raise PathResolutionError(path, component=component, reason="missing")
                return child, None

            child = store.find_child(current, component)
            if child is None:
                raise PathResolutionError(path, component=component, reason="missing")
            if not store.node(child).is_directory:
                raise PathResolutionError(path, component=component, reason="not a directory")
            current = child

        return current, None

    def resolve(self, path: str, start: NodeHandle) -> Optional[NodeHandle]:
        """
        Resolve ``path`` to a node.

        Returns:
            The node's handle, or None if any part of the path fails
        """
        try:
            handle, _ = self._walk(path, start, want_parent=False)
        except FileSystemException:
            return None
        return handle

    def resolve_parent(self, path: str, start: NodeHandle) -> Tuple[NodeHandle, str]:
        """
        Resolve ``path`` to its would-be parent and leaf name.

        The leaf does not have to exist.

        Raises:
            PathResolutionError: An intermediate segment is missing or a file
            InvalidArgumentError: The path has no usable leaf ('', '/', '.', '..')
            NameTooLongError: A segment exceeds the name bound
        """
        handle, leaf = self._walk(path, start, want_parent=True)
        if leaf is None:
            raise InvalidArgumentError("Path has no leaf name", path=path)
        return handle, leaf
