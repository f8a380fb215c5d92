"""
Filesystem Exceptions

Exceptions raised by the in-memory tree: path resolution, directory
mutation, content buffers and the descriptor table.

Every exception carries an ``ErrorCode`` so a caller that only cares
about the result code (the shell, an embedding host) can switch on it
without matching class names.
"""

from enum import IntEnum
from typing import Any, Optional


class ErrorCode(IntEnum):
    """Numeric result codes for filesystem failures."""
    GENERIC = 4000
    NOT_FOUND = 4001
    ALREADY_EXISTS = 4002
    READ_ONLY = 4003
    NOT_EMPTY = 4004
    CAPACITY_EXCEEDED = 4005
    INVALID_ARGUMENT = 4006
    NOT_A_FILE = 4008
    NOT_A_DIRECTORY = 4009


class FileSystemException(Exception):
    """
    Base exception for all filesystem-related errors.

    Subclasses set ``code``; keyword ``details`` that are not None are
    merged into ``context`` next to the path.

    Attributes:
        message: Human-readable error description
        path: Path the failure is about, if any
        error_code: ErrorCode for programmatic handling
        context: Extra key/value details about the failure
    """

    code = ErrorCode.GENERIC

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        context: Optional[dict[str, Any]] = None,
        **details: Any
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.error_code = error_code or self.code
        self.context = dict(context or {})
        self.context.update((k, v) for k, v in details.items() if v is not None)
        if path is not None:
            self.context["path"] = path

    def __str__(self) -> str:
        text = f"[Error {int(self.error_code)}] {self.message}"
        if self.path is None:
            return text
        return f"{text} (path={self.path})"


class FileNotFoundError(FileSystemException):
    """
    The path does not resolve to a node.

    Example:
        >>> raise FileNotFoundError("/docs/missing.txt")
    """

    code = ErrorCode.NOT_FOUND

    def __init__(self, path: str, context: Optional[dict[str, Any]] = None, **details: Any) -> None:
        super().__init__(f"No such file or directory: {path}", path=path, context=context, **details)


class PathResolutionError(FileNotFoundError):
    """
    An intermediate path segment is missing or is not a directory.

    Example:
        >>> raise PathResolutionError("/a/notes.txt/b", component="notes.txt")
    """

    def __init__(
        self,
        path: str,
        component: Optional[str] = None,
        reason: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(path, context=context, component=component, reason=reason)
        self.message = f"Path resolution failed: {path}"
        self.component = component
        self.reason = reason


class BadDescriptorError(FileSystemException):
    """The descriptor is out of range, free, or lacks the needed mode."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, fd: int, reason: Optional[str] = None) -> None:
        super().__init__(f"Bad file descriptor: {fd}", fd=fd, reason=reason)
        self.fd = fd
        self.reason = reason


class FileExistsError(FileSystemException):
    """An entry with the same name already exists in the target directory."""

    code = ErrorCode.ALREADY_EXISTS

    def __init__(self, path: str) -> None:
        super().__init__(f"File already exists: {path}", path=path)


class ReadOnlyError(FileSystemException):
    """
    A mutating operation touched a node (or its directory) flagged READONLY.

    Example:
        >>> raise ReadOnlyError("/docs", operation="remove")
    """

    code = ErrorCode.READ_ONLY

    def __init__(self, path: str, operation: Optional[str] = None) -> None:
        super().__init__(f"Read-only: {path}", path=path, operation=operation)
        self.operation = operation


class DirectoryNotEmptyError(FileSystemException):
    """rmdir on a directory that still has entries."""

    code = ErrorCode.NOT_EMPTY

    def __init__(self, path: str) -> None:
        super().__init__(f"Directory not empty: {path}", path=path)


class CapacityExceededError(FileSystemException):
    """
    A fixed bound was hit: directory fan-out, descriptor table,
    file size, or buffer allocation.

    Example:
        >>> raise CapacityExceededError("Directory is full", path="/docs", limit=64)
    """

    code = ErrorCode.CAPACITY_EXCEEDED

    def __init__(
        self,
        message: str = "Capacity exceeded",
        path: Optional[str] = None,
        limit: Optional[int] = None,
        requested: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, path=path, context=context, limit=limit, requested=requested)
        self.limit = limit
        self.requested = requested


class NameTooLongError(CapacityExceededError):
    """A path segment is longer than the configured name bound (in bytes)."""

    def __init__(self, name: str, limit: int, context: Optional[dict[str, Any]] = None) -> None:
        super().__init__(
            f"Name too long: {name}",
            limit=limit,
            requested=len(name.encode('utf-8')),
            context=context
        )
        self.name = name


class InvalidArgumentError(FileSystemException):
    """Malformed path or search term, reserved name, or negative seek."""

    code = ErrorCode.INVALID_ARGUMENT


class NotAFileError(FileSystemException):
    """A file operation was given a directory."""

    code = ErrorCode.NOT_A_FILE

    def __init__(self, path: str, actual_type: Optional[str] = None) -> None:
        super().__init__(f"Not a file: {path}", path=path, actual_type=actual_type)
        self.actual_type = actual_type


class NotADirectoryError(FileSystemException):
    """A directory operation, or a path walk, ran into a file."""

    code = ErrorCode.NOT_A_DIRECTORY

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a directory: {path}", path=path)


class ImageFormatError(InvalidArgumentError):
    """A saved tree image is malformed or from an unknown format version."""
