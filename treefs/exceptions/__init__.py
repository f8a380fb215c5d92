"""
treefs Exception Hierarchy

Architecture:
    FileSystemException (ErrorCode-carrying base)
    ├── FileNotFoundError
    │   └── PathResolutionError
    ├── BadDescriptorError
    ├── FileExistsError
    ├── ReadOnlyError
    ├── DirectoryNotEmptyError
    ├── CapacityExceededError
    │   └── NameTooLongError
    ├── InvalidArgumentError
    │   └── ImageFormatError
    ├── NotAFileError
    └── NotADirectoryError
    CoreException
    ├── SubsystemStateError
    ├── ConfigLoadError
    └── ConfigValidationError

The filesystem names deliberately mirror the builtin OS errors; import
them from this package rather than relying on the builtins.
"""

from .fs_exceptions import (
    ErrorCode,
    FileSystemException,
    FileNotFoundError,
    PathResolutionError,
    BadDescriptorError,
    FileExistsError,
    ReadOnlyError,
    DirectoryNotEmptyError,
    CapacityExceededError,
    NameTooLongError,
    InvalidArgumentError,
    NotAFileError,
    NotADirectoryError,
    ImageFormatError,
)

from .core_exceptions import (
    CoreException,
    SubsystemStateError,
    ConfigLoadError,
    ConfigValidationError,
)

__all__ = [
    # Filesystem exceptions
    "ErrorCode",
    "FileSystemException",
    "FileNotFoundError",
    "PathResolutionError",
    "BadDescriptorError",
    "FileExistsError",
    "ReadOnlyError",
    "DirectoryNotEmptyError",
    "CapacityExceededError",
    "NameTooLongError",
    "InvalidArgumentError",
    "NotAFileError",
    "NotADirectoryError",
    "ImageFormatError",
    # Core exceptions
    "CoreException",
    "SubsystemStateError",
    "ConfigLoadError",
    "ConfigValidationError",
]
