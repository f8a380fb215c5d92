"""
treefs - an in-memory hierarchical filesystem.

A tree of directories and files held entirely in memory, with path- and
descriptor-based I/O, attribute and timestamp metadata, name search,
JSON image persistence and an interactive shell.
"""

__version__ = "1.0.0"

from .filesystem.vfs import FileSystem, create_filesystem
from .filesystem.descriptors import OpenMode, Whence
from .filesystem.metadata import Attribute, FileInfo, NodeType
from .shell.shell import Shell, create_shell

__all__ = [
    'FileSystem',
    'create_filesystem',
    'OpenMode',
    'Whence',
    'Attribute',
    'FileInfo',
    'NodeType',
    'Shell',
    'create_shell',
]
