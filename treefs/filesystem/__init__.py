"""
treefs Filesystem Module

- Node store with index/generation handles
- Path resolution with '.', '..' and relative paths
- Grow-only content buffers
- Descriptor table with per-descriptor cursors
- Metadata snapshots, attributes and search
- JSON image persistence
"""

from .buffer import ContentBuffer
from .metadata import (
    Attribute,
    DirEntry,
    FileInfo,
    NodeType,
    coerce_attributes,
    format_attributes,
    format_time,
    parse_attributes,
)
from .node import Node, NodeHandle, NodeStore
from .path_resolver import PathResolver, ParsedPath
from .descriptors import DescriptorTable, OpenDescriptor, OpenMode, Whence
from .vfs import FileSystem, create_filesystem
from .persistence import dump_tree, restore_tree, save_image, load_image

__all__ = [
    # Content
    'ContentBuffer',
    # Metadata
    'Attribute',
    'DirEntry',
    'FileInfo',
    'NodeType',
    'coerce_attributes',
    'format_attributes',
    'format_time',
    'parse_attributes',
    # Node store
    'Node',
    'NodeHandle',
    'NodeStore',
    # Path Resolver
    'PathResolver',
    'ParsedPath',
    # Descriptors
    'DescriptorTable',
    'OpenDescriptor',
    'OpenMode',
    'Whence',
    # VFS
    'FileSystem',
    'create_filesystem',
    # Persistence
    'dump_tree',
    'restore_tree',
    'save_image',
    'load_image',
]
