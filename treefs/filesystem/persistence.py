"""
Tree Image Persistence

Saves a filesystem to a JSON image and rebuilds it later. The image
keeps names, node types, file content (base64), timestamps and
attribute bits. Open descriptors and the current directory are
session state and are not saved.

Image layout::

    {
      "format": "treefs-image",
      "version": 1,
      "root": {"name": "", "type": "directory", "attributes": 0,
               "created": ..., "modified": ..., "accessed": ...,
               "children": [ ...nodes... ]}
    }

File nodes carry ``"content"`` instead of ``"children"``.
"""

import base64
import binascii
import json
import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from .metadata import NodeType, coerce_attributes
from .node import NodeHandle
from .vfs import FileSystem, create_filesystem
from treefs.core.config_loader import FilesystemConfig
from treefs.exceptions import FileSystemException, ImageFormatError, InvalidArgumentError
from treefs.logger import get_logger


IMAGE_FORMAT = "treefs-image"
IMAGE_VERSION = 1

_TYPE_NAMES = {
    NodeType.DIRECTORY: "directory",
    NodeType.FILE: "file",
}
_TYPES_BY_NAME = {name: node_type for node_type, name in _TYPE_NAMES.items()}

_logger = get_logger('persistence')


def dump_tree(fs: FileSystem) -> dict[str, Any]:
    """Convert the whole tree to a JSON-serializable dict."""
    store = fs.store

    def describe(handle: NodeHandle) -> dict[str, Any]:
        node = store.node(handle)
        entry: dict[str, Any] = {
            'name': node.name,
            'type': _TYPE_NAMES[node.node_type],
            'attributes': int(node.attributes),
            'created': node.created,
            'modified': node.modified,
            'accessed': node.accessed,
        }
        if node.is_file:
            entry['content'] = base64.b64encode(node.content.getvalue()).decode('ascii')
        else:
            entry['children'] = []
        return entry

    root_entry = describe(store.root)
    stack: List[Tuple[NodeHandle, dict[str, Any]]] = [(store.root, root_entry)]
    while stack:
        handle, entry = stack.pop()
        for child_handle in store.node(handle).children:
            child_entry = describe(child_handle)
            entry['children'].append(child_entry)
            if 'children' in child_entry:
                stack.append((child_handle, child_entry))

    return {
        'format': IMAGE_FORMAT,
        'version': IMAGE_VERSION,
        'root': root_entry,
    }


def _field(entry: Any, key: str, kind: Any) -> Any:
    if not isinstance(entry, dict):
        raise ImageFormatError(f"Node entry must be an object, got {type(entry).__name__}")
    if key not in entry:
        raise ImageFormatError(f"Node entry is missing '{key}'")
    value = entry[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise ImageFormatError(f"Field '{key}' has the wrong type")
    return value


def _timestamp(entry: dict[str, Any], key: str) -> float:
    value = _field(entry, key, (int, float))
    try:
        return float(value)
    except OverflowError as e:
        raise ImageFormatError(f"Timestamp '{key}' is out of range") from e


def _apply_metadata(fs: FileSystem, handle: NodeHandle, entry: dict[str, Any]) -> None:
    node = fs.store.node(handle)
    bits = _field(entry, 'attributes', int)
    try:
        node.attributes = coerce_attributes(bits)
    except InvalidArgumentError as e:
        raise ImageFormatError(f"Bad attributes for '{node.name}': {e.message}") from e
    node.created = _timestamp(entry, 'created')
    node.modified = _timestamp(entry, 'modified')
    node.accessed = _timestamp(entry, 'accessed')


def restore_tree(
    data: dict[str, Any],
    config: Optional[FilesystemConfig] = None,
    clock: Callable[[], float] = time.time
) -> FileSystem:
    """
    Build a new filesystem from an image dict.

    Nothing is shared with any existing filesystem, so a bad image never
    leaves a half-loaded tree behind.

    Raises:
        ImageFormatError: Unknown format/version or malformed entries,
            including names or sizes the configured limits reject
    """
    if not isinstance(data, dict) or data.get('format') != IMAGE_FORMAT:
        raise ImageFormatError("Not a treefs image")
    if data.get('version') != IMAGE_VERSION:
        raise ImageFormatError(f"Unsupported image version: {data.get('version')!r}")

    root_entry = data.get('root')
    if _field(root_entry, 'type', str) != 'directory':
        raise ImageFormatError("Image root must be a directory")

    fs = create_filesystem(config=config, clock=clock)
    store = fs.store

    restored: List[Tuple[NodeHandle, dict[str, Any]]] = [(store.root, root_entry)]
    stack: List[Tuple[NodeHandle, dict[str, Any]]] = [(store.root, root_entry)]

    try:
        while stack:
            parent_handle, parent_entry = stack.pop()
            for child_entry in _field(parent_entry, 'children', list):
                name = _field(child_entry, 'name', str)
                type_name = _field(child_entry, 'type', str)
                if type_name not in _TYPES_BY_NAME:
                    raise ImageFormatError(f"Unknown node type: {type_name!r}")
                node_type = _TYPES_BY_NAME[type_name]

                handle = store.new_child(parent_handle, node_type, name)

                if node_type == NodeType.FILE:
                    try:
                        content = base64.b64decode(_field(child_entry, 'content', str), validate=True)
                    except binascii.Error as e:
                        raise ImageFormatError(f"Bad content encoding for '{name}'") from e
                    store.node(handle).content.write_at(0, content)
                else:
                    stack.append((handle, child_entry))

                restored.append((handle, child_entry))
    except ImageFormatError:
        raise
    except FileSystemException as e:
        raise ImageFormatError(f"Image rejected: {e.message}", context=e.context) from e

    # Attaching children stamps their parents, so timestamps go on last.
    for handle, entry in restored:
        _apply_metadata(fs, handle, entry)

    _logger.info("Restored image", context={'nodes': len(restored)})
    return fs


def save_image(fs: FileSystem, path: str) -> None:
    """Write the tree as a JSON image file."""
    image = dump_tree(fs)
    target = Path(path)
    with open(target, 'w', encoding='utf-8') as f:
        json.dump(image, f, indent=2)
    _logger.info("Saved image", context={'path': str(target)})


def load_image(
    path: str,
    config: Optional[FilesystemConfig] = None,
    clock: Callable[[], float] = time.time
) -> FileSystem:
    """
    Read a JSON image file into a new filesystem.

    Raises:
        ImageFormatError: The file is not UTF-8 JSON or not a valid image
        OSError: The file cannot be read
    """
    with open(Path(path), 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ImageFormatError(f"Invalid JSON in image: {e}", path=path) from e
        except UnicodeDecodeError as e:
            raise ImageFormatError(f"Image is not UTF-8 text: {e.reason}", path=path) from e
    return restore_tree(data, config=config, clock=clock)
