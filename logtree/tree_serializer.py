import sys
import json
import os
import logging
from typing import Any, Dict, Iterator, List, Tuple, Union
from .models import DirectoryNode, FileNode, TreeNode
from .error_handling import FilesystemError, SerializationError, filesystem_error

logger = logging.getLogger(__name__)


def walk_entries(root: str) -> Iterator[Tuple[str, bool]]:
    """
    Walk everything below `root` depth-first.

    Yields (path, is_dir) pairs in the order the filesystem lists them.
    The root itself is not yielded. Symlinks are not followed when
    deciding whether an entry is a directory. Depth is bounded only by
    the filesystem, not by the interpreter's recursion limit.

    Raises:
        OSError: If a directory cannot be listed or an entry inspected
    """
    stack = [iter(list_directory(root))]
    while stack:
        try:
            path, is_dir = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        yield path, is_dir
        if is_dir:
            stack.append(iter(list_directory(path)))


def list_directory(path: str) -> List[Tuple[str, bool]]:
    with os.scandir(path) as entries:
        return [(entry.path, entry.is_dir(follow_symlinks=False)) for entry in entries]


def read_file(path: str) -> bytes:
    """Load the whole file into memory"""
    with open(path, 'rb') as f:
        return f.read()


def build_tree(root: str) -> DirectoryNode:
    """
    Build a tree mirroring the directory hierarchy under root.

    Args:
        root (str): Path to the root directory

    Returns:
        DirectoryNode: children keyed by entry name; the root itself
        is never an entry

    Raises:
        FilesystemError: If root is missing, not a directory, or any
            entry cannot be listed or read. No partial tree is returned.
    """
    logger.debug(f"Building tree for directory: {root}")
    tree = DirectoryNode()

    try:
        for path, is_dir in walk_entries(root):
            rel_path = os.path.relpath(path, root)
            parts = rel_path.split(os.sep)

            if is_dir:
                tree.ensure_directory(parts)
            else:
                tree.set_file(parts, FileNode(read_file(path)))
    except OSError as e:
        raise filesystem_error(e, "walk") from e

    return tree


def tree_to_dict(node: TreeNode, errors: str = "strict") -> Union[Dict[str, Any], str]:
    """Convert a tree into plain dicts and strings suitable for JSON"""
    if isinstance(node, FileNode):
        return node.content.decode("utf-8", errors)
    return {
        name: tree_to_dict(child, errors)
        for name, child in node.children.items()
    }


def encode_tree(tree: DirectoryNode, errors: str = "strict") -> bytes:
    """
    Encode a tree as compact UTF-8 JSON with sorted keys.

    Raises:
        SerializationError: If file content is not valid UTF-8 (under
            errors="strict"), a name cannot be encoded, or the tree is
            nested too deeply to encode
    """
    try:
        return json.dumps(
            tree_to_dict(tree, errors),
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":")
        ).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(
            f"Failed to encode tree as JSON: {e}",
            details={"reason": type(e).__name__}
        ) from e


def serialize_tree(root: str, errors: str = "strict") -> bytes:
    """Walk root and return its tree as JSON bytes. Re-reads everything on every call."""
    tree = build_tree(root)
    data = encode_tree(tree, errors)
    logger.debug(f"Serialized {root}: {len(data)} bytes")
    return data


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Print a directory tree as JSON")
    parser.add_argument('directory', help='Directory to serialize')
    parser.add_argument('--replace-invalid', action='store_true',
                        help='Replace invalid UTF-8 in file content instead of failing')
    args = parser.parse_args()

    try:
        data = serialize_tree(args.directory, "replace" if args.replace_invalid else "strict")
        sys.stdout.write(data.decode("utf-8") + "\n")
    except (FilesystemError, SerializationError) as e:
        print(json.dumps({
            "success": False,
            "error": str(e),
            "details": e.details
        }))
        sys.exit(1)
