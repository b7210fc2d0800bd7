from enum import Enum
from typing import Dict, Sequence, Union


class FileNode:
    __slots__ = ['content']

    def __init__(self, content: bytes):
        self.content = content  # raw bytes, decoded only when encoded

    def __eq__(self, other):
        return isinstance(other, FileNode) and other.content == self.content

    def __repr__(self):
        return f"FileNode({len(self.content)} bytes)"


class DirectoryNode:
    __slots__ = ['children']

    def __init__(self, children: Dict[str, "TreeNode"] = None):
        self.children = children if children is not None else {}

    def ensure_directory(self, parts: Sequence[str]) -> "DirectoryNode":
        """Return the directory at `parts`, creating intermediate maps as needed"""
        current = self
        for part in parts:
            child = current.children.get(part)
            if not isinstance(child, DirectoryNode):
                child = DirectoryNode()
                current.children[part] = child
            current = child
        return current

    def set_file(self, parts: Sequence[str], node: FileNode):
        """Store `node` under the last segment of `parts`"""
        if not parts:
            raise ValueError("A file needs at least one path segment")
        parent = self.ensure_directory(parts[:-1])
        parent.children[parts[-1]] = node

    def __eq__(self, other):
        return isinstance(other, DirectoryNode) and other.children == self.children

    def __repr__(self):
        return f"DirectoryNode({sorted(self.children)})"


TreeNode = Union[DirectoryNode, FileNode]


class ChangeKind(str, Enum):
    CREATED = "created"
    WRITTEN = "written"
    REMOVED = "removed"


class ChangeEvent:
    __slots__ = ['kind', 'path', 'is_directory']

    def __init__(self, kind: ChangeKind, path: str, is_directory: bool = False):
        self.kind = kind
        self.path = path
        self.is_directory = is_directory

    def __eq__(self, other):
        return (
            isinstance(other, ChangeEvent)
            and (self.kind, self.path, self.is_directory)
            == (other.kind, other.path, other.is_directory)
        )

    def __repr__(self):
        return f"ChangeEvent({self.kind.value}, {self.path!r})"


class WatcherState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    CLOSED = "closed"
