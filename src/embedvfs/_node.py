# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""In-memory node tree and path resolution.

A tree is built once through ``Node.add_child`` (driven by ``Mount.add_dir``
and ``Mount.add_file``) and only read afterwards. Children own their nodes;
the parent link is a weak reference used to derive a child's path when it is
attached.
"""

from __future__ import annotations

import errno
import os
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from ._path import ROOT, clean_path, join_virtual, relative_to_root, split_segments
from ._types import DIR_MODE, FILE_MODE, ZERO_TIME, FileInfo
from .errors import InsertionConflictError

__all__ = ["Node", "TreeResolver", "not_found"]


def _empty_children() -> dict[str, Node]:
    return {}


def not_found(name: str) -> FileNotFoundError:
    """Build the same ``FileNotFoundError`` the ``os`` functions raise."""
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)


@dataclass(slots=True, weakref_slot=True, eq=False)
class Node:
    """A single directory or file entry.

    A node is exclusively a directory (``children``, no ``data``) or a file
    (``data``, no ``children``). Zero-size files store ``None``.
    """

    name: str
    path: str
    is_dir: bool
    mod_time: datetime = ZERO_TIME
    size: int = 0
    data: bytes | None = None
    children: dict[str, Node] = field(default_factory=_empty_children)
    _parent: weakref.ReferenceType[Node] | None = field(default=None, repr=False)

    @classmethod
    def root(cls, path: str, mod_time: datetime = ZERO_TIME) -> Node:
        """Create the directory node anchoring a tree at ``path``."""
        cleaned = clean_path(path)
        name = split_segments(cleaned)[-1] if cleaned != ROOT else ROOT
        return cls(name=name, path=cleaned, is_dir=True, mod_time=mod_time)

    @property
    def parent(self) -> Node | None:
        """Parent directory, or None for the root and detached nodes."""
        return self._parent() if self._parent is not None else None

    def add_child(
        self,
        name: str,
        *,
        is_dir: bool,
        mod_time: datetime = ZERO_TIME,
        data: bytes | None = None,
    ) -> Node:
        """Attach a new child named ``name`` and return it.

        Raises:
            InsertionConflictError: This node is a file or ``name`` is taken.
        """
        if not self.is_dir:
            msg = f"Cannot add {name!r}: {self.path} is a file."
            raise InsertionConflictError(msg)
        if name in self.children:
            msg = f"Cannot add {name!r}: already exists in {self.path}."
            raise InsertionConflictError(msg)
        payload = data or None
        child = Node(
            name=name,
            path="",
            is_dir=is_dir,
            mod_time=mod_time,
            size=0 if is_dir or payload is None else len(payload),
            data=None if is_dir else payload,
            _parent=weakref.ref(self),
        )
        child.path = child._ancestry_path()
        self.children[name] = child
        return child

    def _ancestry_path(self) -> str:
        names: list[str] = []
        node = self
        while (parent := node.parent) is not None:
            names.append(node.name)
            node = parent
        return join_virtual(node.path, *reversed(names))

    def sorted_children(self) -> list[Node]:
        """Children ordered by name."""
        return sorted(self.children.values(), key=lambda child: child.name)

    def info(self) -> FileInfo:
        """Metadata for this node."""
        return FileInfo(
            name=self.name,
            size=self.size,
            mode=DIR_MODE if self.is_dir else FILE_MODE,
            mod_time=self.mod_time,
            is_dir=self.is_dir,
        )


class TreeResolver:
    """Locate nodes by virtual path within one tree.

    Lookups are independent of any single mount: the resolver only knows the
    root node and the virtual path it is anchored at.
    """

    __slots__ = ("_root", "_virtual_root")

    def __init__(self, root: Node, virtual_root: str) -> None:
        super().__init__()
        self._root = root
        self._virtual_root = clean_path(virtual_root)

    @property
    def root(self) -> Node:
        return self._root

    @property
    def virtual_root(self) -> str:
        return self._virtual_root

    def find(self, path: str) -> Node:
        """Return the node at ``path``.

        Raises:
            FileNotFoundError: ``path`` is outside the tree or any segment is
                missing.
        """
        relative = relative_to_root(clean_path(path), self._virtual_root)
        if relative is None:
            raise not_found(path)

        current = self._root
        for segment in split_segments(relative):
            child = current.children.get(segment)
            if child is None:
                raise not_found(path)
            current = child
        return current

    def find_parent(
        self,
        path: str,
        *,
        excluded: Callable[[str], bool] | None = None,
    ) -> Node | None:
        """Return the directory that a node at ``path`` would be attached to.

        Missing intermediate directories are never created. When ``excluded``
        matches any ancestor segment the parent was intentionally filtered
        and ``None`` is returned instead of an error.

        Raises:
            InsertionConflictError: ``path`` is the root or outside the tree,
                or the parent is missing or is a file.
        """
        relative = relative_to_root(clean_path(path), self._virtual_root)
        if not relative:
            msg = f"Cannot insert {path!r} outside the tree rooted at {self._virtual_root}."
            raise InsertionConflictError(msg)

        ancestors = split_segments(relative)[:-1]
        if excluded is not None and any(excluded(segment) for segment in ancestors):
            return None

        current = self._root
        for segment in ancestors:
            child = current.children.get(segment)
            if child is None:
                msg = f"Cannot insert {path!r}: parent directory {segment!r} does not exist."
                raise InsertionConflictError(msg)
            if not child.is_dir:
                msg = f"Cannot insert {path!r}: {child.path} is a file."
                raise InsertionConflictError(msg)
            current = child
        return current
