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

"""Mount of one physical directory into one virtual directory.

A ``Mount`` binds a virtual root (the externally visible prefix) to a
physical root (the host directory used for fallback and for compiling) and
owns an in-memory node tree. Every read consults the tree first. Only when
the tree has no entry for a path does the mount substitute the physical root
for the virtual root and delegate to the equivalent ``os`` function, letting
its native exceptions propagate. The tree always wins where present: a
virtual directory lists its virtual children only, never merged with disk.

Example usage::

    from embedvfs import Mount, NodeInfo

    mount = Mount.create("/app", "/srv/app")
    mount.add_dir("/app/views", NodeInfo(path="/app/views", dir=True))
    mount.add_file(
        "/app/views/index.html",
        NodeInfo(path="/app/views/index.html", dir=False, data_size=5),
        b"hello",
    )
    mount.seal()

    assert mount.read_file("/app/views/index.html") == b"hello"
"""

from __future__ import annotations

import errno
import fnmatch
import os
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from ._excludes import Excludes, validate_pattern
from ._file import PhysicalFile, VirtualFile, list_physical_dir
from ._node import Node, TreeResolver, not_found
from ._path import (
    clean_path,
    join_virtual,
    physical_name,
    relative_to_root,
    split_segments,
)
from ._protocol import File
from ._types import ZERO_TIME, FileInfo, NodeInfo
from .errors import InvalidMountError, MountSealedError
from .logging import StructuredLogger, get_logger

__all__ = ["Mount"]

_logger: StructuredLogger = get_logger(__name__, context={"component": "mount"})

_GLOB_MAGIC: Final[re.Pattern[str]] = re.compile(r"[*?[]")


@dataclass(slots=True)
class Mount:
    """Virtual directory tree with read-through fallback to a host directory.

    Construct populated-ready mounts with :meth:`create`. A mount built
    without a ``tree`` is uninitialized: every operation on it raises
    ``InvalidMountError`` rather than falling back to disk.

    Population is single-writer and happens before serving; :meth:`seal`
    marks its end, after which the tree is never mutated and concurrent
    reads are safe.
    """

    virtual_root: str
    physical_root: str
    tree: Node | None = None
    excludes: Excludes | None = None
    _resolver: TreeResolver | None = field(default=None, init=False, repr=False)
    _sealed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.virtual_root = clean_path(self.virtual_root)
        if self.tree is not None:
            self._resolver = TreeResolver(self.tree, self.virtual_root)

    @classmethod
    def create(
        cls,
        virtual_root: str,
        physical_root: str,
        *,
        mod_time: datetime = ZERO_TIME,
        excludes: Excludes | None = None,
    ) -> Mount:
        """Create a mount with an empty tree anchored at ``virtual_root``."""
        return cls(
            virtual_root=virtual_root,
            physical_root=physical_root,
            tree=Node.root(virtual_root, mod_time),
            excludes=excludes,
        )

    @property
    def name(self) -> str:
        """The mounted virtual path."""
        return self.virtual_root

    @property
    def sealed(self) -> bool:
        """True once population has been closed with :meth:`seal`."""
        return self._sealed

    def __str__(self) -> str:
        return f"mount({self.virtual_root} => {self.physical_root})"

    # --- FileSystem ---

    def open(self, name: str) -> File:
        """Open ``name``; same behaviour as ``open(path, "rb")`` on the host."""
        try:
            node = self._find(name)
        except FileNotFoundError:
            return PhysicalFile.open(self._fallback(name, "open"), name)
        return VirtualFile(node, name)

    def lstat(self, name: str) -> FileInfo:
        """Same behaviour as ``os.lstat``; virtual entries are never links."""
        try:
            node = self._find(name)
        except FileNotFoundError:
            pname = self._fallback(name, "lstat")
            return FileInfo.from_stat(os.path.basename(pname), os.lstat(pname))
        return node.info()

    def stat(self, name: str) -> FileInfo:
        """Same behaviour as ``os.stat``."""
        try:
            node = self._find(name)
        except FileNotFoundError:
            pname = self._fallback(name, "stat")
            return FileInfo.from_stat(os.path.basename(pname), os.stat(pname))
        return node.info()

    def read_file(self, name: str) -> bytes:
        """Return the whole content of ``name``.

        Raises:
            FileNotFoundError: Absent from both the tree and the host.
            IsADirectoryError: ``name`` is a directory.
        """
        with self.open(name) as handle:
            if handle.stat().is_dir:
                raise IsADirectoryError(errno.EISDIR, "is a directory", name)
            return handle.read()

    def read_dir(self, name: str) -> list[FileInfo]:
        """List ``name`` sorted by entry name.

        A directory present in the tree lists its virtual children only.

        Raises:
            FileNotFoundError: Absent from both the tree and the host.
            NotADirectoryError: ``name`` is a file.
        """
        try:
            node = self._find(name)
        except FileNotFoundError:
            return list_physical_dir(self._fallback(name, "read_dir"))
        if not node.is_dir:
            raise NotADirectoryError(errno.ENOTDIR, "is a file", name)
        return [child.info() for child in node.sorted_children()]

    def glob(self, pattern: str) -> list[str]:
        """Return virtual paths matching a shell pattern.

        Directory listings go through :meth:`read_dir`, so the fallback
        applies per directory. Listing errors are ignored.

        Raises:
            InvalidPatternError: The pattern has an unterminated ``[`` class.
        """
        if not pattern:
            return []
        validate_pattern(pattern)
        if not _GLOB_MAGIC.search(pattern):
            return [pattern] if self.exists(pattern) else []

        directory, base = posixpath.split(pattern)
        directory = clean_path(directory)
        if not _GLOB_MAGIC.search(directory):
            return self._glob_dir(directory, base)

        matches: list[str] = []
        for parent in self.glob(directory):
            matches.extend(self._glob_dir(parent, base))
        return matches

    def exists(self, name: str) -> bool:
        """True if ``lstat`` succeeds for ``name``."""
        try:
            _ = self.lstat(name)
        except OSError:
            return False
        return True

    # --- Population ---

    def add_dir(self, mount_path: str, info: NodeInfo) -> None:
        """Add a directory node under an existing parent directory.

        Raises:
            InsertionConflictError: The parent was never added, is a file, or
                already holds an entry with the same name.
            MountSealedError: Population has been closed.
            ValueError: ``info`` describes a file.
        """
        if not info.dir:
            msg = f"add_dir requires directory info for {mount_path!r}."
            raise ValueError(msg)
        target = self._insertion_target(mount_path)
        if target is None:
            return
        parent, name = target
        _ = parent.add_child(name, is_dir=True, mod_time=info.time)

    def add_file(self, mount_path: str, info: NodeInfo, data: bytes = b"") -> None:
        """Add a file node with its payload under an existing directory.

        Raises:
            InsertionConflictError: The parent was never added, is a file, or
                already holds an entry with the same name.
            MountSealedError: Population has been closed.
            ValueError: ``info`` describes a directory or its ``data_size``
                disagrees with ``data``.
        """
        if info.dir:
            msg = f"add_file requires file info for {mount_path!r}."
            raise ValueError(msg)
        if len(data) != info.data_size:
            msg = (
                f"Payload for {mount_path!r} is {len(data)} bytes, "
                f"expected {info.data_size}."
            )
            raise ValueError(msg)
        target = self._insertion_target(mount_path)
        if target is None:
            return
        parent, name = target
        _ = parent.add_child(name, is_dir=False, mod_time=info.time, data=bytes(data))

    def seal(self) -> None:
        """Close population; later ``add_dir``/``add_file`` calls fail."""
        _ = self._require_resolver()
        self._sealed = True

    # --- Internals ---

    def _require_resolver(self) -> TreeResolver:
        if self._resolver is None:
            msg = f"{self} has no tree."
            raise InvalidMountError(msg)
        return self._resolver

    def _find(self, name: str) -> Node:
        return self._require_resolver().find(name)

    def _fallback(self, name: str, op: str) -> str:
        relative = relative_to_root(clean_path(name), self.virtual_root)
        if relative is None:
            raise not_found(name)
        pname = physical_name(self.physical_root, relative)
        _logger.debug(
            "Path absent from tree, using physical filesystem.",
            event="vfs.mount.fallback",
            context={
                "mount": self.virtual_root,
                "op": op,
                "name": name,
                "physical": pname,
            },
        )
        return pname

    def _insertion_target(self, mount_path: str) -> tuple[Node, str] | None:
        if self._sealed:
            msg = f"{self} is sealed; cannot add {mount_path!r}."
            raise MountSealedError(msg)
        resolver = self._require_resolver()
        cleaned = clean_path(mount_path)
        segments = split_segments(cleaned)
        name = segments[-1] if segments else ""
        excluded = self.excludes.match if self.excludes else None

        if excluded is not None and name and excluded(name):
            parent = None
        else:
            parent = resolver.find_parent(cleaned, excluded=excluded)
        if parent is None:
            _logger.debug(
                "Skipping filtered entry.",
                event="vfs.mount.filtered",
                context={"mount": self.virtual_root, "path": cleaned},
            )
            return None
        return parent, name

    def _glob_dir(self, directory: str, pattern: str) -> list[str]:
        try:
            infos = self.read_dir(directory)
        except OSError:
            return []
        return [
            join_virtual(directory, info.name)
            for info in infos
            if fnmatch.fnmatchcase(info.name, pattern)
        ]
