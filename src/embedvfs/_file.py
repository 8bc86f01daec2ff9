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

"""File handles returned by ``Mount.open``.

``VirtualFile`` reads a node payload through an ``io.BytesIO`` buffer and
exposes the gzip capability. ``PhysicalFile`` wraps a host file or directory
reached through the fallback path.
"""

from __future__ import annotations

import errno
import io
import os
from types import TracebackType
from typing import BinaryIO, Final, Self

from ._node import Node
from ._types import FileInfo

__all__ = [
    "GZIP_MEMBER_HEADER",
    "PhysicalFile",
    "VirtualFile",
    "list_physical_dir",
]

#: RFC 1952 section 2.3: ID1, ID2 and the deflate compression method.
GZIP_MEMBER_HEADER: Final[bytes] = b"\x1f\x8b\x08"


def _is_a_directory(name: str) -> IsADirectoryError:
    return IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), name)


def _not_a_directory(name: str) -> NotADirectoryError:
    return NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), name)


class _DirCursor:
    """Shared ``readdir`` pagination over a name-sorted entry list."""

    __slots__ = ("_entries", "_offset")

    def __init__(self, entries: list[FileInfo]) -> None:
        super().__init__()
        self._entries = entries
        self._offset = 0

    def take(self, n: int) -> list[FileInfo]:
        remaining = self._entries[self._offset :]
        if n > 0:
            remaining = remaining[:n]
        self._offset += len(remaining)
        return remaining


class VirtualFile:
    """Seekable handle over a node of the in-memory tree."""

    __slots__ = ("_buffer", "_closed", "_cursor", "_name", "_node")

    def __init__(self, node: Node, name: str | None = None) -> None:
        super().__init__()
        self._node = node
        self._name = name if name is not None else node.path
        self._buffer = io.BytesIO(node.data or b"")
        self._cursor: _DirCursor | None = None
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def node(self) -> Node:
        return self._node

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_closed(self) -> None:
        if self._closed:
            msg = "I/O operation on closed file"
            raise ValueError(msg)

    def read(self, size: int = -1) -> bytes:
        self._check_closed()
        if self._node.is_dir:
            raise _is_a_directory(self._name)
        return self._buffer.read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_closed()
        if whence not in {os.SEEK_SET, os.SEEK_CUR, os.SEEK_END}:
            msg = f"Invalid whence value: {whence}"
            raise ValueError(msg)
        return self._buffer.seek(offset, whence)

    def tell(self) -> int:
        self._check_closed()
        return self._buffer.tell()

    def readdir(self, n: int = 0) -> list[FileInfo]:
        self._check_closed()
        if not self._node.is_dir:
            raise _not_a_directory(self._name)
        if self._cursor is None:
            self._cursor = _DirCursor(
                [child.info() for child in self._node.sorted_children()]
            )
        return self._cursor.take(n)

    def readdirnames(self, n: int = 0) -> list[str]:
        return [info.name for info in self.readdir(n)]

    def stat(self) -> FileInfo:
        self._check_closed()
        return self._node.info()

    def is_gzip(self) -> bool:
        """True when the payload starts with ``1F 8B 08``."""
        data = self._node.data
        return data is not None and data[:3] == GZIP_MEMBER_HEADER

    def raw_bytes(self) -> bytes:
        """The stored payload, compressed or not, exactly as embedded."""
        return self._node.data or b""

    def close(self) -> None:
        if not self._closed:
            self._buffer.close()
            self._closed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"VirtualFile({self._name!r})"


class PhysicalFile:
    """Handle over a host file or directory.

    Directories cannot be opened as Python file objects, so a directory
    handle keeps only its path and lists entries on demand.
    """

    __slots__ = ("_closed", "_cursor", "_handle", "_info", "_name", "_path")

    def __init__(
        self,
        path: str,
        name: str,
        info: FileInfo,
        handle: BinaryIO | None,
    ) -> None:
        super().__init__()
        self._path = path
        self._name = name
        self._info = info
        self._handle = handle
        self._cursor: _DirCursor | None = None
        self._closed = False

    @classmethod
    def open(cls, path: str, name: str | None = None) -> PhysicalFile:
        """Open ``path`` on the host filesystem.

        Raises:
            FileNotFoundError: ``path`` does not exist.
            PermissionError: ``path`` cannot be read.
        """
        result = os.stat(path)
        info = FileInfo.from_stat(os.path.basename(path), result)
        handle = None if info.is_dir else open(path, "rb")  # noqa: SIM115
        return cls(path, name if name is not None else path, info, handle)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        """Host path backing this handle."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_closed(self) -> None:
        if self._closed:
            msg = "I/O operation on closed file"
            raise ValueError(msg)

    def _file(self) -> BinaryIO:
        self._check_closed()
        if self._handle is None:
            raise _is_a_directory(self._name)
        return self._handle

    def read(self, size: int = -1) -> bytes:
        return self._file().read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._file().seek(offset, whence)

    def tell(self) -> int:
        return self._file().tell()

    def readdir(self, n: int = 0) -> list[FileInfo]:
        self._check_closed()
        if self._handle is not None:
            raise _not_a_directory(self._name)
        if self._cursor is None:
            self._cursor = _DirCursor(list_physical_dir(self._path))
        return self._cursor.take(n)

    def readdirnames(self, n: int = 0) -> list[str]:
        return [info.name for info in self.readdir(n)]

    def stat(self) -> FileInfo:
        self._check_closed()
        return self._info

    def close(self) -> None:
        if not self._closed:
            if self._handle is not None:
                self._handle.close()
            self._closed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PhysicalFile({self._name!r} => {self._path!r})"


def list_physical_dir(path: str) -> list[FileInfo]:
    """List a host directory as ``FileInfo`` entries sorted by name.

    Entries are described with ``lstat`` semantics, as ``os.scandir`` does.
    """
    with os.scandir(path) as entries:
        infos = [
            FileInfo.from_stat(entry.name, entry.stat(follow_symlinks=False))
            for entry in entries
        ]
    infos.sort(key=lambda info: info.name)
    return infos
