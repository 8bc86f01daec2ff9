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

"""Read-only filesystem protocols.

This module provides the `FileSystem` protocol implemented by ``Mount`` and
``VirtualFileSystem`` so consumers can read files without coupling to a
particular backend, the `File` protocol for handles returned by ``open``,
and the optional `Gzipper` capability of virtual file handles.

All paths are slash separated virtual paths, regardless of host operating
system convention. Every operation is read-only.
"""

from __future__ import annotations

from types import TracebackType
from typing import Protocol, Self, runtime_checkable

from ._types import FileInfo


@runtime_checkable
class File(Protocol):
    """Handle returned by ``FileSystem.open``.

    Handles are seekable byte readers and context managers. Directory
    handles additionally support ``readdir``/``readdirnames``.

    Example::

        with fs.open("/app/views/index.html") as handle:
            header = handle.read(64)
            _ = handle.seek(0)
            body = handle.read()
    """

    @property
    def name(self) -> str:
        """Path the handle was opened with."""
        ...

    @property
    def closed(self) -> bool:
        """True once ``close`` has been called."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes; ``-1`` reads to the end.

        Raises:
            IsADirectoryError: The handle is a directory.
            ValueError: The handle is closed.
        """
        ...

    def seek(self, offset: int, whence: int = 0) -> int:
        """Move the read position and return the new absolute offset."""
        ...

    def tell(self) -> int:
        """Return the current read position."""
        ...

    def readdir(self, n: int = 0) -> list[FileInfo]:
        """List directory entries sorted by name.

        Args:
            n: When positive, return at most ``n`` entries not yet returned
                by a previous call; an empty list signals the end. When zero
                or negative, return all remaining entries.

        Raises:
            NotADirectoryError: The handle is a file.
        """
        ...

    def readdirnames(self, n: int = 0) -> list[str]:
        """Like ``readdir`` but returns entry names only."""
        ...

    def stat(self) -> FileInfo:
        """Return metadata for the opened entry."""
        ...

    def close(self) -> None:
        """Release the handle. Closing twice is a no-op."""
        ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


@runtime_checkable
class Gzipper(Protocol):
    """Capability of handles whose payload may be stored gzip-compressed.

    Embedded payloads can be compressed at build time; the consumer decides
    whether to inflate them. Nothing here decompresses.

    Example::

        handle = fs.open("/app/static/app.js")
        if isinstance(handle, Gzipper) and handle.is_gzip():
            response.headers["Content-Encoding"] = "gzip"
            response.body = handle.raw_bytes()
    """

    def is_gzip(self) -> bool:
        """True when the payload starts with the RFC 1952 member header."""
        ...

    def raw_bytes(self) -> bytes:
        """Return the stored payload unmodified."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Read-only filesystem addressed by slash separated paths.

    Implementations mirror the behaviour of the equivalent ``os`` functions,
    raising the same native exceptions:

    - ``FileNotFoundError`` when a path does not exist
    - ``IsADirectoryError`` when a directory is read as a file
    - ``NotADirectoryError`` when a file is listed as a directory

    Implementations:

    - ``Mount``: one virtual tree with physical read-through fallback
    - ``VirtualFileSystem``: a set of mounts dispatched by path prefix
    """

    def open(self, name: str) -> File:
        """Open a file or directory for reading."""
        ...

    def lstat(self, name: str) -> FileInfo:
        """Return metadata without following a final symbolic link."""
        ...

    def stat(self, name: str) -> FileInfo:
        """Return metadata for a path."""
        ...

    def read_file(self, name: str) -> bytes:
        """Return the full contents of a file."""
        ...

    def read_dir(self, name: str) -> list[FileInfo]:
        """Return directory entries sorted by name."""
        ...

    def glob(self, pattern: str) -> list[str]:
        """Return the paths matching a shell pattern.

        Raises:
            InvalidPatternError: The pattern is malformed.
        """
        ...

    def exists(self, name: str) -> bool:
        """True if the path exists."""
        ...


__all__ = [
    "File",
    "FileSystem",
    "Gzipper",
]
