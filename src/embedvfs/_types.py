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

"""Metadata types shared by mounts, file handles and generated code.

Types:

- ``FileInfo``: metadata returned by ``stat``, ``lstat`` and ``read_dir`` for
  both virtual and physical entries
- ``NodeInfo``: the record generated embedding code passes to
  ``Mount.add_dir`` and ``Mount.add_file``

Constants:

- ``ZERO_TIME``: the distinguished "unknown" modification time
- ``DIR_MODE`` / ``FILE_MODE``: read-only modes reported for virtual nodes
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Final

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "ZERO_TIME",
    "FileInfo",
    "NodeInfo",
    "is_zero_time",
]

#: Modification time used when none is known; rendered as ``ZERO_TIME`` in
#: generated code rather than as an arbitrary date.
ZERO_TIME: Final[datetime] = datetime.min.replace(tzinfo=UTC)

DIR_MODE: Final[int] = stat.S_IFDIR | 0o555
FILE_MODE: Final[int] = stat.S_IFREG | 0o444


def is_zero_time(value: datetime) -> bool:
    """Return True when ``value`` is the zero time (naive or aware)."""
    return value.replace(tzinfo=UTC) == ZERO_TIME


@dataclass(slots=True, frozen=True)
class FileInfo:
    """Metadata for a file or directory.

    Virtual nodes and physical entries are both reported through this type,
    so callers cannot distinguish the backing store from the result.

    Attributes:
        name: Base name of the entry.
        size: Payload length in bytes (0 for virtual directories).
        mode: ``st_mode`` style bits including the file type.
        mod_time: Timezone-aware UTC modification time.
        is_dir: True if the entry is a directory.

    Example::

        info = mount.stat("/app/views/index.html")
        if not info.is_dir:
            print(info.name, info.size, info.mod_time.isoformat())
    """

    name: str
    size: int
    mode: int
    mod_time: datetime
    is_dir: bool

    @property
    def is_file(self) -> bool:
        """True if this is a regular file."""
        return stat.S_ISREG(self.mode)

    @property
    def is_symlink(self) -> bool:
        """True if this is a symbolic link. Virtual entries never are."""
        return stat.S_ISLNK(self.mode)

    @classmethod
    def from_stat(cls, name: str, result: os.stat_result) -> FileInfo:
        """Build metadata from an ``os.stat``/``os.lstat`` result."""
        return cls(
            name=name,
            size=result.st_size,
            mode=result.st_mode,
            mod_time=datetime.fromtimestamp(result.st_mtime, tz=UTC),
            is_dir=stat.S_ISDIR(result.st_mode),
        )


@dataclass(slots=True, frozen=True)
class NodeInfo:
    """Node description emitted by the binary compiler.

    Attributes:
        path: Full virtual path of the node.
        dir: True for directories.
        time: Modification time; ``ZERO_TIME`` when unknown.
        data_size: Payload length for files, 0 for directories.
    """

    path: str
    dir: bool
    time: datetime = ZERO_TIME
    data_size: int = 0

    def __post_init__(self) -> None:
        if self.data_size < 0:
            msg = f"data_size must be non-negative, got {self.data_size}"
            raise ValueError(msg)
        if self.dir and self.data_size:
            msg = f"Directory {self.path} cannot carry a payload."
            raise ValueError(msg)
        if self.time.tzinfo is None:
            object.__setattr__(self, "time", self.time.replace(tzinfo=UTC))
        else:
            object.__setattr__(self, "time", self.time.astimezone(UTC))
