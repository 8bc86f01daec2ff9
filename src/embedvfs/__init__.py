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

"""Read-only virtual filesystem embedded in Python source.

A ``VirtualFileSystem`` holds mounts. Each ``Mount`` maps a virtual directory
onto a physical one and serves reads from an in-memory tree, falling back to
the host directory for anything the tree does not contain. The tree is
populated by modules generated with :func:`compile_binary`, so a deployment
can ship its templates and assets inside the Python package itself.

Example usage::

    from embedvfs import app_vfs

    app_vfs().add_mount("/app/views", "views")
    import myapp.embedded_views  # generated by ``embedvfs compile``

    html = app_vfs().read_file("/app/views/index.html")

Modules:

- ``Mount``: one virtual directory with physical fallback
- ``VirtualFileSystem``: mounts dispatched by longest path prefix
- ``VirtualFile`` / ``PhysicalFile``: handles returned by ``open``
- ``Excludes``: base-name patterns skipped by population and compilation
- ``compile_binary``: source generator for a physical directory
"""

from __future__ import annotations

from ._binary import compile_binary, format_source, render, render_time
from ._excludes import Excludes, validate_pattern
from ._file import GZIP_MEMBER_HEADER, PhysicalFile, VirtualFile
from ._mount import Mount
from ._node import Node, TreeResolver
from ._path import clean_path
from ._protocol import File, FileSystem, Gzipper
from ._types import DIR_MODE, FILE_MODE, ZERO_TIME, FileInfo, NodeInfo
from ._vfs import VirtualFileSystem, app_vfs, set_app_vfs
from .errors import (
    CompileError,
    FormatError,
    InsertionConflictError,
    InvalidMountError,
    InvalidPatternError,
    MountNotFoundError,
    MountSealedError,
    VfsError,
    WalkError,
)
from .logging import StructuredLogger, configure_logging, get_logger

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "GZIP_MEMBER_HEADER",
    "ZERO_TIME",
    "CompileError",
    "Excludes",
    "File",
    "FileInfo",
    "FileSystem",
    "FormatError",
    "Gzipper",
    "InsertionConflictError",
    "InvalidMountError",
    "InvalidPatternError",
    "Mount",
    "MountNotFoundError",
    "MountSealedError",
    "Node",
    "NodeInfo",
    "PhysicalFile",
    "StructuredLogger",
    "TreeResolver",
    "VfsError",
    "VirtualFile",
    "VirtualFileSystem",
    "WalkError",
    "app_vfs",
    "clean_path",
    "compile_binary",
    "configure_logging",
    "format_source",
    "get_logger",
    "render",
    "render_time",
    "set_app_vfs",
    "validate_pattern",
]
