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

"""Application virtual filesystem composed of mounts.

``VirtualFileSystem`` holds any number of mounts and routes each path to the
mount whose virtual root is the longest prefix of it. Generated embedding
code finds its target mount through :func:`app_vfs` at import time.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ._excludes import Excludes
from ._mount import Mount
from ._node import not_found
from ._path import ROOT, clean_path, relative_to_root
from ._protocol import File
from ._types import ZERO_TIME, FileInfo
from .errors import InvalidMountError, MountNotFoundError
from .logging import StructuredLogger, get_logger

__all__ = ["VirtualFileSystem", "app_vfs", "set_app_vfs"]

_logger: StructuredLogger = get_logger(__name__, context={"component": "vfs"})


def _empty_mounts() -> dict[str, Mount]:
    return {}


@dataclass(slots=True)
class VirtualFileSystem:
    """A set of mounts dispatched by virtual path prefix.

    Registry changes and lookups are serialized by a lock; reads through a
    mount are lock-free once that mount is populated.

    Example::

        vfs = VirtualFileSystem()
        vfs.add_mount("/app/views", "/srv/app/views")
        vfs.add_mount("/app/static", "/srv/app/static")

        html = vfs.read_file("/app/views/index.html")
    """

    _mounts: dict[str, Mount] = field(default_factory=_empty_mounts)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def mounts(self) -> tuple[Mount, ...]:
        """Registered mounts ordered by virtual root."""
        with self._lock:
            return tuple(self._mounts[key] for key in sorted(self._mounts))

    def add_mount(
        self,
        mount_path: str,
        physical_path: str,
        *,
        excludes: Excludes | None = None,
    ) -> Mount:
        """Register a new mount and return it for population.

        The root node takes its modification time from ``physical_path``
        when that directory exists; embedded deployments may ship without it.

        Raises:
            InvalidMountError: ``mount_path`` is empty or already mounted, or
                ``physical_path`` exists but is not a directory.
        """
        if not mount_path.strip():
            raise InvalidMountError("Mount path must not be empty.")
        vroot = clean_path(mount_path)
        proot = os.path.abspath(physical_path)

        mod_time = ZERO_TIME
        if os.path.exists(proot):
            if not os.path.isdir(proot):
                msg = f"Physical path {proot!r} is not a directory."
                raise InvalidMountError(msg)
            mod_time = datetime.fromtimestamp(os.stat(proot).st_mtime, tz=UTC)

        with self._lock:
            if vroot in self._mounts:
                msg = f"Mount path {vroot!r} is already mounted."
                raise InvalidMountError(msg)
            mount = Mount.create(vroot, proot, mod_time=mod_time, excludes=excludes)
            self._mounts[vroot] = mount

        _logger.info(
            "Mount registered.",
            event="vfs.mount.added",
            context={"mount": vroot, "physical": proot},
        )
        return mount

    def find_mount(self, name: str) -> Mount:
        """Return the mount owning ``name`` (longest virtual root prefix).

        Raises:
            MountNotFoundError: No mount covers ``name``.
        """
        cleaned = clean_path(name)
        with self._lock:
            candidates = [
                vroot
                for vroot in self._mounts
                if relative_to_root(cleaned, vroot) is not None
            ]
            if not candidates:
                msg = f"No mount exists for path {name!r}."
                raise MountNotFoundError(msg)
            return self._mounts[max(candidates, key=len)]

    # --- FileSystem ---

    def open(self, name: str) -> File:
        return self._mount_for(name).open(name)

    def lstat(self, name: str) -> FileInfo:
        return self._mount_for(name).lstat(name)

    def stat(self, name: str) -> FileInfo:
        return self._mount_for(name).stat(name)

    def read_file(self, name: str) -> bytes:
        return self._mount_for(name).read_file(name)

    def read_dir(self, name: str) -> list[FileInfo]:
        return self._mount_for(name).read_dir(name)

    def glob(self, pattern: str) -> list[str]:
        """Glob within the mount owning the pattern's fixed prefix."""
        magic = next((i for i, char in enumerate(pattern) if char in "*?["), None)
        anchor = pattern if magic is None else pattern[:magic].rsplit("/", 1)[0]
        try:
            mount = self.find_mount(anchor or ROOT)
        except MountNotFoundError:
            return []
        return mount.glob(pattern)

    def exists(self, name: str) -> bool:
        try:
            mount = self.find_mount(name)
        except MountNotFoundError:
            return False
        return mount.exists(name)

    def _mount_for(self, name: str) -> Mount:
        try:
            return self.find_mount(name)
        except MountNotFoundError:
            raise not_found(name) from None


_app_vfs_lock = threading.Lock()
_app_vfs = VirtualFileSystem()


def app_vfs() -> VirtualFileSystem:
    """Return the process-wide application filesystem."""
    with _app_vfs_lock:
        return _app_vfs


def set_app_vfs(vfs: VirtualFileSystem) -> VirtualFileSystem:
    """Install ``vfs`` as the application filesystem; returns the previous one."""
    global _app_vfs
    with _app_vfs_lock:
        previous, _app_vfs = _app_vfs, vfs
    return previous
