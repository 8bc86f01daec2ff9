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

"""Tests for Mount reads, physical fallback and population."""

from __future__ import annotations

import errno
import os
from datetime import UTC, datetime
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from embedvfs import (
    Excludes,
    FileSystem,
    InsertionConflictError,
    InvalidMountError,
    InvalidPatternError,
    Mount,
    MountSealedError,
    NodeInfo,
    PhysicalFile,
    VirtualFile,
)

_STAMP = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _add_dir(mount: Mount, path: str) -> None:
    mount.add_dir(path, NodeInfo(path=path, dir=True, time=_STAMP))


def _add_file(mount: Mount, path: str, data: bytes) -> None:
    mount.add_file(
        path, NodeInfo(path=path, dir=False, data_size=len(data), time=_STAMP), data
    )


class TestMountBasics:
    def test_satisfies_filesystem_protocol(self, mount: Mount) -> None:
        assert isinstance(mount, FileSystem)

    def test_name_and_str(self, mount: Mount, physical_root: Path) -> None:
        assert mount.name == "/app"
        assert str(mount) == f"mount(/app => {physical_root})"

    def test_virtual_root_is_cleaned(self, physical_root: Path) -> None:
        assert Mount.create("app/", str(physical_root)).virtual_root == "/app"

    def test_uninitialized_mount_is_invalid(self, physical_root: Path) -> None:
        mount = Mount("/app", str(physical_root))
        with pytest.raises(InvalidMountError):
            _ = mount.open("/app/README")
        with pytest.raises(InvalidMountError):
            mount.seal()


class TestVirtualReads:
    def test_read_file_returns_added_bytes(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        _add_file(mount, "/app/views/index.html", b"<h1>virtual</h1>")

        assert mount.read_file("/app/views/index.html") == b"<h1>virtual</h1>"

    def test_tree_shadows_physical_file(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        _add_file(mount, "/app/views/index.html", b"virtual")

        with mount.open("/app/views/index.html") as handle:
            assert isinstance(handle, VirtualFile)
            assert handle.read() == b"virtual"

    def test_read_dir_never_merges_physical_entries(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        _add_file(mount, "/app/views/index.html", b"virtual")

        names = [info.name for info in mount.read_dir("/app/views")]
        assert names == ["index.html"]

    def test_stat_virtual_directory(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")

        info = mount.stat("/app/views")
        assert info.is_dir
        assert info.name == "views"
        assert info.mod_time == _STAMP
        assert mount.lstat("/app/views") == info

    def test_read_file_on_directory(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")

        with pytest.raises(IsADirectoryError) as excinfo:
            _ = mount.read_file("/app/views")
        assert excinfo.value.errno == errno.EISDIR

    def test_read_dir_on_file(self, mount: Mount) -> None:
        _add_file(mount, "/app/notes.txt", b"x")

        with pytest.raises(NotADirectoryError) as excinfo:
            _ = mount.read_dir("/app/notes.txt")
        assert excinfo.value.errno == errno.ENOTDIR

    def test_zero_size_file(self, mount: Mount) -> None:
        _add_file(mount, "/app/empty", b"")

        assert mount.read_file("/app/empty") == b""
        assert mount.stat("/app/empty").size == 0

    @given(
        st.lists(
            st.text(alphabet="abcdefgh", min_size=1, max_size=6),
            min_size=1,
            max_size=12,
            unique=True,
        )
    )
    @settings(max_examples=50)
    def test_read_dir_sorted_regardless_of_insertion_order(
        self, names: list[str]
    ) -> None:
        mount = Mount.create("/app", "/nonexistent-embedvfs-root")
        for name in names:
            _add_file(mount, f"/app/{name}", name.encode())

        listed = [info.name for info in mount.read_dir("/app")]
        assert listed == sorted(names)


class TestPhysicalFallback:
    def test_read_file_falls_back(self, mount: Mount) -> None:
        assert mount.read_file("/app/README") == b"readme"

    def test_open_falls_back(self, mount: Mount, physical_root: Path) -> None:
        with mount.open("/app/static/app.css") as handle:
            assert isinstance(handle, PhysicalFile)
            assert handle.path == os.path.normpath(physical_root / "static/app.css")
            assert handle.read() == b"body {}"

    def test_stat_matches_host(self, mount: Mount, physical_root: Path) -> None:
        info = mount.stat("/app/static/app.css")
        host = os.stat(physical_root / "static" / "app.css")

        assert info.name == "app.css"
        assert info.size == host.st_size
        assert info.mode == host.st_mode
        assert not info.is_dir

    def test_read_dir_falls_back(self, mount: Mount) -> None:
        names = [info.name for info in mount.read_dir("/app/views")]
        assert names == ["disk-only.html", "index.html"]

    def test_missing_everywhere_raises_not_found(self, mount: Mount) -> None:
        with pytest.raises(FileNotFoundError) as excinfo:
            _ = mount.read_file("/app/missing.txt")
        assert excinfo.value.errno == errno.ENOENT

    def test_physical_directory_read_file(self, mount: Mount) -> None:
        with pytest.raises(IsADirectoryError):
            _ = mount.read_file("/app/static")

    def test_physical_file_read_dir(self, mount: Mount) -> None:
        with pytest.raises(NotADirectoryError):
            _ = mount.read_dir("/app/README")

    def test_path_outside_mount_not_found(self, mount: Mount) -> None:
        with pytest.raises(FileNotFoundError):
            _ = mount.stat("/elsewhere/README")

    def test_physical_lstat_reports_symlinks(
        self, mount: Mount, physical_root: Path
    ) -> None:
        os.symlink(physical_root / "README", physical_root / "link")

        assert mount.lstat("/app/link").is_symlink
        assert not mount.stat("/app/link").is_symlink
        assert mount.read_file("/app/link") == b"readme"

    def test_exists(self, mount: Mount) -> None:
        _add_file(mount, "/app/virtual.txt", b"v")

        assert mount.exists("/app/virtual.txt")
        assert mount.exists("/app/README")
        assert not mount.exists("/app/missing")


class TestGlob:
    def test_glob_virtual_directory(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        _add_file(mount, "/app/views/a.html", b"a")
        _add_file(mount, "/app/views/b.html", b"b")
        _add_file(mount, "/app/views/c.txt", b"c")

        assert mount.glob("/app/views/*.html") == [
            "/app/views/a.html",
            "/app/views/b.html",
        ]

    def test_glob_falls_back_per_directory(self, mount: Mount) -> None:
        assert mount.glob("/app/static/*.css") == ["/app/static/app.css"]

    def test_glob_with_magic_directory(self, mount: Mount) -> None:
        _add_dir(mount, "/app/a")
        _add_dir(mount, "/app/b")
        _add_file(mount, "/app/a/x.txt", b"x")
        _add_file(mount, "/app/b/y.txt", b"y")

        assert mount.glob("/app/*/*.txt") == ["/app/a/x.txt", "/app/b/y.txt"]

    def test_glob_literal_pattern(self, mount: Mount) -> None:
        assert mount.glob("/app/README") == ["/app/README"]
        assert mount.glob("/app/nope") == []

    def test_glob_invalid_pattern(self, mount: Mount) -> None:
        with pytest.raises(InvalidPatternError):
            _ = mount.glob("/app/[abc")


class TestPopulation:
    def test_missing_parent_conflicts(self, mount: Mount) -> None:
        with pytest.raises(InsertionConflictError):
            _add_file(mount, "/app/never/added.txt", b"x")

    def test_duplicate_conflicts(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        with pytest.raises(InsertionConflictError):
            _add_dir(mount, "/app/views")

    def test_file_parent_conflicts(self, mount: Mount) -> None:
        _add_file(mount, "/app/notes.txt", b"x")
        with pytest.raises(InsertionConflictError):
            _add_file(mount, "/app/notes.txt/inner", b"y")

    def test_filtered_parent_is_silent_noop(self, physical_root: Path) -> None:
        mount = Mount.create(
            "/app", str(physical_root), excludes=Excludes([".git", "*.tmp"])
        )

        _add_file(mount, "/app/.git/config", b"[core]")
        _add_file(mount, "/app/cache.tmp", b"junk")
        _add_dir(mount, "/app/.git")

        assert mount.read_dir("/app") == []
        assert not mount.exists("/app/cache.tmp")

    def test_filtered_parent_vs_missing_parent(self, physical_root: Path) -> None:
        mount = Mount.create("/app", str(physical_root), excludes=Excludes([".git"]))

        _add_file(mount, "/app/.git/objects/pack", b"x")
        with pytest.raises(InsertionConflictError):
            _add_file(mount, "/app/src/main.py", b"x")

    def test_add_dir_requires_directory_info(self, mount: Mount) -> None:
        with pytest.raises(ValueError, match="directory info"):
            mount.add_dir("/app/a", NodeInfo(path="/app/a", dir=False))

    def test_add_file_requires_file_info(self, mount: Mount) -> None:
        with pytest.raises(ValueError, match="file info"):
            mount.add_file("/app/a", NodeInfo(path="/app/a", dir=True))

    def test_add_file_size_mismatch(self, mount: Mount) -> None:
        info = NodeInfo(path="/app/a", dir=False, data_size=10)
        with pytest.raises(ValueError, match="expected 10"):
            mount.add_file("/app/a", info, b"short")

    def test_insert_outside_mount_conflicts(self, mount: Mount) -> None:
        with pytest.raises(InsertionConflictError):
            _add_file(mount, "/other/file", b"x")

    def test_sealed_mount_rejects_population(self, mount: Mount) -> None:
        _add_dir(mount, "/app/views")
        mount.seal()

        assert mount.sealed
        with pytest.raises(MountSealedError):
            _add_file(mount, "/app/views/late.html", b"late")
        assert mount.read_dir("/app/views") == []
