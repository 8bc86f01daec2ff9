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

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

import pytest

from embedvfs import Mount, VirtualFileSystem, set_app_vfs


class TreeFactory(Protocol):
    def __call__(self, files: dict[str, bytes], *, dirs: tuple[str, ...] = ()) -> Path:
        """Materialise ``files`` (relative path to content) under a fresh root."""


@pytest.fixture
def app_filesystem() -> Iterator[VirtualFileSystem]:
    """Install an empty application filesystem for the duration of a test."""

    vfs = VirtualFileSystem()
    previous = set_app_vfs(vfs)
    try:
        yield vfs
    finally:
        _ = set_app_vfs(previous)


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeFactory:
    """Return a factory that writes a physical directory tree."""

    counter = 0

    def factory(files: dict[str, bytes], *, dirs: tuple[str, ...] = ()) -> Path:
        nonlocal counter
        counter += 1
        root = tmp_path / f"tree{counter}"
        root.mkdir()
        for directory in dirs:
            (root / directory).mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            _ = target.write_bytes(content)
        return root

    return factory


@pytest.fixture
def physical_root(make_tree: TreeFactory) -> Path:
    """A small host tree used as the fallback root of ``mount``."""

    return make_tree(
        {
            "views/index.html": b"<h1>disk</h1>",
            "views/disk-only.html": b"disk only",
            "static/app.css": b"body {}",
            "README": b"readme",
        }
    )


@pytest.fixture
def mount(physical_root: Path) -> Mount:
    """An empty mount over ``physical_root`` at ``/app``."""

    return Mount.create("/app", str(physical_root))
