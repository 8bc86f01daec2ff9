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

"""Tests for the node tree and its resolver."""

from __future__ import annotations

import errno
import stat
from datetime import UTC, datetime

import pytest

from embedvfs import (
    DIR_MODE,
    FILE_MODE,
    ZERO_TIME,
    InsertionConflictError,
    Node,
    NodeInfo,
    TreeResolver,
)
from embedvfs._types import is_zero_time


@pytest.fixture
def tree() -> Node:
    root = Node.root("/app")
    views = root.add_child("views", is_dir=True)
    _ = views.add_child("index.html", is_dir=False, data=b"hello")
    _ = root.add_child("empty.txt", is_dir=False, data=b"")
    return root


class TestNode:
    def test_root_name_and_path(self) -> None:
        root = Node.root("/app/views/")
        assert root.name == "views"
        assert root.path == "/app/views"
        assert root.is_dir

    def test_filesystem_root(self) -> None:
        root = Node.root("/")
        assert root.name == "/"
        assert root.path == "/"

    def test_child_path_derived_from_parent(self, tree: Node) -> None:
        index = tree.children["views"].children["index.html"]
        assert index.path == "/app/views/index.html"
        assert index.parent is tree.children["views"]
        assert tree.parent is None

    def test_deep_path_follows_ancestor_names(self) -> None:
        root = Node.root("/")
        leaf = (
            root.add_child("a", is_dir=True)
            .add_child("b", is_dir=True)
            .add_child("c.txt", is_dir=False, data=b"c")
        )
        assert leaf.path == "/a/b/c.txt"
        assert leaf.parent is not None
        assert leaf.parent.parent is root.children["a"]

    def test_file_payload_and_size(self, tree: Node) -> None:
        index = tree.children["views"].children["index.html"]
        assert index.data == b"hello"
        assert index.size == 5

    def test_zero_size_file_stores_no_payload(self, tree: Node) -> None:
        empty = tree.children["empty.txt"]
        assert empty.data is None
        assert empty.size == 0

    def test_duplicate_name_conflicts(self, tree: Node) -> None:
        with pytest.raises(InsertionConflictError):
            _ = tree.add_child("views", is_dir=True)

    def test_file_cannot_have_children(self, tree: Node) -> None:
        with pytest.raises(InsertionConflictError):
            _ = tree.children["empty.txt"].add_child("x", is_dir=False)

    def test_sorted_children(self) -> None:
        root = Node.root("/")
        for name in ("c", "a", "b"):
            _ = root.add_child(name, is_dir=False)
        assert [child.name for child in root.sorted_children()] == ["a", "b", "c"]

    def test_info_reports_read_only_modes(self, tree: Node) -> None:
        dir_info = tree.children["views"].info()
        file_info = tree.children["views"].children["index.html"].info()
        assert dir_info.mode == DIR_MODE
        assert dir_info.is_dir
        assert dir_info.size == 0
        assert file_info.mode == FILE_MODE
        assert file_info.is_file
        assert not file_info.is_symlink
        assert stat.S_IMODE(file_info.mode) == 0o444


class TestTreeResolver:
    def test_find_root(self, tree: Node) -> None:
        assert TreeResolver(tree, "/app").find("/app") is tree

    def test_find_nested(self, tree: Node) -> None:
        node = TreeResolver(tree, "/app").find("/app/views/./index.html")
        assert node.name == "index.html"

    def test_missing_segment_raises_not_found(self, tree: Node) -> None:
        with pytest.raises(FileNotFoundError) as excinfo:
            _ = TreeResolver(tree, "/app").find("/app/views/missing.html")
        assert excinfo.value.errno == errno.ENOENT
        assert excinfo.value.filename == "/app/views/missing.html"

    def test_outside_tree_raises_not_found(self, tree: Node) -> None:
        with pytest.raises(FileNotFoundError):
            _ = TreeResolver(tree, "/app").find("/other")

    def test_find_parent(self, tree: Node) -> None:
        parent = TreeResolver(tree, "/app").find_parent("/app/views/new.html")
        assert parent is tree.children["views"]

    def test_find_parent_missing_directory(self, tree: Node) -> None:
        with pytest.raises(InsertionConflictError):
            _ = TreeResolver(tree, "/app").find_parent("/app/missing/new.html")

    def test_find_parent_of_file(self, tree: Node) -> None:
        with pytest.raises(InsertionConflictError):
            _ = TreeResolver(tree, "/app").find_parent("/app/empty.txt/new.html")

    def test_find_parent_of_root(self, tree: Node) -> None:
        with pytest.raises(InsertionConflictError):
            _ = TreeResolver(tree, "/app").find_parent("/app")

    def test_find_parent_filtered_ancestor(self, tree: Node) -> None:
        parent = TreeResolver(tree, "/app").find_parent(
            "/app/.git/objects/pack", excluded=lambda name: name == ".git"
        )
        assert parent is None


class TestNodeInfo:
    def test_defaults(self) -> None:
        info = NodeInfo(path="/app/a", dir=True)
        assert info.time == ZERO_TIME
        assert info.data_size == 0

    def test_naive_time_is_treated_as_utc(self) -> None:
        info = NodeInfo(path="/app/a", dir=True, time=datetime(2024, 1, 2, 3, 4, 5))
        assert info.time == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_negative_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            _ = NodeInfo(path="/app/a", dir=False, data_size=-1)

    def test_directory_payload_rejected(self) -> None:
        with pytest.raises(ValueError, match="payload"):
            _ = NodeInfo(path="/app/a", dir=True, data_size=3)

    def test_zero_time_detection(self) -> None:
        assert is_zero_time(ZERO_TIME)
        assert is_zero_time(datetime.min)
        assert not is_zero_time(datetime(2024, 1, 1, tzinfo=UTC))
