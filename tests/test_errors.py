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

"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from embedvfs.errors import (
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


@pytest.mark.parametrize(
    ("error_type", "builtin"),
    [
        (InvalidMountError, ValueError),
        (MountNotFoundError, LookupError),
        (MountSealedError, PermissionError),
        (InsertionConflictError, ValueError),
        (InvalidPatternError, ValueError),
        (CompileError, RuntimeError),
        (WalkError, CompileError),
        (FormatError, CompileError),
    ],
)
def test_errors_share_base_and_builtin(
    error_type: type[VfsError], builtin: type[Exception]
) -> None:
    error = error_type("boom")

    assert isinstance(error, VfsError)
    assert isinstance(error, builtin)


def test_lookup_failures_are_native() -> None:
    assert not issubclass(FileNotFoundError, VfsError)
    assert not issubclass(IsADirectoryError, VfsError)
