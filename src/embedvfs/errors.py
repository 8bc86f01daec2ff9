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

"""Base exception hierarchy for :mod:`embedvfs`.

Lookup failures and path-type mismatches are *not* part of this hierarchy.
They surface as the native ``FileNotFoundError``, ``IsADirectoryError`` and
``NotADirectoryError`` so callers cannot tell a virtual-backed failure from a
physical one.
"""

from __future__ import annotations

__all__ = [
    "CompileError",
    "FormatError",
    "InsertionConflictError",
    "InvalidMountError",
    "InvalidPatternError",
    "MountNotFoundError",
    "MountSealedError",
    "VfsError",
    "WalkError",
]


class VfsError(Exception):
    """Base class for all embedvfs exceptions.

    Allows callers to catch every library-specific error with a single
    handler while standard ``OSError`` subclasses propagate normally.

    Example:
        Catch any embedvfs-specific error::

            try:
                source = compile_binary("/app", "static")
            except VfsError as e:
                logger.error("Embedding failed: %s", e)

    Note:
        Subclasses also inherit from a standard exception type (e.g.,
        ``ValueError``, ``RuntimeError``) for more specific handling.
    """


class InvalidMountError(VfsError, ValueError):
    """Raised when a mount is misconfigured or has no tree.

    Common causes:
        - Reading from a ``Mount`` constructed without a root node
        - Registering the same mount path twice
        - An empty mount path, or a physical path that is not a directory

    This error is never a fallback trigger: a mount without a tree does not
    defer to the physical filesystem.
    """


class MountNotFoundError(VfsError, LookupError):
    """Raised when no mount owns the requested virtual path.

    Generated embedding code treats this as fatal at import time, since it
    indicates a mismatch between the compiled assets and the runtime mounts.
    """


class MountSealedError(VfsError, PermissionError):
    """Raised when a sealed mount receives ``add_dir`` or ``add_file``."""


class InsertionConflictError(VfsError, ValueError):
    """Raised when a node cannot be attached to the tree.

    Common causes:
        - The parent directory was never added
        - The parent path resolves to a file
        - A node with the same name already exists

    Note:
        A parent that was *intentionally filtered* by the mount's exclusion
        rules is not a conflict; the insertion is silently dropped instead.
    """


class InvalidPatternError(VfsError, ValueError):
    """Raised when an exclusion rule or glob pattern is malformed."""


class CompileError(VfsError, RuntimeError):
    """Base class for binary compilation failures.

    Compilation is fail-fast: when any step raises, no generated source is
    returned, partial or otherwise.
    """


class WalkError(CompileError):
    """Raised when walking or reading the physical tree fails."""


class FormatError(CompileError):
    """Raised when the generated source cannot be formatted.

    The formatter rejects syntactically invalid text, so this also signals
    a template defect.
    """
