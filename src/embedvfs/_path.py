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

"""Virtual path utilities.

Virtual paths are always slash separated and rooted at ``/`` regardless of
the host operating system. Physical paths use the host separator.

Functions:
    clean_path: Canonicalize a virtual path
    split_segments: Split a cleaned path into its segments
    relative_to_root: Strip a mount root prefix on a segment boundary
    join_virtual: Append segments to a virtual path
    physical_name: Map a root-relative virtual path onto a host directory
"""

from __future__ import annotations

import os

__all__ = [
    "ROOT",
    "clean_path",
    "join_virtual",
    "physical_name",
    "relative_to_root",
    "split_segments",
]

ROOT = "/"


def clean_path(path: str) -> str:
    """Return the canonical, ``/``-rooted form of a virtual path.

    This function:
    - Treats the empty string and "." as the root
    - Removes empty segments and "." entries
    - Processes ".." segments by popping from the result stack, never
      climbing above the root
    - Strips any trailing slash

    Examples:
        >>> clean_path("/app//views/./index.html")
        '/app/views/index.html'
        >>> clean_path("app/static/../views/")
        '/app/views'
        >>> clean_path("/..")
        '/'
    """
    result: list[str] = []
    for segment in path.split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if result:
                _ = result.pop()
        else:
            result.append(segment)
    return ROOT + "/".join(result)


def split_segments(path: str) -> list[str]:
    """Split a cleaned virtual path into segments; the root has none."""
    stripped = path.strip("/")
    return stripped.split("/") if stripped else []


def relative_to_root(path: str, root: str) -> str | None:
    """Strip ``root`` from ``path`` on a segment boundary.

    Both arguments must already be cleaned. Returns ``""`` when the paths are
    equal and ``None`` when ``path`` lies outside ``root``.

    Examples:
        >>> relative_to_root("/app/views/index.html", "/app")
        'views/index.html'
        >>> relative_to_root("/app", "/app")
        ''
        >>> relative_to_root("/application", "/app") is None
        True
    """
    if path == root:
        return ""
    if root == ROOT:
        return path[1:]
    if path.startswith(root + "/"):
        return path[len(root) + 1 :]
    return None


def join_virtual(base: str, *parts: str) -> str:
    """Join ``parts`` onto a virtual path and clean the result."""
    return clean_path("/".join((base, *parts)))


def physical_name(physical_root: str, relative: str) -> str:
    """Map a root-relative virtual path onto ``physical_root``.

    Examples:
        >>> physical_name("/srv/app", "views/index.html")
        '/srv/app/views/index.html'
        >>> physical_name("/srv/app", "")
        '/srv/app'
    """
    return os.path.normpath(os.path.join(physical_root, *split_segments(relative)))
