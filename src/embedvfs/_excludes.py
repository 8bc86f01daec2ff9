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

"""Exclusion rules applied to entry base names."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable

from .errors import InvalidPatternError

__all__ = ["Excludes", "validate_pattern"]


def validate_pattern(pattern: str) -> None:
    """Reject shell patterns that cannot match anything sensibly.

    Raises:
        InvalidPatternError: The pattern is empty or opens a ``[`` class
            that is never closed.
    """
    if not pattern:
        raise InvalidPatternError("Pattern must not be empty.")

    index = 0
    while index < len(pattern):
        if pattern[index] == "[":
            # "]" directly after "[" or "[!" is a literal member of the class.
            end = index + 1
            if end < len(pattern) and pattern[end] == "!":
                end += 1
            if end < len(pattern) and pattern[end] == "]":
                end += 1
            end = pattern.find("]", end)
            if end == -1:
                msg = f"Pattern {pattern!r} has an unterminated character class."
                raise InvalidPatternError(msg)
            index = end + 1
            continue
        index += 1


class Excludes:
    """Base-name patterns deciding which physical entries are skipped.

    Patterns use ``fnmatch`` syntax and are matched case-sensitively against
    a single path segment, never a full path.

    Example::

        excludes = Excludes(["*.tmp", ".git", "node_modules"])
        excludes.validate()
        excludes.match("cache.tmp")  # True
        excludes.match("index.html")  # False
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        super().__init__()
        self._patterns = tuple(patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def validate(self) -> None:
        """Check every pattern up front.

        Raises:
            InvalidPatternError: A pattern is malformed or contains ``/``.
        """
        for pattern in self._patterns:
            validate_pattern(pattern)
            if "/" in pattern:
                msg = f"Pattern {pattern!r} must match a base name, not a path."
                raise InvalidPatternError(msg)

    def match(self, name: str) -> bool:
        """True if ``name`` matches any pattern."""
        return any(fnmatch.fnmatchcase(name, pattern) for pattern in self._patterns)

    def __call__(self, name: str) -> bool:
        return self.match(name)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __repr__(self) -> str:
        return f"Excludes({list(self._patterns)!r})"
