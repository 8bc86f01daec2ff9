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

"""Binary compiler embedding a physical directory as Python source.

``compile_binary`` walks a host directory and emits a module that, when
imported, finds the named mount in the application filesystem and rebuilds
the same tree in it through ``Mount.add_dir`` and ``Mount.add_file``.

The pipeline is fail-fast; no partial source is ever returned:

1. Validate the exclusion rules.
2. Render the preamble (mount lookup, fatal when the mount is missing).
3. Walk the tree depth-first: directories are emitted during the walk,
   files afterwards in virtual path order, each with its payload as a
   bytes literal.
4. Close the registration function and run the formatter.

Rendering and formatting are pure functions (``render`` and
``format_source``) with no shared state.
"""

from __future__ import annotations

import os
import stat
import subprocess  # nosec: B404
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from string import Template
from typing import Final

from ruff.__main__ import find_ruff_bin

from ._excludes import Excludes
from ._path import clean_path, join_virtual
from ._types import is_zero_time
from .errors import FormatError, WalkError
from .logging import StructuredLogger, get_logger

__all__ = [
    "compile_binary",
    "format_source",
    "render",
    "render_time",
]

_logger: StructuredLogger = get_logger(__name__, context={"component": "binary"})

_PREAMBLE: Final[Template] = Template(
    '''\
"""Code generated by embedvfs. DO NOT EDIT."""

# ruff: noqa

from datetime import UTC, datetime

from embedvfs import ZERO_TIME, MountNotFoundError, NodeInfo, app_vfs
from embedvfs.logging import get_logger


def _register() -> None:
    try:
        m = app_vfs().find_mount($mount_path)
    except MountNotFoundError as error:
        get_logger(__name__).critical(
            "Embedded mount is not registered.",
            event="vfs.binary.mount_missing",
            context={"mount": $mount_path, "error": str(error)},
        )
        raise SystemExit(1) from error

    # Adding directories into VFS
'''
)

_DIRECTORY: Final[Template] = Template(
    """\
    m.add_dir(
        $path,
        NodeInfo(path=$path, dir=True, time=$time),
    )
"""
)

_FILES_HEADER: Final[str] = "\n    # Adding files into VFS\n"

_FILE: Final[Template] = Template(
    """\
    m.add_file(
        $path,
        NodeInfo(path=$path, dir=False, data_size=$data_size, time=$time),$payload
    )
"""
)

_EPILOGUE: Final[str] = "\n\n_register()\n"


def render(template: Template, **data: object) -> str:
    """Substitute ``data`` into ``template``.

    Raises:
        KeyError: A placeholder has no value.
    """
    return template.substitute({key: str(value) for key, value in data.items()})


def render_time(value: datetime) -> str:
    """Render ``value`` as a UTC ``datetime`` constructor expression.

    The zero time renders as ``ZERO_TIME`` rather than as a date.

    Examples:
        >>> render_time(datetime(2024, 5, 1, 12, 30, tzinfo=UTC))
        'datetime(2024, 5, 1, 12, 30, 0, 0, tzinfo=UTC)'
    """
    if is_zero_time(value):
        return "ZERO_TIME"
    value = value.astimezone(UTC)
    return (
        f"datetime({value.year}, {value.month}, {value.day}, {value.hour}, "
        f"{value.minute}, {value.second}, {value.microsecond}, tzinfo=UTC)"
    )


def format_source(source: str) -> str:
    """Format Python source with ``ruff format``.

    Raises:
        FormatError: The formatter is unavailable or rejected the source,
            which happens for any syntax error.
    """
    try:
        command = [
            find_ruff_bin(),
            "format",
            "--isolated",
            "--stdin-filename",
            "embedded_vfs.py",
            "-",
        ]
        completed = subprocess.run(  # nosec B603
            command,
            input=source,
            capture_output=True,
            encoding="utf-8",
            check=False,
        )
    except OSError as error:
        raise FormatError("Unable to run the ruff formatter.") from error
    if completed.returncode != 0:
        msg = f"Generated source could not be formatted: {completed.stderr.strip()}"
        raise FormatError(msg)
    return completed.stdout


def compile_binary(
    mount_path: str,
    physical_path: str | os.PathLike[str],
    excludes: Excludes | None = None,
    *,
    formatter: Callable[[str], str] = format_source,
) -> bytes:
    """Generate Python source embedding ``physical_path`` into a mount.

    Args:
        mount_path: Virtual root of the mount the generated module populates.
        physical_path: Host directory to embed.
        excludes: Base-name patterns to skip; excluded directories are not
            descended into.
        formatter: Source formatter; must raise ``FormatError`` on invalid
            source.

    Returns:
        The formatted module source, UTF-8 encoded.

    Raises:
        InvalidPatternError: An exclusion rule is malformed.
        WalkError: Walking or reading the host tree failed.
        FormatError: The generated source could not be formatted.
    """
    rules = excludes if excludes is not None else Excludes()
    rules.validate()

    vroot = clean_path(mount_path)
    root = os.fspath(physical_path)
    _logger.info(
        "Compiling directory into embedded source.",
        event="vfs.binary.start",
        context={"mount": vroot, "physical": root, "excludes": list(rules.patterns)},
    )

    parts = [render(_PREAMBLE, mount_path=repr(vroot))]
    files: list[tuple[str, str, os.stat_result]] = []
    directories = 0
    try:
        for host_path, result in _walk(root, rules, frozenset()):
            virtual = _virtual_path(vroot, root, host_path)
            if not stat.S_ISDIR(result.st_mode):
                files.append((virtual, host_path, result))
                continue
            if virtual == vroot:
                continue
            directories += 1
            parts.append(
                render(
                    _DIRECTORY,
                    path=repr(virtual),
                    time=render_time(_mod_time(result)),
                )
            )
            _logger.debug(
                "Directory embedded.",
                event="vfs.binary.directory",
                context={"path": virtual},
            )

        parts.append(_FILES_HEADER)
        files.sort(key=lambda item: item[0])
        for virtual, host_path, result in files:
            data = Path(host_path).read_bytes() if result.st_size > 0 else b""
            parts.append(
                render(
                    _FILE,
                    path=repr(virtual),
                    data_size=len(data),
                    time=render_time(_mod_time(result)),
                    payload=f"\n        {data!r}," if data else "",
                )
            )
            _logger.debug(
                "File embedded.",
                event="vfs.binary.file",
                context={"path": virtual, "size": len(data)},
            )
    except OSError as error:
        msg = f"Failed to walk {root!r}: {error}"
        raise WalkError(msg) from error

    parts.append(_EPILOGUE)
    source = formatter("".join(parts))

    _logger.info(
        "Compilation complete.",
        event="vfs.binary.complete",
        context={"mount": vroot, "directories": directories, "files": len(files)},
    )
    return source.encode("utf-8")


def _walk(
    directory: str,
    excludes: Excludes,
    ancestors: frozenset[tuple[int, int]],
) -> Iterator[tuple[str, os.stat_result]]:
    """Yield ``directory`` and its retained descendants depth-first.

    Entries are visited in name order. Directory symlinks are followed; a
    directory that is one of its own ancestors (a symlink cycle) is skipped.
    The same directory reached through unrelated paths is walked each time.
    """
    if excludes.match(os.path.basename(os.path.normpath(directory))):
        return
    result = os.stat(directory)
    key = (result.st_dev, result.st_ino)
    if key in ancestors:
        return
    ancestors = ancestors | {key}
    yield directory, result

    with os.scandir(directory) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)
    for entry in entries:
        if excludes.match(entry.name):
            continue
        if entry.is_dir():
            yield from _walk(entry.path, excludes, ancestors)
        else:
            yield entry.path, entry.stat()


def _virtual_path(vroot: str, root: str, host_path: str) -> str:
    relative = os.path.relpath(host_path, root)
    if relative == os.curdir:
        return vroot
    return join_virtual(vroot, *relative.split(os.sep))


def _mod_time(result: os.stat_result) -> datetime:
    return datetime.fromtimestamp(result.st_mtime, tz=UTC)
