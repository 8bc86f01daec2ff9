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

"""Command line entry points for the ``embedvfs`` executable."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from .._binary import compile_binary
from ..errors import CompileError, InvalidPatternError
from ..logging import StructuredLogger, configure_logging, get_logger
from .config import CompileConfig, ConfigError, load_config


def main(argv: Sequence[str] | None = None) -> int:
    """Run the embedvfs CLI."""

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # argparse exits with code 2 on errors
        code = exc.code if isinstance(exc.code, int) else 2
        return int(code)

    configure_logging(level=args.log_level, json_mode=args.json_logs)
    logger = get_logger(__name__)

    if args.command == "compile":
        return _run_compile(args, logger)

    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="embedvfs",
        description="Embed directories into Python source as a virtual filesystem.",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"),
        default=None,
        help="Override the log level emitted by the CLI.",
    )
    _ = parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Emit structured JSON logs instead of text.",
    )

    subcommands = parser.add_subparsers(dest="command", required=True)

    compile_parser = subcommands.add_parser(
        "compile",
        help="Generate a Python module that rebuilds a directory inside a mount.",
    )
    _ = compile_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (.toml, .yaml or .yml; default: ./embedvfs.toml).",
    )
    _ = compile_parser.add_argument(
        "--mount",
        dest="mount_path",
        default=None,
        help="Virtual path of the mount the generated module populates.",
    )
    _ = compile_parser.add_argument(
        "--source",
        dest="physical_path",
        default=None,
        help="Physical directory to embed.",
    )
    _ = compile_parser.add_argument(
        "--exclude",
        dest="excludes",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Base-name pattern to skip; may be repeated.",
    )
    _ = compile_parser.add_argument(
        "--output",
        default=None,
        help="File to write the generated module to (default: stdout).",
    )

    return parser


def _run_compile(args: argparse.Namespace, logger: StructuredLogger) -> int:
    overrides = {
        "mount_path": args.mount_path,
        "physical_path": args.physical_path,
        "excludes": tuple(args.excludes) if args.excludes else None,
        "output": args.output,
    }
    try:
        config = load_config(args.config, overrides)
        source = compile_binary(
            config.mount_path,
            config.physical_path,
            config.exclude_rules(),
        )
    except (ConfigError, InvalidPatternError) as error:
        logger.error(
            "Invalid compile configuration",
            event="embedvfs.cli.config_error",
            context={"error": str(error)},
        )
        return 2
    except CompileError as error:
        logger.error(
            "Compilation failed",
            event="embedvfs.cli.compile_error",
            context={"error": str(error)},
        )
        return 1

    try:
        _write_output(config, source)
    except OSError as error:
        logger.error(
            "Output could not be written",
            event="embedvfs.cli.output_error",
            context={"output": str(config.output), "error": str(error)},
        )
        return 1
    return 0


def _write_output(config: CompileConfig, source: bytes) -> None:
    if config.output is None:
        _ = sys.stdout.buffer.write(source)
        sys.stdout.flush()
        return
    config.output.parent.mkdir(parents=True, exist_ok=True)
    _ = config.output.write_bytes(source)
