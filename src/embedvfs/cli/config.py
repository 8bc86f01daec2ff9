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

"""Configuration helpers for the ``embedvfs compile`` command."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .._excludes import Excludes

DEFAULT_CONFIG_PATH = Path("embedvfs.toml")

ENV_MOUNT_PATH = "EMBEDVFS_MOUNT_PATH"
ENV_PHYSICAL_PATH = "EMBEDVFS_PHYSICAL_PATH"
ENV_EXCLUDES = "EMBEDVFS_EXCLUDES"
ENV_OUTPUT = "EMBEDVFS_OUTPUT"

__all__ = ["DEFAULT_CONFIG_PATH", "CompileConfig", "ConfigError", "load_config"]


@dataclass(frozen=True, slots=True)
class CompileConfig:
    """Resolved configuration for one compile run."""

    mount_path: str
    physical_path: Path
    excludes: tuple[str, ...] = field(default_factory=tuple)
    output: Path | None = None

    def exclude_rules(self) -> Excludes:
        return Excludes(self.excludes)


class ConfigError(ValueError):
    """Raised when the compile configuration is invalid."""


def load_config(
    path: Path | Mapping[str, Any] | None,
    cli_overrides: object | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> CompileConfig:
    """Load and validate the compile configuration.

    Parameters
    ----------
    path:
        Path to the configuration file. ``None`` falls back to
        ``./embedvfs.toml``, which may be absent. Tests may pass an in-memory
        mapping to skip filesystem I/O.
    cli_overrides:
        Overrides provided by CLI processing. Keys mirror ``CompileConfig``'s
        field names; ``None`` values are ignored.
    env:
        Optional environment mapping. Defaults to :data:`os.environ`.

    Returns
    -------
    CompileConfig
        The resolved configuration object.
    """

    env_map = dict(os.environ if env is None else env)

    if isinstance(path, Mapping):
        config_data: dict[str, object] = dict(path)
        config_path: Path | None = None
    else:
        config_path = path if path is not None else DEFAULT_CONFIG_PATH
        config_data = _load_config_file(config_path, explicit=path is not None)

    config = _normalise_config(config_data)
    config = _apply_environment_overrides(config=config, env=env_map)
    config = _apply_cli_overrides(config=config, overrides=cli_overrides)

    return _build_config(config=config, config_path=config_path)


def _load_config_file(path: Path, *, explicit: bool) -> dict[str, object]:
    if not path.exists():
        if not explicit:
            return {}
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    suffix = path.suffix.lower()
    data: object
    try:
        if suffix == ".toml" or not suffix:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        elif suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        else:
            msg = f"Unsupported configuration format: {path.suffix}"
            raise ConfigError(msg)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as error:
        msg = f"Configuration file {path} could not be parsed: {error}"
        raise ConfigError(msg) from error

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigError(msg)

    mapping = cast(MutableMapping[object, object], data)
    typed_data: dict[str, object] = {}
    for key, value in mapping.items():
        if not isinstance(key, str):
            msg = f"Configuration keys must be strings (got {key!r})."
            raise ConfigError(msg)
        typed_data[key] = value
    return typed_data


def _normalise_config(raw: Mapping[str, object]) -> dict[str, object]:
    config: dict[str, object] = {
        "mount_path": raw.get("mount_path"),
        "physical_path": raw.get("physical_path") or raw.get("source"),
        "excludes": raw.get("excludes") or raw.get("exclude"),
        "output": raw.get("output") if isinstance(raw.get("output"), str) else None,
    }

    mount_section_obj = raw.get("mount")
    if isinstance(mount_section_obj, Mapping):
        mount_section = cast(Mapping[str, object], mount_section_obj)
        if config["mount_path"] is None:
            config["mount_path"] = mount_section.get("path")
        if config["physical_path"] is None:
            config["physical_path"] = mount_section.get("source")
        if config["excludes"] is None:
            config["excludes"] = mount_section.get("exclude")

    output_section_obj = raw.get("output")
    if config["output"] is None and isinstance(output_section_obj, Mapping):
        output_section = cast(Mapping[str, object], output_section_obj)
        config["output"] = output_section.get("path")

    return config


def _apply_environment_overrides(
    *, config: dict[str, object], env: Mapping[str, str]
) -> dict[str, object]:
    if ENV_MOUNT_PATH in env:
        config["mount_path"] = env[ENV_MOUNT_PATH]
    if ENV_PHYSICAL_PATH in env:
        config["physical_path"] = env[ENV_PHYSICAL_PATH]
    if ENV_EXCLUDES in env:
        config["excludes"] = _split_patterns(env[ENV_EXCLUDES])
    if ENV_OUTPUT in env:
        config["output"] = env[ENV_OUTPUT]

    return config


def _apply_cli_overrides(
    *, config: dict[str, object], overrides: object | None
) -> dict[str, object]:
    if overrides is None:
        return config

    materialised: dict[str, object]
    if isinstance(overrides, Mapping):
        materialised = dict(cast(Mapping[str, object], overrides))
    elif hasattr(overrides, "__dict__"):
        materialised = {key: getattr(overrides, key) for key in vars(overrides)}
    else:
        msg = "CLI overrides must be a mapping or support attribute access."
        raise TypeError(msg)

    for key, value in materialised.items():
        if key not in config or value is None:
            continue
        config[key] = value

    return config


def _build_config(
    *, config: Mapping[str, object], config_path: Path | None
) -> CompileConfig:
    location = str(config_path) if config_path is not None else "<mapping>"

    mount_path = config.get("mount_path")
    if not isinstance(mount_path, str) or not mount_path.strip():
        msg = f"`mount_path` must be configured (source: {location})."
        raise ConfigError(msg)

    physical_path = _coerce_path(config.get("physical_path"), "physical_path")
    if physical_path is None:
        msg = f"`physical_path` must be configured (source: {location})."
        raise ConfigError(msg)

    return CompileConfig(
        mount_path=mount_path,
        physical_path=physical_path,
        excludes=_coerce_patterns(config.get("excludes")),
        output=_coerce_path(config.get("output"), "output"),
    )


def _coerce_path(value: object, field_name: str) -> Path | None:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    msg = f"{field_name} must be a path-like value."
    raise ConfigError(msg)


def _coerce_patterns(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return _split_patterns(value)
    if isinstance(value, Iterable):
        result: list[str] = []
        for item in cast(Iterable[object], value):
            if not isinstance(item, str):
                msg = "Exclude patterns must be strings."
                raise ConfigError(msg)
            result.append(item)
        return tuple(result)
    msg = "excludes must be a string or a list of strings."
    raise ConfigError(msg)


def _split_patterns(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())
