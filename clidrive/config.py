from __future__ import annotations

"""
Harness settings.

Values are layered, lowest precedence first:
- built-in defaults,
- a YAML settings file (`--config`, or the path in `CLIDRIVE_CONFIG`),
- `CLIDRIVE_*` environment variables.

Options set explicitly on a run always win over settings.
"""

import os
import shlex
import sys
import tempfile
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

import yaml

from clidrive.errors import ConfigError


DEFAULT_INPUT_DELAY = 0.1
DEFAULT_EXTENSION = "py"

ENV_PREFIX = "CLIDRIVE_"
CONFIG_ENV = "CLIDRIVE_CONFIG"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


def default_interpreter() -> str:
    return shlex.quote(sys.executable)


@dataclass(frozen=True)
class Settings:
    tmp_dir: str = tempfile.gettempdir()
    input_delay: float = DEFAULT_INPUT_DELAY
    interpreter: str = default_interpreter()
    extension: str = DEFAULT_EXTENSION
    debug: bool = False
    record_dir: str | None = None


FIELD_NAMES = {field.name for field in fields(Settings)}


def parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def parse_delay(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}")
    try:
        delay = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from None
    if delay < 0:
        raise ConfigError(f"{name} must not be negative, got {delay}")
    return delay


def parse_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
    return value.strip()


def coerce_values(raw: Mapping[str, Any], source: str) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, value in raw.items():
        if name not in FIELD_NAMES:
            raise ConfigError(f"{source}: unknown setting {name!r}")
        label = f"{source}: {name}"
        if name == "input_delay":
            values[name] = parse_delay(label, value)
        elif name == "debug":
            values[name] = parse_bool(label, value)
        elif name == "record_dir":
            values[name] = None if value in (None, "") else parse_text(label, value)
        elif name == "extension":
            values[name] = parse_text(label, value).lstrip(".")
        else:
            values[name] = parse_text(label, value)
    return values


def read_config_file(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            content = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in settings file {path}: {exc}") from exc
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"settings file {path} must contain a mapping")
    return coerce_values(content, path)


def env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    raw = {}
    for name in FIELD_NAMES:
        env_name = ENV_PREFIX + name.upper()
        if env_name in environ:
            raw[name] = environ[env_name]
    return coerce_values(raw, "environment")


def load_settings(path: str | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    environ = os.environ if environ is None else environ
    settings = Settings()
    path = path or environ.get(CONFIG_ENV) or None
    if path:
        settings = replace(settings, **read_config_file(path))
    return replace(settings, **env_values(environ))
