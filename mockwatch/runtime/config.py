"""Persistent JSON config helpers.

Stores the poll interval, generator command, package roots and log level.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
import shlex
from pathlib import Path

from platformdirs import user_config_dir

from ..generator import DEFAULT_GENERATOR_COMMAND

APP_NAME = "mockwatch"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_POLL_INTERVAL_SECONDS = 0.3
MIN_POLL_INTERVAL_SECONDS = 0.05
MAX_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_LOG_LEVEL = "INFO"
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored so a read-only config directory never stops
    the watcher.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def clamp_poll_interval(value: float) -> float:
    """Bound a poll interval to the supported range."""
    return max(MIN_POLL_INTERVAL_SECONDS, min(MAX_POLL_INTERVAL_SECONDS, float(value)))


def load_poll_interval() -> float:
    """Return the configured poll interval in seconds.

    Booleans, non-numbers and non-positive values fall back to the default.
    """
    value = load_config().get("poll_interval_seconds")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return DEFAULT_POLL_INTERVAL_SECONDS
    return clamp_poll_interval(value)


def parse_generator_command(value: object) -> tuple[str, ...] | None:
    """Normalize a command given as a shell-style string or a list of strings."""
    if isinstance(value, str):
        try:
            parts = shlex.split(value)
        except ValueError:
            return None
    elif isinstance(value, list) and all(isinstance(part, str) for part in value):
        parts = list(value)
    else:
        return None
    parts = [part for part in parts if part]
    return tuple(parts) if parts else None


def load_generator_command() -> tuple[str, ...]:
    """Return the configured generator command or ``pegomock generate``."""
    command = parse_generator_command(load_config().get("generator_command"))
    return command if command is not None else DEFAULT_GENERATOR_COMMAND


def load_package_roots() -> list[Path] | None:
    """Return configured package roots, or ``None`` to use the environment.

    Non-string entries are dropped; an empty result counts as unset.
    """
    value = load_config().get("package_roots")
    if not isinstance(value, list):
        return None
    roots = [Path(item).expanduser() for item in value if isinstance(item, str) and item.strip()]
    return roots or None


def load_log_level() -> str:
    """Return the configured log level name, upper-cased and validated."""
    value = load_config().get("log_level")
    if not isinstance(value, str):
        return DEFAULT_LOG_LEVEL
    level = value.strip().upper()
    return level if level in _LOG_LEVELS else DEFAULT_LOG_LEVEL


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "MIN_POLL_INTERVAL_SECONDS",
    "MAX_POLL_INTERVAL_SECONDS",
    "DEFAULT_LOG_LEVEL",
    "load_config",
    "save_config",
    "clamp_poll_interval",
    "load_poll_interval",
    "parse_generator_command",
    "load_generator_command",
    "load_package_roots",
    "load_log_level",
]
