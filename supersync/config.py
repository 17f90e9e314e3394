"""
Settings for the sync engine.

Settings live in a ``.supersync.yaml`` file found by walking up from the
vault directory, with environment variable overrides on top. The engine
reads them once per evaluation through a SettingsProvider, never holding
them as ambient state.

Example file::

    enabled: true
    confirmBeforeUpdate: false
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from supersync.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE = ".supersync.yaml"

# Environment overrides, applied after the file is read
ENV_KEYS = {
    "SUPERSYNC_ENABLED": "enabled",
    "SUPERSYNC_CONFIRM_BEFORE_UPDATE": "confirm_before_update",
}

# The persisted format uses the host plugin's camelCase names; both are accepted
_KEY_ALIASES = {
    "enabled": "enabled",
    "confirmBeforeUpdate": "confirm_before_update",
    "confirm_before_update": "confirm_before_update",
}

_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def parse_bool(value: Any, name: str) -> bool:
    """Coerce a setting to bool, accepting the usual string spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError("settings", f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class SyncSettings:
    """Persisted user settings.

    Attributes:
        enabled: Master switch. When off every change is ignored.
        confirm_before_update: Ask the user before writing to a target.
    """

    enabled: bool = True
    confirm_before_update: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not isinstance(self.enabled, bool):
            raise ConfigurationError("settings", "enabled must be a boolean")
        if not isinstance(self.confirm_before_update, bool):
            raise ConfigurationError("settings", "confirm_before_update must be a boolean")

    def with_overrides(
        self,
        enabled: Optional[bool] = None,
        confirm_before_update: Optional[bool] = None,
    ) -> SyncSettings:
        """Create a new settings object with the given fields replaced."""
        return SyncSettings(
            enabled=enabled if enabled is not None else self.enabled,
            confirm_before_update=(
                confirm_before_update
                if confirm_before_update is not None
                else self.confirm_before_update
            ),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SyncSettings:
        """Build settings from persisted data, defaults filling the gaps.

        Unknown keys are ignored so newer files still load.
        """
        values: dict[str, bool] = {}
        for key, value in (data or {}).items():
            name = _KEY_ALIASES.get(key)
            if name is None:
                logger.debug(f"Ignoring unknown setting: {key}")
                continue
            values[name] = parse_bool(value, key)
        return cls(**values)

    def to_dict(self) -> dict[str, bool]:
        """Persisted representation, using the camelCase key names."""
        return {
            "enabled": self.enabled,
            "confirmBeforeUpdate": self.confirm_before_update,
        }


DEFAULT_SETTINGS = SyncSettings()


def find_config(start: Optional[Path] = None) -> Optional[Path]:
    """Find the nearest config file at or above start (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """Load a config file. Returns an empty dict when missing or invalid."""
    if path is None:
        path = find_config()
    if path is None or not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def save_config(config: Mapping[str, Any], path: Optional[Path] = None) -> bool:
    """Write a config file. Returns False on failure."""
    if path is None:
        path = find_config() or Path.cwd() / CONFIG_FILE
    try:
        with open(path, "w") as f:
            yaml.safe_dump(dict(config), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        logger.error(f"Could not write config {path}: {e}")
        return False
    return True


def get_nested(config: Mapping[str, Any], key: str) -> Any:
    """Get a value by dotted key, None if any part is missing."""
    value: Any = config
    for part in key.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


def set_nested(config: dict[str, Any], key: str, value: Any) -> None:
    """Set a value by dotted key, creating intermediate mappings."""
    parts = key.split(".")
    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def apply_env_overrides(settings: SyncSettings) -> SyncSettings:
    """Apply SUPERSYNC_* environment variables on top of settings."""
    overrides: dict[str, bool] = {}
    for env_key, name in ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw is not None and raw != "":
            overrides[name] = parse_bool(raw, env_key)
    if not overrides:
        return settings
    return settings.with_overrides(**overrides)


class FileSettingsProvider:
    """Settings read from a YAML file, re-read on every call.

    Edits made while a watcher is running take effect on the next change.
    """

    def __init__(self, path: Optional[Path] = None, use_env: bool = True):
        self.path = path
        self.use_env = use_env

    def get_settings(self) -> SyncSettings:
        path = self.path or find_config()
        settings = SyncSettings.from_dict(load_config(path) if path else {})
        if self.use_env:
            settings = apply_env_overrides(settings)
        return settings

    def save_settings(self, settings: SyncSettings) -> bool:
        path = self.path or find_config() or Path.cwd() / CONFIG_FILE
        config = load_config(path)
        config.update(settings.to_dict())
        config.pop("confirm_before_update", None)
        return save_config(config, path)


class StaticSettingsProvider:
    """Fixed settings, mainly for embedding and tests."""

    def __init__(self, settings: SyncSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def get_settings(self) -> SyncSettings:
        return self.settings


__all__ = [
    "CONFIG_FILE",
    "ENV_KEYS",
    "SyncSettings",
    "DEFAULT_SETTINGS",
    "parse_bool",
    "find_config",
    "load_config",
    "save_config",
    "get_nested",
    "set_nested",
    "apply_env_overrides",
    "FileSettingsProvider",
    "StaticSettingsProvider",
]
