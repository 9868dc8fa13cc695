"""
Configuration loading.

The bot reads a YAML file (config.yaml by default) and merges it over
DEFAULTS. The bot token and calendar id may also come from the
environment so they can stay out of the file.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import ConfigError

DEFAULTS: Dict[str, Any] = {
    "discord": {
        "bot_token": "",
        "guild_id": None,
    },
    "google": {
        "calendar_id": "",
        "client_secrets_path": "credentials.json",
        "token_path": "token.json",
    },
    "storage": {
        "events_path": "data/events.json",
    },
    "calendar": {
        "window_days": 10,
        "page_size": 3,
        "session_timeout": 300,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}

ENV_OVERRIDES = {
    "SAGE_DISCORD_TOKEN": ("discord", "bot_token"),
    "SAGE_GUILD_ID": ("discord", "guild_id"),
    "SAGE_CALENDAR_ID": ("google", "calendar_id"),
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    config_file = Path(path).expanduser()
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    config = _merge(DEFAULTS, data)

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            config[section][key] = value

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """Return warnings about missing or out-of-range settings."""
    warnings = []

    if not config.get("discord", {}).get("bot_token"):
        warnings.append("discord.bot_token not set")

    if not config.get("google", {}).get("calendar_id"):
        warnings.append("google.calendar_id not set")

    calendar = config.get("calendar", {})
    for key in ("window_days", "page_size", "session_timeout"):
        value = calendar.get(key)
        if not isinstance(value, (int, float)) or value <= 0:
            warnings.append(f"calendar.{key} must be a positive number, got {value!r}")

    return warnings
