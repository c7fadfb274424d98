"""Load application settings from config/settings.yaml.

Precedence: built-in defaults < settings.yaml < environment overrides
(KOPIA_SERVER_URL etc., handy when the server address is handed over by the
process that started the Kopia server).
"""

import copy
import os
import sys
from pathlib import Path
from typing import Any

import yaml

_DEFAULTS: dict[str, Any] = {
    "server": {
        "url": "https://127.0.0.1:51515",
        "username": "kopia",
        "password_secret": "KOPIA_SERVER_PASSWORD",
        "timeout": 30.0,
        # Kopia servers started by the desktop app use a self-signed certificate
        "verify_tls": False,
    },
    "connection": {
        "disconnect_settle": 0.5,
        "provision_settle": 2.0,
        "verification": {
            "max_attempts": 15,
            "first_delay": 0.5,
            "delay": 1.0,
        },
    },
    "logging": {
        "file": "logs/app.log",
        "level": "INFO",
        "log_to_console": False,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
    },
}

# Environment variable -> settings path
_ENV_OVERRIDES: dict[str, str] = {
    "KOPIA_SERVER_URL": "server.url",
    "KOPIA_SERVER_USERNAME": "server.username",
    "KOPIA_CONNECT_LOG_LEVEL": "logging.level",
}

_cached: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base recursively; None values keep the base. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _set_path(settings: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    node = settings
    for part in parents:
        node = node.setdefault(part, {})
    node[leaf] = value


def get_default_settings() -> dict[str, Any]:
    """Return a deep copy of default settings."""
    return copy.deepcopy(_DEFAULTS)


def get_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'connection.verification.delay')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def reload_settings() -> None:
    """Clear the settings cache. Call after config files or overrides change."""
    global _cached
    _cached = None


def load_settings(config_dir: Path | None = None) -> dict[str, Any]:
    """Defaults merged with config_dir/settings.yaml and environment overrides. Cached."""
    global _cached
    if _cached is not None:
        return _cached

    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    path = config_dir / "settings.yaml"

    result = get_default_settings()
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as e:
            # Logging is configured from these settings, so it is not available yet
            print(f"Ignoring unreadable {path}: {e}", file=sys.stderr)
            data = None
        if isinstance(data, dict):
            _deep_merge(result, data)

    for env_name, setting_path in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            _set_path(result, setting_path, value)

    _cached = result
    return result
