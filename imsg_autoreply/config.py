"""Configuration management for imsg-autoreply.

Loads settings from ~/.config/imsg-autoreply/config.yaml with sensible defaults.
Everything except the `replies` table has a working default; with no
replies configured the daemon runs but never answers anyone.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_CONFIG = {
    # Messages database (read-only)
    "messages_db": "~/Library/Messages/chat.db",

    # Where the cursor and the activation flag live
    "state_dir": "~/.local/state/imsg-autoreply",
    "cursor_file": None,               # default: <state_dir>/last_rowid.txt
    "active_flag": None,               # default: <state_dir>/focus.flag

    # Timing (seconds)
    "timing": {
        "poll_interval": 2.0,          # Sleep between polls
        "throttle_seconds": 1800,      # Min gap between two replies (any contact)
        "max_message_age": 60,         # Older inbound messages are ignored
    },

    # osascript / Messages.app
    "actuator": {
        "osascript": "/usr/bin/osascript",
        "service_type": "iMessage",
        "timeout": 30,
    },

    "log_level": "INFO",

    # handle (phone number or Apple ID) -> reply text
    "replies": {},
}

# Config file locations (first found wins)
CONFIG_PATHS = [
    Path.home() / ".config/imsg-autoreply/config.yaml",
    Path.home() / ".config/imsg-autoreply/config.yml",
    Path.home() / ".imsg-autoreply.yaml",
    Path("./imsg-autoreply.yaml"),
]


# ============================================================================
# CONFIG LOADING
# ============================================================================

_config_cache: dict | None = None
_config_override: Path | None = None


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base, returning new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def use_config_file(path: Path | None) -> None:
    """Pin the config file (CLI --config) and drop the cache."""
    global _config_override, _config_cache
    _config_override = path
    _config_cache = None


def find_config_file() -> Path | None:
    """Find the first existing config file."""
    if _config_override is not None:
        return _config_override if _config_override.exists() else None
    for path in CONFIG_PATHS:
        if path.exists():
            return path
    return None


def load_config(reload: bool = False) -> dict:
    """Load configuration with defaults.

    Returns merged config: defaults + user overrides.
    Config is cached after first load.
    """
    global _config_cache

    if _config_cache is not None and not reload:
        return _config_cache

    config = DEFAULT_CONFIG.copy()

    config_file = find_config_file()
    if config_file:
        try:
            user_config = yaml.safe_load(config_file.read_text()) or {}
            config = _deep_merge(config, user_config)
        except Exception as e:
            print(f"Warning: Could not load config from {config_file}: {e}")

    _config_cache = config
    return config


# ============================================================================
# TYPED SETTINGS
# ============================================================================

@dataclass
class Settings:
    messages_db: Path
    cursor_file: Path
    active_flag: Path
    poll_interval: float
    throttle_seconds: float
    max_message_age: float
    osascript: str
    service_type: str
    actuator_timeout: float
    log_level: str
    replies: dict[str, str] = field(default_factory=dict)


def _expand(value: str | Path) -> Path:
    return Path(value).expanduser()


def _clean_replies(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        if raw:
            print("Warning: 'replies' must be a mapping of handle -> text; ignoring it")
        return {}
    replies: dict[str, str] = {}
    for handle, text in raw.items():
        if not isinstance(text, str) or not str(handle).strip():
            print(f"Warning: ignoring reply entry for {handle!r} (text must be a string)")
            continue
        if not isinstance(handle, str):
            # YAML reads an unquoted +1555... key as a number and drops the "+"
            print(
                f"Warning: reply handle {handle!r} is not a string; "
                f"quote it in the config (e.g. \"+{handle}\") or it may never match"
            )
        replies[str(handle).strip()] = text
    return replies


def load_settings(config: dict | None = None) -> Settings:
    """Resolve the merged config dict into typed settings."""
    config = config if config is not None else load_config()
    timing = config.get("timing") or {}
    actuator = config.get("actuator") or {}

    state_dir = _expand(config.get("state_dir") or DEFAULT_CONFIG["state_dir"])
    cursor_file = config.get("cursor_file")
    active_flag = config.get("active_flag")

    return Settings(
        messages_db=_expand(config.get("messages_db") or DEFAULT_CONFIG["messages_db"]),
        cursor_file=_expand(cursor_file) if cursor_file else state_dir / "last_rowid.txt",
        active_flag=_expand(active_flag) if active_flag else state_dir / "focus.flag",
        poll_interval=float(timing.get("poll_interval", 2.0)),
        throttle_seconds=float(timing.get("throttle_seconds", 1800)),
        max_message_age=float(timing.get("max_message_age", 60)),
        osascript=str(actuator.get("osascript") or "/usr/bin/osascript"),
        service_type=str(actuator.get("service_type") or "iMessage"),
        actuator_timeout=float(actuator.get("timeout", 30)),
        log_level=str(config.get("log_level") or "INFO").strip().upper(),
        replies=_clean_replies(config.get("replies")),
    )


# ============================================================================
# CLI HELPER
# ============================================================================

def init_config(force: bool = False) -> Path:
    """Create example config file in default location."""
    config_path = _config_override or CONFIG_PATHS[0]

    if config_path.exists() and not force:
        raise FileExistsError(f"Config already exists: {config_path}")

    config_path.parent.mkdir(parents=True, exist_ok=True)

    example = """# imsg-autoreply configuration
# Only `replies` needs editing - everything else has a working default.

# Messages database (needs Full Disk Access for the terminal / launchd job)
messages_db: ~/Library/Messages/chat.db

# Cursor file and activation flag live here
state_dir: ~/.local/state/imsg-autoreply

timing:
  poll_interval: 2.0             # Seconds between polls
  throttle_seconds: 1800         # Min seconds between two replies (all contacts)
  max_message_age: 60            # Ignore messages older than this (seconds)

actuator:
  osascript: /usr/bin/osascript
  service_type: iMessage
  timeout: 30                    # Seconds before a send is considered failed

log_level: INFO

# Contacts to answer (phone number or Apple ID) and what to say.
# Quote the handles: YAML turns a bare +1555... into a number.
replies:
  "+11234567890": "Hey, I'm away right now! Will get back to you soon."
  "friend@example.com": "Sorry, I'm driving. Will reply soon."
"""

    config_path.write_text(example)
    return config_path


def show_config() -> None:
    """Print current configuration."""
    config = load_config()
    config_file = find_config_file()

    print("=" * 60)
    print("imsg-autoreply configuration")
    print("=" * 60)

    if config_file:
        print(f"Config file: {config_file}")
    else:
        print("Config file: (using defaults)")

    print()
    print(yaml.dump(config, default_flow_style=False, sort_keys=False))
