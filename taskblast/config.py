"""Application configuration management."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from taskblast.models import AppConfig

log = logging.getLogger(__name__)

_CONFIG_DIR = Path.home() / ".config" / "taskblast"
_DATA_DIR = Path.home() / ".local" / "share" / "taskblast"

_CONFIG_FILE = _CONFIG_DIR / "config.json"


def load_config() -> AppConfig:
    """Load config from disk, returning defaults if none exists."""
    if _CONFIG_FILE.exists():
        try:
            data = json.loads(_CONFIG_FILE.read_text())
            return AppConfig(**data)
        except (OSError, ValueError, TypeError, ValidationError):
            log.warning("Ignoring unreadable config file %s", _CONFIG_FILE, exc_info=True)
    return AppConfig()


def save_config(config: AppConfig) -> Path:
    """Write config to disk. Returns the config file path."""
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _CONFIG_FILE.write_text(config.model_dump_json(indent=2))
    return _CONFIG_FILE


def _resolve(configured: str | None, default_name: str) -> Path:
    if configured is not None:
        p = Path(configured)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    _DATA_DIR.mkdir(parents=True, exist_ok=True)
    return _DATA_DIR / default_name


def get_db_path() -> Path:
    """Resolve the task database path from config (or default)."""
    return _resolve(load_config().db_path, "taskblast.db")


def get_store_path() -> Path:
    """Resolve the key-value store file (preferences, scheduled notifications)."""
    return _resolve(load_config().store_path, "store.json")


def _normalise(path: str, default_name: str) -> Path:
    resolved = Path(path).expanduser().resolve()
    # Ensure it ends with a filename
    if resolved.is_dir():
        resolved = resolved / default_name
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved


def set_db_path(path: str) -> AppConfig:
    """Set a custom database path and save config."""
    config = load_config()
    config.db_path = str(_normalise(path, "taskblast.db"))
    save_config(config)
    return config


def set_store_path(path: str) -> AppConfig:
    """Set a custom key-value store path and save config."""
    config = load_config()
    config.store_path = str(_normalise(path, "store.json"))
    save_config(config)
    return config


def reset_paths() -> AppConfig:
    """Reset to the default local data paths."""
    config = load_config()
    config.db_path = None
    config.store_path = None
    save_config(config)
    return config
