"""Where mirrorfs keeps its files.

Locations follow the XDG base directories, each with a ``mirrorfs``
subdirectory:

- ``$XDG_CONFIG_HOME`` (``~/.config``): settings and theme override
- ``$XDG_STATE_HOME`` (``~/.local/state``): namespace snapshot, access history
- ``$XDG_DATA_HOME`` (``~/.local/share``): the physical mirror itself
"""

import os
from pathlib import Path

APP_NAME = "mirrorfs"

# Full path of the settings file, bypassing XDG_CONFIG_HOME
CONFIG_ENV_VAR = "MIRRORFS_CONFIG"


def _app_dir(env_var: str, fallback: str) -> Path:
    # Unset and empty are treated alike
    base = os.environ.get(env_var) or str(Path.home() / fallback)
    return Path(base) / APP_NAME


def get_config_dir() -> Path:
    return _app_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Directory for data that persists between runs but is not configuration."""
    return _app_dir("XDG_STATE_HOME", ".local/state")


def get_data_dir() -> Path:
    return _app_dir("XDG_DATA_HOME", ".local/share")


def get_settings_path() -> Path:
    """Settings file location.

    ``MIRRORFS_CONFIG`` wins when set; otherwise ``<config dir>/config.toml``.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else get_config_dir() / "config.toml"


def get_storage_root() -> Path:
    """Default parent directory of the physical mirror's ``root`` folder."""
    return get_data_dir() / "storage"


def get_snapshot_path() -> Path:
    return get_state_dir() / "snapshot.json"


def get_history_path() -> Path:
    return get_state_dir() / "history.jsonl"
