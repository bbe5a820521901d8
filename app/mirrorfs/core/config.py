"""Settings model and TOML I/O.

Settings are stored in ~/.config/mirrorfs/config.toml (or the file named by
MIRRORFS_CONFIG). Every field is optional; unset locations fall back to the
XDG defaults from mirrorfs.core.paths.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mirrorfs.core.paths import (
    get_history_path,
    get_settings_path,
    get_snapshot_path,
    get_storage_root,
)
from mirrorfs.namespace.errors import InvalidNameError
from mirrorfs.namespace.models import validate_name


class Settings(BaseModel):
    """Runtime settings for a mirrorfs workspace.

    Attributes:
        storage_root: Directory holding the physical mirror.
        snapshot_path: JSON snapshot of the namespace.
        history_path: JSONL file access history.
        root_name: Name of the root folder (and its mirror directory).
        history_enabled: Record file accesses to the history file.
    """

    model_config = ConfigDict(extra="forbid")

    storage_root: Annotated[
        Path | None,
        Field(description="Physical mirror directory (None = XDG data dir)"),
    ] = None
    snapshot_path: Annotated[
        Path | None,
        Field(description="Snapshot file (None = XDG state dir)"),
    ] = None
    history_path: Annotated[
        Path | None,
        Field(description="Access history file (None = XDG state dir)"),
    ] = None
    root_name: Annotated[str, Field(description="Root folder name")] = "root"
    history_enabled: Annotated[bool, Field(description="Record file accesses")] = True

    @field_validator("root_name")
    @classmethod
    def validate_root_name(cls, v: str) -> str:
        """Root name follows the same rules as any entity name."""
        try:
            validate_name(v)
        except InvalidNameError as e:
            raise ValueError(e.message) from None
        return v

    @field_validator("storage_root", "snapshot_path", "history_path")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @property
    def effective_storage_root(self) -> Path:
        return self.storage_root or get_storage_root()

    @property
    def effective_snapshot_path(self) -> Path:
        return self.snapshot_path or get_snapshot_path()

    @property
    def effective_history_path(self) -> Path:
        return self.history_path or get_history_path()


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


class SettingsValidationError(SettingsError):
    """Raised when the settings file content is invalid."""


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    A missing file is not an error: defaults are returned.

    Args:
        path: Path to the settings file. If None, uses the default location.

    Returns:
        Validated Settings object.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsValidationError: If the content doesn't match the schema.
        SettingsError: If the file cannot be read.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        return Settings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsValidationError(f"Invalid settings content: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The Settings object to save.
        path: Path to save to. If None, uses the default location.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path


def settings_to_dict(settings: Settings) -> dict[str, object]:
    """Convert Settings to a TOML-ready dictionary.

    TOML has no null, so unset paths are omitted.
    """
    result: dict[str, object] = {
        "root_name": settings.root_name,
        "history_enabled": settings.history_enabled,
    }
    for key in ("storage_root", "snapshot_path", "history_path"):
        value = getattr(settings, key)
        if value is not None:
            result[key] = str(value)
    return result


def require_settings(path: Path | None = None) -> Settings:
    """Load settings or exit with a helpful error message.

    Args:
        path: Optional custom settings path.

    Returns:
        Loaded and validated Settings.

    Raises:
        typer.Exit: If the settings file exists but cannot be loaded.
    """
    import typer
    from rich.markup import escape

    from mirrorfs.utils.formatting import print_error, print_info

    settings_path = path or get_settings_path()
    try:
        return load_settings(settings_path)
    except SettingsError as e:
        print_error(f"Failed to load settings from {settings_path}: {escape(str(e))}")
        print_info("Fix the file or run 'mirrorfs config init --force' to reset it.")
        raise typer.Exit(code=1) from e
