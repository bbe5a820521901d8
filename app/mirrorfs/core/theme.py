"""Color theme for mirrorfs output.

The bundled ``data/theme.toml`` holds the defaults. A ``[colors]`` table in
``~/.config/mirrorfs/theme.toml`` may override any subset of them; a broken
override is logged and ignored so it never stops the CLI.
"""

import logging
import re
import tomllib
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from mirrorfs.core.paths import get_config_dir

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}){1,2}")


class ThemeColors(BaseModel):
    """One hex color per role in the CLI output.

    Attributes:
        text, muted, header, border: Base text and table chrome.
        success, warning, error, info: Message severities.
        folder, file: Entity names in listings and trees.
        match: Highlighted search terms.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    folder: str = "#0e8ac8"
    file: str = "#ffffff"
    match: str = "#c1ff62"

    @field_validator("*", mode="before")
    @classmethod
    def check_hex(cls, v: object) -> str:
        if not isinstance(v, str):
            msg = f"expected a color string, got {type(v).__name__}"
            raise ValueError(msg)
        color = v.strip()
        if not _HEX_COLOR.fullmatch(color):
            msg = f"expected #RGB or #RRGGBB, got {v!r}"
            raise ValueError(msg)
        return color

    def to_styles(self) -> dict[str, str]:
        """Rich style definitions keyed by the style names used in markup."""
        return {
            "text": self.text,
            "muted": self.muted,
            "dim": self.muted,
            "header": self.header,
            "bold_header": f"bold {self.header}",
            "border": self.border,
            "success": self.success,
            "warning": self.warning,
            "error": f"bold {self.error}",
            "info": self.info,
            "folder": f"bold {self.folder}",
            "file": self.file,
            "match": f"bold {self.match}",
        }


def get_user_theme_path() -> Path:
    """Location of the optional user override (``<config dir>/theme.toml``)."""
    return get_config_dir() / "theme.toml"


def read_colors(source: Path | Traversable) -> dict[str, str]:
    """Read the ``[colors]`` table of a theme file.

    Args:
        source: Theme file on disk or inside the installed package.

    Returns:
        String values of the table. Empty if the file is missing, unreadable
        or malformed.
    """
    try:
        data = tomllib.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", source, e)
        return {}

    table = data.get("colors", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", source)
        return {}
    return {key: value for key, value in table.items() if isinstance(value, str)}


def load_theme() -> ThemeColors:
    """Merge the user override over the bundled theme.

    Falls back to the built-in defaults when the merged colors are invalid.
    """
    bundled = read_colors(resources.files("mirrorfs.data").joinpath("theme.toml"))
    if not bundled:
        logger.error("Bundled theme is missing or empty, using built-in colors")
    merged = {**bundled, **read_colors(get_user_theme_path())}
    try:
        return ThemeColors.model_validate(merged)
    except ValidationError as e:
        logger.warning("Invalid theme colors, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    return Theme((colors or load_theme()).to_styles())


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Rich theme shared by the module-level consoles, loaded on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme


def reload_theme() -> Theme:
    global _cached_theme
    _cached_theme = None
    return get_theme()
