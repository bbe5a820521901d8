"""Shared Rich consoles and one-line message helpers.

Warnings and errors go to stderr so ``--format json`` output on stdout
stays parseable.
"""

import sys

from rich.console import Console

from mirrorfs.core.theme import get_theme

# Hex theme colors need truecolor; off a TTY Rich decides on its own.
_COLOR_SYSTEM = "truecolor" if sys.stdout.isatty() else None

console = Console(theme=get_theme(), color_system=_COLOR_SYSTEM)
err_console = Console(theme=get_theme(), stderr=True, color_system=_COLOR_SYSTEM)

_UNITS = ("KB", "MB", "GB")


def format_size(size_bytes: int) -> str:
    """Render a byte count, e.g. ``512 B``, ``1.5 KB``, ``2.0 GB``."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    value = size_bytes / 1024
    unit_index = 0
    while value >= 1024 and unit_index < len(_UNITS) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {_UNITS[unit_index]}"


def print_info(message: str) -> None:
    console.print(f"[info]{message}[/]")


def print_success(message: str) -> None:
    console.print(f"[success]{message}[/]")


def print_warning(message: str) -> None:
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    err_console.print(f"[error]Error:[/] {message}")
