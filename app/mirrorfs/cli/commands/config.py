"""Settings commands.

Provides commands to display the effective settings and to write a
settings file with explicit values.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from mirrorfs.core.config import Settings, SettingsError, require_settings, save_settings
from mirrorfs.core.paths import get_settings_path
from mirrorfs.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or initialize mirrorfs settings.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective settings and where they come from."""
    settings_path = get_settings_path()
    settings = require_settings(settings_path)

    table = Table(
        title="Settings",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Key", style="header", no_wrap=True)
    table.add_column("Value", style="text")

    table.add_row("settings file", escape(str(settings_path)))
    table.add_row("storage_root", escape(str(settings.effective_storage_root)))
    table.add_row("snapshot_path", escape(str(settings.effective_snapshot_path)))
    table.add_row("history_path", escape(str(settings.effective_history_path)))
    table.add_row("root_name", escape(settings.root_name))
    table.add_row("history_enabled", "yes" if settings.history_enabled else "no")
    console.print(table)

    if not settings_path.exists():
        print_info("No settings file yet, defaults are in effect. Run 'mirrorfs config init'.")


@app.command()
def init(
    storage_root: Annotated[
        Path | None,
        typer.Option("--storage-root", help="Directory holding the physical mirror."),
    ] = None,
    snapshot_path: Annotated[
        Path | None,
        typer.Option("--snapshot", help="Snapshot file location."),
    ] = None,
    root_name: Annotated[
        str,
        typer.Option("--root-name", help="Name of the root folder."),
    ] = "root",
    no_history: Annotated[
        bool,
        typer.Option("--no-history", help="Do not record file accesses."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing settings file."),
    ] = False,
) -> None:
    """Write a settings file."""
    settings_path = get_settings_path()
    if settings_path.exists() and not force:
        print_error(f"Settings file already exists: {escape(str(settings_path))}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        settings = Settings(
            storage_root=storage_root,
            snapshot_path=snapshot_path,
            root_name=root_name,
            history_enabled=not no_history,
        )
    except ValueError as e:
        print_error(f"Invalid settings: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    try:
        path = save_settings(settings, settings_path)
    except SettingsError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e

    print_success(f"Settings written to {escape(str(path))}")
