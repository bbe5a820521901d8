"""History command for viewing file accesses.

This module provides the `mirrorfs history` command, which reads back the
JSONL access log written whenever a file is created, viewed or edited.
"""

import json
from typing import Annotated

import typer

from mirrorfs.cli.display import create_history_table
from mirrorfs.core.config import require_settings
from mirrorfs.namespace.history import AccessEntry, AccessHistory
from mirrorfs.utils.formatting import console, print_info

app = typer.Typer(
    name="history",
    help="View file access history.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show file access history, newest first.

    Examples:
        mirrorfs history              # Show last 20 entries
        mirrorfs history -n 50        # Show last 50 entries
        mirrorfs history --json       # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = require_settings()
    entries = AccessHistory(settings.effective_history_path).get_history(limit=limit)

    if not entries:
        print_info("No access history found.")
        return

    if json_output:
        _print_json(entries)
    else:
        console.print(create_history_table(entries))


def _print_json(entries: list[AccessEntry]) -> None:
    """Print history entries as JSON for scripting."""
    typer.echo(json.dumps([entry.to_dict() for entry in entries], indent=2))
