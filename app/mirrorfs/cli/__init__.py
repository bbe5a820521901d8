"""CLI package for mirrorfs.

This package contains the Typer application and all subcommands.
"""

from mirrorfs.cli.main import app

__all__ = ["app"]
