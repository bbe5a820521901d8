"""CLI commands for mirrorfs.

This package contains all subcommand implementations.
"""

from mirrorfs.cli.commands import config, fs, history, shell

__all__ = ["config", "fs", "history", "shell"]
