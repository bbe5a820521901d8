"""Top-level ``mirrorfs`` command.

Global flags (version, verbosity) live here; each command group is a
Typer sub-app registered at the bottom of the module.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from mirrorfs import __version__
from mirrorfs.cli.commands import config, fs, history, shell
from mirrorfs.utils.formatting import err_console

app = typer.Typer(
    name="mirrorfs",
    help="Virtual file namespace mirrored onto a real directory.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Eager --version handler."""
    if value:
        typer.echo(f"mirrorfs version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route the package loggers through Rich on stderr.

    WARNING by default, DEBUG with --verbose, ERROR with --quiet.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    package_logger = logging.getLogger("mirrorfs")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
        )
    package_logger.propagate = False


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Print the mirrorfs version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log debug details to stderr.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
) -> None:
    """mirrorfs - virtual file namespace mirrored onto a real directory.

    Folders and files live in a logical tree that is saved as a JSON
    snapshot and kept in sync with a directory under the storage root.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    configure_logging(verbose, quiet)


# Command groups, in the order they appear in --help
app.add_typer(shell.app, name="shell")
app.add_typer(fs.app, name="fs")
app.add_typer(history.app, name="history")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
