"""One-shot namespace commands.

Each command opens the workspace, runs a single operation and saves the
snapshot again. Paths are resolved from the root folder.
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Annotated, Any

import typer
from rich.markup import escape

from mirrorfs.cli.display import (
    build_tree,
    create_listing_table,
    create_search_table,
    print_listing,
)
from mirrorfs.editor import edit_text, view_text
from mirrorfs.namespace.codec import SnapshotError
from mirrorfs.namespace.errors import NamespaceError
from mirrorfs.namespace.models import Entity
from mirrorfs.namespace.workspace import Workspace, require_workspace
from mirrorfs.utils.formatting import console, format_size, print_error, print_info, print_success

app = typer.Typer(
    help="Run single namespace operations.",
    invoke_without_command=True,
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format options for listings."""

    TABLE = "table"
    JSON = "json"


FormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format.",
        case_sensitive=False,
    ),
]


@contextmanager
def open_session() -> Iterator[Workspace]:
    """Open the workspace, save it afterwards and turn namespace errors into exit code 1."""
    workspace = require_workspace()
    try:
        with workspace:
            yield workspace
    except NamespaceError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e
    except SnapshotError as e:
        print_error(f"Failed to save snapshot: {escape(str(e))}")
        raise typer.Exit(code=1) from e


@app.command()
def mkdir(
    path: Annotated[str, typer.Argument(help="Folder to create.")],
) -> None:
    """Create an empty folder."""
    with open_session() as ws:
        folder = ws.mutator.create_folder(path)
        print_success(f"Folder '{escape(folder.name)}' created.")


@app.command()
def touch(
    path: Annotated[str, typer.Argument(help="File to create.")],
    content: Annotated[str, typer.Argument(help="Initial content.")] = "",
) -> None:
    """Create a file with optional content."""
    with open_session() as ws:
        file = ws.mutator.create_file(path, content)
        print_success(f"File '{escape(file.name)}' created.")


@app.command()
def rm(
    path: Annotated[str, typer.Argument(help="File or folder to delete.")],
) -> None:
    """Delete a file or a folder with everything below it."""
    with open_session() as ws:
        name = ws.mutator.resolve(path).name
        ws.mutator.delete(path)
        print_success(f"'{escape(name)}' deleted.")


@app.command()
def rename(
    path: Annotated[str, typer.Argument(help="File or folder to rename.")],
    new_name: Annotated[str, typer.Argument(help="New name.")],
) -> None:
    """Rename a file or folder in place."""
    with open_session() as ws:
        old_name = ws.mutator.resolve(path).name
        entity = ws.mutator.rename(path, new_name)
        print_success(f"'{escape(old_name)}' renamed to '{escape(entity.name)}'.")


@app.command()
def mv(
    source: Annotated[str, typer.Argument(help="File or folder to move.")],
    destination: Annotated[str, typer.Argument(help="Destination folder.")],
) -> None:
    """Move a file or folder into another folder."""
    with open_session() as ws:
        entity = ws.mutator.move(source, destination)
        print_success(
            f"'{escape(entity.name)}' moved to {escape(ws.tree.logical_path(entity.id))}."
        )


@app.command()
def cp(
    source: Annotated[str, typer.Argument(help="File or folder to copy.")],
    destination: Annotated[str, typer.Argument(help="Destination folder.")],
) -> None:
    """Copy a file or folder (recursively) into another folder."""
    with open_session() as ws:
        entity = ws.mutator.copy(source, destination)
        print_success(
            f"'{escape(entity.name)}' copied to {escape(ws.tree.logical_path(entity.id))}."
        )


@app.command()
def ls(
    path: Annotated[str | None, typer.Argument(help="Folder to list (default: root).")] = None,
    long: Annotated[
        bool,
        typer.Option("--long", "-l", help="Show sizes and timestamps."),
    ] = False,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """List the contents of a folder."""
    with open_session() as ws:
        entities = ws.mutator.list_folder(path)
        if output_format == OutputFormat.JSON:
            _print_json([_entity_to_dict(ws, e) for e in entities])
            return
        if long:
            title = ws.tree.logical_path(ws.mutator.resolve(path).id) if path else "/"
            sizes = {e.id: ws.mirror.size(ws.tree, e.id) for e in entities}
            console.print(create_listing_table(entities, sizes, escape(title)))
        else:
            print_listing(entities)


@app.command()
def cat(
    path: Annotated[str, typer.Argument(help="File to show.")],
) -> None:
    """Show the content of a file with line numbers."""
    with open_session() as ws:
        view_text(ws.mutator.read_file(path))


@app.command()
def edit(
    path: Annotated[str, typer.Argument(help="File to edit.")],
) -> None:
    """Edit a file with the line editor (SAVE, QUIT, INSERT n text, DELETE n)."""
    with open_session() as ws:
        if ws.mutator.edit_file(path, edit_text):
            print_success("File updated.")
        else:
            print_info("No changes.")


@app.command()
def search(
    term: Annotated[str, typer.Argument(help="Case-sensitive name fragment.")],
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """Find files and folders whose name contains a term."""
    with open_session() as ws:
        matches = ws.mutator.search(term)
        if output_format == OutputFormat.JSON:
            _print_json([_entity_to_dict(ws, e) for e in matches])
            return
        if not matches:
            print_info("No matching files found.")
            return
        sizes = {e.id: ws.mirror.size(ws.tree, e.id) for e in matches}
        console.print(create_search_table(ws.tree, matches, term, sizes))


@app.command()
def tree(
    path: Annotated[str | None, typer.Argument(help="Subtree to show (default: root).")] = None,
) -> None:
    """Show the namespace as a tree."""
    with open_session() as ws:
        start = ws.mutator.resolve(path) if path else ws.tree.root
        console.print(build_tree(ws.tree, start.id))


@app.command()
def du(
    path: Annotated[str | None, typer.Argument(help="Entity to measure (default: root).")] = None,
) -> None:
    """Show the total size of a file or folder."""
    with open_session() as ws:
        entity = ws.mutator.resolve(path) if path else ws.tree.root
        size = ws.mutator.size(path)
        console.print(
            f"{escape(ws.tree.logical_path(entity.id))}\t{format_size(size)}", highlight=False
        )


def _entity_to_dict(ws: Workspace, entity: Entity) -> dict[str, Any]:
    """Convert an entity to a JSON-serializable dictionary."""
    return {
        "kind": entity.kind.value,
        "name": entity.name,
        "path": ws.tree.logical_path(entity.id),
        "size": ws.mirror.size(ws.tree, entity.id),
        "created_at": entity.created_at.isoformat(),
        "modified_at": entity.modified_at.isoformat(),
        "accessed_at": entity.accessed_at.isoformat(),
    }


def _print_json(data: list[dict[str, Any]]) -> None:
    typer.echo(json.dumps(data, indent=2))
