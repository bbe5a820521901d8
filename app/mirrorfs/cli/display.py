"""Shared Rich display functions for namespace listings.

Provides the table and tree builders used by both the one-shot ``fs``
commands and the interactive shell.
"""

from datetime import datetime

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from mirrorfs.namespace.codec import ReconcileReport, RepairAction
from mirrorfs.namespace.history import AccessEntry
from mirrorfs.namespace.models import Entity, EntityTree
from mirrorfs.utils.formatting import console, format_size, print_warning

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in local time for display."""
    return value.astimezone().strftime(TIMESTAMP_FORMAT)


def format_entity_name(entity: Entity) -> str:
    """Entity name with kind styling (folders get a trailing slash)."""
    if entity.is_folder:
        return f"[folder]{escape(entity.name)}/[/folder]"
    return f"[file]{escape(entity.name)}[/file]"


def print_listing(entities: list[Entity]) -> None:
    """Print folder children one per line, the short ``ls`` form."""
    if not entities:
        console.print("[muted](empty)[/muted]")
        return
    for entity in entities:
        console.print(format_entity_name(entity), highlight=False)


def create_listing_table(entities: list[Entity], sizes: dict[int, int], title: str) -> Table:
    """Create the long ``ls -l`` table.

    Args:
        entities: Children to display, already sorted.
        sizes: Byte size per entity id.
        title: Table title (usually the folder's logical path).

    Returns:
        Rich Table with kind, name, size and the three timestamps.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Kind", width=6)
    table.add_column("Name", no_wrap=True)
    table.add_column("Size", style="info", justify="right")
    table.add_column("Created", style="muted")
    table.add_column("Modified", style="muted")
    table.add_column("Accessed", style="muted")

    for entity in entities:
        table.add_row(
            entity.kind.value,
            format_entity_name(entity),
            format_size(sizes.get(entity.id, 0)),
            format_timestamp(entity.created_at),
            format_timestamp(entity.modified_at),
            format_timestamp(entity.accessed_at),
        )
    return table


def create_search_table(
    tree: EntityTree, matches: list[Entity], term: str, sizes: dict[int, int]
) -> Table:
    """Create a table of search results with full logical paths, sizes and creation times."""
    table = Table(
        title=f"Matches for '{escape(term)}'",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Kind", width=6)
    table.add_column("Path", no_wrap=True)
    table.add_column("Size", style="info", justify="right")
    table.add_column("Created", style="muted")

    for entity in matches:
        path = escape(tree.logical_path(entity.id))
        style = "folder" if entity.is_folder else "file"
        table.add_row(
            entity.kind.value,
            f"[{style}]{path}[/{style}]",
            format_size(sizes.get(entity.id, 0)),
            format_timestamp(entity.created_at),
        )
    return table


def build_tree(tree: EntityTree, entity_id: int | None = None) -> Tree:
    """Build a Rich tree view of a subtree (the root by default)."""
    start = tree.get(tree.root_id if entity_id is None else entity_id)
    if not start.is_folder:
        return Tree(format_entity_name(start))
    view = Tree(f"[folder]{escape(tree.logical_path(start.id))}[/folder]")
    _add_branches(tree, start, view)
    return view


def _add_branches(tree: EntityTree, folder: Entity, branch: Tree) -> None:
    for child in tree.children_of(folder.id):
        node = branch.add(format_entity_name(child))
        if child.is_folder:
            _add_branches(tree, child, node)


def create_history_table(entries: list[AccessEntry]) -> Table:
    """Create the access history table."""
    table = Table(
        title="File Access History",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Timestamp", style="info")
    table.add_column("Action", style="success")
    table.add_column("Path", style="text")

    for entry in entries:
        timestamp = entry.timestamp[:19].replace("T", " ")
        table.add_row(timestamp, entry.action.value, escape(entry.path))
    return table


def print_reconcile_report(report: ReconcileReport) -> None:
    """Warn about repairs and untracked entries found while loading."""
    for record in report.records:
        if record.action == RepairAction.UNTRACKED:
            print_warning(f"Untracked entry in storage: {escape(record.path)}")
        elif record.action == RepairAction.FAILED:
            print_warning(f"Could not repair {escape(record.path)}: {escape(record.detail or '')}")
        else:
            print_warning(f"Repaired {escape(record.path)} ({record.action.value})")
