"""Interactive namespace shell.

Provides `mirrorfs shell`, a read-eval-print loop over the namespace with
a current folder, `cd`/`pwd` navigation and the line editor. The snapshot
is saved when the shell ends, whether through `exit`, end of input or
Ctrl-C.
"""

import shlex
from collections.abc import Callable

import typer
from rich.markup import escape
from rich.table import Table

from mirrorfs.cli.display import (
    create_history_table,
    create_listing_table,
    create_search_table,
    print_listing,
)
from mirrorfs.editor import ReadLine, edit_text, view_text
from mirrorfs.namespace.errors import NamespaceError
from mirrorfs.namespace.workspace import Workspace, require_workspace
from mirrorfs.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    name="shell",
    help="Start an interactive namespace shell.",
    invoke_without_command=True,
)

Handler = Callable[[list[str]], None]

COMMANDS: list[tuple[str, str]] = [
    ("mkdir <folder_name>", "Create a new folder."),
    ("touch <file_name> [content]", "Create a new file with optional content."),
    ("rm <path>", "Delete a file or folder."),
    ("mv <source_path> <destination_path>", "Move a file or folder."),
    ("cp <source_path> <destination_path>", "Copy a file or folder."),
    ("rename <path> <new_name>", "Rename a file or folder."),
    ("cd <path>", "Change directory. Use '..' for parent, '.' for current."),
    ("ls [-l] [path]", "List contents of current or specified folder."),
    ("cat <file_path>", "View content of a file."),
    ("nano <file_path>", "Edit content of a file (interactive editor)."),
    ("search <term>", "Search files and folders by name."),
    ("history", "View file access history."),
    ("pwd", "Print working directory."),
    ("help", "Display this help message."),
    ("exit", "Save and exit."),
]


class Shell:
    """Command dispatcher bound to one open workspace.

    Attributes:
        workspace: Workspace the commands operate on.
    """

    def __init__(self, workspace: Workspace, read_line: ReadLine | None = None) -> None:
        """Initialize the shell.

        Args:
            workspace: Open workspace.
            read_line: Prompt function returning one line of input.
                Defaults to the console's input().
        """
        self.workspace = workspace
        self._read_line = read_line or console.input
        self._handlers: dict[str, Handler] = {
            "help": self._help,
            "pwd": self._pwd,
            "mkdir": self._mkdir,
            "touch": self._touch,
            "rm": self._rm,
            "rename": self._rename,
            "mv": self._mv,
            "cp": self._cp,
            "cd": self._cd,
            "ls": self._ls,
            "cat": self._cat,
            "nano": self._nano,
            "search": self._search,
            "history": self._history,
        }

    @property
    def prompt(self) -> str:
        return f"\n[folder]{escape(self.workspace.mutator.working_directory())}[/folder]> "

    def run(self) -> None:
        """Read and execute commands until exit, end of input or Ctrl-C."""
        console.print("[header]mirrorfs shell[/header] [muted](type 'help' for commands)[/muted]")
        self._pwd([])
        while True:
            try:
                line = self._read_line(self.prompt)
            except (EOFError, KeyboardInterrupt):
                console.print()
                break
            if not self.execute(line):
                break
        console.print("[muted]File system shut down.[/muted]")

    def execute(self, line: str) -> bool:
        """Execute one command line.

        Args:
            line: Raw input, tokenized shell-style (quotes group words).

        Returns:
            False if the shell should stop, True otherwise.
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            print_error(f"Could not parse command: {escape(str(e))}")
            return True
        if not parts:
            return True

        name, args = parts[0].lower(), parts[1:]
        if name == "exit":
            return False

        handler = self._handlers.get(name)
        if handler is None:
            print_error(f"Unknown command '{escape(name)}'. Type 'help' for available commands.")
            return True

        try:
            handler(args)
        except NamespaceError as e:
            print_error(escape(str(e)))
        return True

    # === Handlers ===

    def _help(self, args: list[str]) -> None:
        table = Table(
            title="Available Commands",
            show_header=True,
            header_style="bold_header",
            border_style="border",
        )
        table.add_column("Command", style="success", no_wrap=True)
        table.add_column("Description")
        for usage, description in COMMANDS:
            table.add_row(escape(usage), description)
        console.print(table)

    def _pwd(self, args: list[str]) -> None:
        console.print(
            f"Current directory: {escape(self.workspace.mutator.working_directory())}",
            highlight=False,
        )

    def _mkdir(self, args: list[str]) -> None:
        if not args:
            _usage("mkdir <folder_name>")
            return
        folder = self.workspace.mutator.create_folder(args[0])
        print_success(f"Folder '{escape(folder.name)}' created.")

    def _touch(self, args: list[str]) -> None:
        if not args:
            _usage("touch <file_name> [content]")
            return
        file = self.workspace.mutator.create_file(args[0], " ".join(args[1:]))
        print_success(f"File '{escape(file.name)}' created.")

    def _rm(self, args: list[str]) -> None:
        if not args:
            _usage("rm <path>")
            return
        name = self.workspace.mutator.resolve(args[0]).name
        self.workspace.mutator.delete(args[0])
        print_success(f"'{escape(name)}' deleted.")

    def _rename(self, args: list[str]) -> None:
        if len(args) != 2:
            _usage("rename <path> <new_name>")
            return
        old_name = self.workspace.mutator.resolve(args[0]).name
        entity = self.workspace.mutator.rename(args[0], args[1])
        print_success(f"'{escape(old_name)}' renamed to '{escape(entity.name)}'.")

    def _mv(self, args: list[str]) -> None:
        if len(args) != 2:
            _usage("mv <source_path> <destination_path>")
            return
        entity = self.workspace.mutator.move(args[0], args[1])
        target = self.workspace.tree.logical_path(entity.id)
        print_success(f"'{escape(entity.name)}' moved to {escape(target)}.")

    def _cp(self, args: list[str]) -> None:
        if len(args) != 2:
            _usage("cp <source_path> <destination_path>")
            return
        entity = self.workspace.mutator.copy(args[0], args[1])
        target = self.workspace.tree.logical_path(entity.id)
        print_success(f"'{escape(entity.name)}' copied to {escape(target)}.")

    def _cd(self, args: list[str]) -> None:
        if not args:
            _usage("cd <path>")
            return
        self.workspace.mutator.change_directory(args[0])
        self._pwd([])

    def _ls(self, args: list[str]) -> None:
        long = "-l" in args
        paths = [a for a in args if a != "-l"]
        path = paths[0] if paths else None
        mutator = self.workspace.mutator
        entities = mutator.list_folder(path)
        if not long:
            print_listing(entities)
            return
        if path:
            title = self.workspace.tree.logical_path(mutator.resolve(path).id)
        else:
            title = mutator.working_directory()
        sizes = {e.id: self.workspace.mirror.size(self.workspace.tree, e.id) for e in entities}
        console.print(create_listing_table(entities, sizes, escape(title)))

    def _cat(self, args: list[str]) -> None:
        if not args:
            _usage("cat <file_path>")
            return
        view_text(self.workspace.mutator.read_file(args[0]))

    def _nano(self, args: list[str]) -> None:
        if not args:
            _usage("nano <file_path>")
            return
        changed = self.workspace.mutator.edit_file(
            args[0], lambda content: edit_text(content, self._read_line)
        )
        if changed:
            print_success("File updated.")
        else:
            print_info("No changes.")

    def _search(self, args: list[str]) -> None:
        if not args:
            _usage("search <term>")
            return
        term = args[0]
        matches = self.workspace.mutator.search(term)
        if not matches:
            print_info("No matching files found.")
            return
        tree = self.workspace.tree
        sizes = {e.id: self.workspace.mirror.size(tree, e.id) for e in matches}
        console.print(create_search_table(tree, matches, term, sizes))

    def _history(self, args: list[str]) -> None:
        entries = self.workspace.history.get_history()
        if not entries:
            print_info("No access history found.")
            return
        console.print(create_history_table(entries))


def _usage(usage: str) -> None:
    console.print(f"[warning]Usage:[/] {escape(usage)}", highlight=False)


@app.callback(invoke_without_command=True)
def shell(ctx: typer.Context) -> None:
    """Start an interactive shell over the namespace.

    Type 'help' inside the shell for the list of commands.
    """
    if ctx.invoked_subcommand is not None:
        return

    with require_workspace() as workspace:
        Shell(workspace).run()
