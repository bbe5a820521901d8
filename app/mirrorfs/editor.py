"""Line-oriented text editor used by ``nano`` and ``fs edit``.

Commands typed at the prompt:

- ``SAVE``: keep the edited lines and leave.
- ``QUIT``: discard every change and leave.
- ``INSERT <n> <text>``: insert text as line n (1 to line count + 1).
- ``DELETE <n>``: remove line n.
- anything else is appended as a new last line.

Commands are case-insensitive. Lines are joined with ``\\n``.
"""

from collections.abc import Callable

from rich.console import Console
from rich.text import Text

from mirrorfs.utils.formatting import console as default_console

ReadLine = Callable[[str], str]

INSERT_USAGE = "Invalid INSERT command. Usage: INSERT <line_number> <content>"
DELETE_USAGE = "Invalid DELETE command. Usage: DELETE <line_number>"


def split_lines(content: str) -> list[str]:
    """Split content into editor lines (empty content has no lines)."""
    if not content:
        return []
    return content.split("\n")


def display_lines(lines: list[str], console: Console | None = None) -> None:
    """Print lines prefixed with their 1-based line number."""
    out = console or default_console
    for number, line in enumerate(lines, start=1):
        out.print(Text.assemble((f"{number}: ", "muted"), line), highlight=False)


def view_text(content: str, console: Console | None = None) -> None:
    """Show file content with line numbers between a header and a footer."""
    out = console or default_console
    out.print("[header]--- Viewing File Content ---[/]")
    display_lines(split_lines(content), out)
    out.print("[header]----------------------------[/]")


def edit_text(
    content: str,
    read_line: ReadLine | None = None,
    console: Console | None = None,
) -> str:
    """Run an interactive editing session over content.

    End of input behaves like QUIT.

    Args:
        content: Initial content.
        read_line: Prompt function returning one line of input.
            Defaults to the console's input().
        console: Console for feedback output.

    Returns:
        The edited content on SAVE, the unchanged content on QUIT.
    """
    out = console or default_console
    prompt = read_line or out.input
    lines = split_lines(content)

    out.print(
        "[header]--- Text Editor (SAVE to save and exit, QUIT to exit without saving) ---[/]"
    )
    display_lines(lines, out)

    while True:
        try:
            entry = prompt(f"{len(lines) + 1}> ")
        except EOFError:
            out.print("[warning]Discard changes[/]")
            return content

        command, _, rest = entry.partition(" ")
        keyword = command.upper()

        if keyword == "SAVE" and not rest:
            out.print("[success]Changes saved[/]")
            return "\n".join(lines)
        if keyword == "QUIT" and not rest:
            out.print("[warning]Discard changes[/]")
            return content

        if keyword == "INSERT" and rest:
            _insert(lines, rest, out)
        elif keyword == "DELETE" and rest:
            _delete(lines, rest, out)
        else:
            lines.append(entry)
        display_lines(lines, out)


def _insert(lines: list[str], arguments: str, out: Console) -> None:
    number_text, separator, text = arguments.partition(" ")
    number = _parse_line_number(number_text)
    if not separator or number is None:
        out.print(f"[error]{INSERT_USAGE}[/]", highlight=False)
        return
    if not 1 <= number <= len(lines) + 1:
        out.print("[error]Invalid line number for insert.[/]")
        return
    lines.insert(number - 1, text)
    out.print(f"[info]Line inserted at {number}.[/]")


def _delete(lines: list[str], arguments: str, out: Console) -> None:
    number = _parse_line_number(arguments)
    if number is None:
        out.print(f"[error]{DELETE_USAGE}[/]", highlight=False)
        return
    if not 1 <= number <= len(lines):
        out.print("[error]Invalid line number for delete.[/]")
        return
    del lines[number - 1]
    out.print(f"[info]Line {number} deleted.[/]")


def _parse_line_number(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None
