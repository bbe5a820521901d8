"""Path resolution over an EntityTree.

Paths are ``/``-separated. A leading ``/`` starts at the root, anything
else at the caller's current folder. ``.`` stays put, ``..`` climbs to the
parent and empty segments are ignored. Resolution is read-only: it never
bumps timestamps.
"""

from mirrorfs.namespace.errors import NotAFolderError, NotFoundError
from mirrorfs.namespace.models import SEPARATOR, Entity, EntityTree


class PathResolver:
    """Resolves path strings to live entities of one tree."""

    def __init__(self, tree: EntityTree) -> None:
        self._tree = tree

    def resolve(self, path: str, current_id: int | None = None) -> Entity:
        """Resolve a path to an entity.

        Args:
            path: Absolute or relative path string.
            current_id: Folder relative paths start from. Defaults to the root.

        Returns:
            The entity the path names.

        Raises:
            NotFoundError: If a segment is missing, ``..`` is applied at the
                root, or a file is descended through.
        """
        tree = self._tree
        if path.startswith(SEPARATOR):
            current = tree.root
            remainder = path[len(SEPARATOR) :]
        else:
            current = tree.get(tree.root_id if current_id is None else current_id)
            remainder = path

        for segment in remainder.split(SEPARATOR):
            if not segment:
                continue
            if current.is_file:
                raise NotFoundError("Cannot descend through a file", path)
            if segment == ".":
                continue
            if segment == "..":
                if current.parent_id is None:
                    raise NotFoundError("Already at the root", path)
                current = tree.get(current.parent_id)
                continue
            child = tree.get_child(current.id, segment)
            if child is None:
                raise NotFoundError("No such file or folder", path)
            current = child

        return current

    def resolve_folder(self, path: str, current_id: int | None = None) -> Entity:
        """Resolve a path that must name a folder.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If it resolves to a file.
        """
        entity = self.resolve(path, current_id)
        if not entity.is_folder:
            raise NotAFolderError("Path is a file, not a folder", path)
        return entity

    def resolve_file(self, path: str, current_id: int | None = None) -> Entity:
        """Resolve a path that must name a file.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If it resolves to a folder (kind mismatch).
        """
        entity = self.resolve(path, current_id)
        if not entity.is_file:
            raise NotAFolderError("Path is a folder, not a file", path)
        return entity

    def resolve_parent_and_name(
        self, path: str, current_id: int | None = None
    ) -> tuple[Entity, str]:
        """Split off the final segment and resolve the rest as its folder.

        ``"a/b/c"`` resolves ``"a/b"`` and returns it with ``"c"``; ``"c"``
        uses the current folder and ``"/c"`` the root. Trailing separators
        are ignored. The returned name is not validated.

        Returns:
            Tuple of (parent folder, final segment).

        Raises:
            NotFoundError: If the parent does not resolve.
            NotAFolderError: If the parent is a file.
        """
        trimmed = path.rstrip(SEPARATOR)
        if not trimmed:
            # "" or "/": no final segment to split off.
            parent = self.resolve_folder(path or ".", current_id)
            return parent, ""

        head, sep, name = trimmed.rpartition(SEPARATOR)
        if not sep:
            parent_path = "."
        elif not head:
            parent_path = SEPARATOR
        else:
            parent_path = head
        return self.resolve_folder(parent_path, current_id), name
