"""Physical mirror of the namespace on disk.

Every folder is a directory and every file a regular file under the
storage root. The physical path of an entity is always derived from its
ancestors' names by ``path_for``; no operation caches physical paths.
"""

import logging
import shutil
from pathlib import Path

from mirrorfs.namespace.errors import DuplicateNameError, IOFailureError
from mirrorfs.namespace.models import EntityKind, EntityTree, name_key

logger = logging.getLogger(__name__)


class PhysicalMirror:
    """Drives the on-disk counterpart of an EntityTree.

    All OSErrors are converted to IOFailureError, with the original error
    chained, so callers only deal with the namespace error taxonomy.

    Attributes:
        storage_root: Directory that holds the root folder's directory.
    """

    def __init__(self, storage_root: Path) -> None:
        self.storage_root = storage_root

    def path_for(self, tree: EntityTree, entity_id: int) -> Path:
        """Derive the physical path of an entity from its ancestors' names.

        Args:
            tree: Tree that owns the entity.
            entity_id: Entity to locate.

        Returns:
            storage_root joined with every name from the root down to the entity.
        """
        return self.storage_root.joinpath(*tree.segments(entity_id))

    def relative_path(self, tree: EntityTree, entity_id: int) -> str:
        """Physical path relative to the storage root, in POSIX form."""
        return "/".join(tree.segments(entity_id))

    def resolve_relative(self, relative: str) -> Path:
        return self.storage_root.joinpath(*relative.split("/"))

    def ensure_storage_root(self) -> None:
        """Create the storage root directory if needed.

        Raises:
            IOFailureError: If the directory cannot be created.
        """
        self.create_folder(self.storage_root)

    def require_vacant(self, path: Path, source: Path | None = None) -> None:
        """Make sure nothing on disk occupies path.

        Args:
            path: Physical target of a create, rename, move or copy.
            source: Entry being renamed; a case-only rename onto itself is allowed.

        Raises:
            DuplicateNameError: If a file, directory or symlink already sits at path.
        """
        if not (path.exists() or path.is_symlink()):
            return
        if source is not None and (source == path or _same_entry(source, path)):
            return
        raise DuplicateNameError("Untracked entry already exists in storage", str(path))

    def create_folder(self, path: Path) -> None:
        """Create a directory (and missing parents)."""
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Cannot create directory: {e}", str(path)) from e
        logger.debug("Created directory %s", path)

    def write_file(self, path: Path, content: str) -> None:
        """Write text content, replacing any existing file."""
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise IOFailureError(f"Cannot write file: {e}", str(path)) from e
        logger.debug("Wrote %d characters to %s", len(content), path)

    def read_file(self, path: Path) -> str:
        """Read text content.

        A missing file reads as empty; the next load's reconcile pass
        recreates it.
        """
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Physical file missing, reading as empty: %s", path)
            return ""
        except OSError as e:
            raise IOFailureError(f"Cannot read file: {e}", str(path)) from e

    def remove(self, path: Path, kind: EntityKind) -> None:
        """Remove a physical backing, recursively for folders.

        Already-missing paths are not an error.
        """
        try:
            if kind == EntityKind.FOLDER:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
        except OSError as e:
            raise IOFailureError(f"Cannot remove: {e}", str(path)) from e
        logger.debug("Removed %s", path)

    def move(self, source: Path, destination: Path) -> None:
        """Move (or rename) a physical backing.

        A missing source is tolerated with a warning, matching the logical
        tree being authoritative.
        """
        if not source.exists():
            logger.warning("Physical source missing, nothing to move: %s", source)
            return
        try:
            if _same_entry(source, destination):
                # Case-only rename on a case-insensitive filesystem.
                interim = source.with_name(source.name + ".mirrorfs-rename")
                source.rename(interim)
                interim.rename(destination)
            else:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(destination))
        except OSError as e:
            raise IOFailureError(f"Cannot move to {destination}: {e}", str(source)) from e
        logger.debug("Moved %s -> %s", source, destination)

    def copy_file(self, source: Path, destination: Path) -> None:
        """Duplicate a file's bytes; a missing source yields an empty copy."""
        try:
            if source.exists():
                shutil.copyfile(source, destination)
            else:
                logger.warning("Physical source missing, copying as empty: %s", source)
                destination.write_bytes(b"")
        except OSError as e:
            raise IOFailureError(f"Cannot copy to {destination}: {e}", str(source)) from e

    def size(self, tree: EntityTree, entity_id: int) -> int:
        """Size in bytes: file length (0 if absent) or the total of a folder's files."""
        total = 0
        for entity in tree.walk(entity_id):
            if entity.kind != EntityKind.FILE:
                continue
            try:
                total += self.path_for(tree, entity.id).stat().st_size
            except OSError:
                continue
        return total

    def untracked(self, tree: EntityTree, folder_id: int) -> list[Path]:
        """Physical entries inside a folder's directory with no logical child.

        Returns:
            Sorted list of paths; empty if the directory is missing or unreadable.
        """
        directory = self.path_for(tree, folder_id)
        folder = tree.get(folder_id)
        try:
            entries = list(directory.iterdir())
        except OSError:
            return []
        return sorted(p for p in entries if name_key(p.name) not in folder.children)


def _same_entry(source: Path, destination: Path) -> bool:
    """True if both paths name the same directory entry (case-only difference)."""
    if source == destination or not destination.exists():
        return False
    try:
        return source.samefile(destination)
    except OSError:
        return False
