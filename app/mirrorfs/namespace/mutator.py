"""Structural and content operations on the namespace.

Every operation resolves its paths, validates all preconditions and only
then touches the disk and the tree, always in the same order: physical
step first, logical step second. A failed physical step therefore leaves
the logical tree untouched, and any tree/mirror mismatch left by an
interrupted run is repaired by the reconcile pass on the next load.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from mirrorfs.namespace.errors import (
    InvalidDestinationError,
    InvalidNameError,
    InvalidOperationOnRootError,
    IOFailureError,
)
from mirrorfs.namespace.history import AccessAction, AccessHistory
from mirrorfs.namespace.mirror import PhysicalMirror
from mirrorfs.namespace.models import Entity, EntityKind, EntityTree, utc_now
from mirrorfs.namespace.resolver import PathResolver

logger = logging.getLogger(__name__)

# Editor collaborator: takes the current content, returns the new content.
EditFunction = Callable[[str], str]


class TreeMutator:
    """Create/delete/rename/move/copy plus file content operations.

    The mutator also tracks the current folder that relative paths are
    resolved against.

    Attributes:
        tree: Namespace being mutated.
        mirror: Physical mirror kept in sync with the tree.
        resolver: Path resolver over the same tree.
    """

    def __init__(
        self,
        tree: EntityTree,
        mirror: PhysicalMirror,
        history: AccessHistory | None = None,
    ) -> None:
        """Initialize the mutator.

        Args:
            tree: Namespace to operate on.
            mirror: Physical mirror of the tree.
            history: Access logger for file reads/edits. None disables logging.
        """
        self.tree = tree
        self.mirror = mirror
        self.resolver = PathResolver(tree)
        self._history = history
        self._current_id = tree.root_id

    # === Navigation ===

    @property
    def current_folder(self) -> Entity:
        """Folder relative paths start from (falls back to the root if detached)."""
        if not self.tree.is_attached(self._current_id):
            self._current_id = self.tree.root_id
        return self.tree.get(self._current_id)

    def resolve(self, path: str) -> Entity:
        """Resolve a path relative to the current folder."""
        return self.resolver.resolve(path, self.current_folder.id)

    def change_directory(self, path: str) -> Entity:
        """Make the folder at path the current folder.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If it resolves to a file.
        """
        folder = self.resolver.resolve_folder(path, self.current_folder.id)
        self._current_id = folder.id
        return folder

    def working_directory(self) -> str:
        return self.tree.logical_path(self.current_folder.id)

    # === Create ===

    def create_folder(self, path: str) -> Entity:
        """Create an empty folder at path.

        Raises:
            NotFoundError: If the parent does not exist.
            NotAFolderError: If the parent is a file.
            InvalidNameError: If the final segment is not a valid name.
            DuplicateNameError: If the parent already has a child of that name, or
                an untracked entry occupies the target in storage.
            IOFailureError: If the directory cannot be created.
        """
        return self._create(path, EntityKind.FOLDER, "")

    def create_file(self, path: str, content: str = "") -> Entity:
        """Create a file at path with the given content (default empty).

        Raises:
            NotFoundError: If the parent does not exist.
            NotAFolderError: If the parent is a file.
            InvalidNameError: If the final segment is not a valid name.
            DuplicateNameError: If the parent already has a child of that name, or
                an untracked entry occupies the target in storage.
            IOFailureError: If the file cannot be written.
        """
        entity = self._create(path, EntityKind.FILE, content)
        self._log_access(entity, AccessAction.CREATE)
        return entity

    def _create(self, path: str, kind: EntityKind, content: str) -> Entity:
        parent, name = self.resolver.resolve_parent_and_name(path, self.current_folder.id)
        if not name:
            raise InvalidNameError("Name cannot be empty", path)
        self.tree.check_name_available(parent.id, name)

        target = self.mirror.path_for(self.tree, parent.id) / name
        self.mirror.require_vacant(target)
        if kind == EntityKind.FOLDER:
            self.mirror.create_folder(target)
        else:
            self.mirror.write_file(target, content)

        entity = self.tree.new_entity(kind, name)
        self.tree.add_child(parent.id, entity.id)
        logger.info("Created %s %s", kind.value, self.tree.logical_path(entity.id))
        return entity

    # === Delete ===

    def delete(self, path: str) -> None:
        """Delete the entity at path and its whole physical backing.

        Raises:
            NotFoundError: If the path does not resolve.
            InvalidOperationOnRootError: If the path is the root.
            IOFailureError: If the physical backing cannot be removed.
        """
        entity = self.resolve(path)
        parent_id = self._require_parent(entity, "delete", path)

        logical = self.tree.logical_path(entity.id)
        self.mirror.remove(self.mirror.path_for(self.tree, entity.id), entity.kind)

        self.tree.remove_child(parent_id, entity.id)
        self.tree.discard(entity.id)
        logger.info("Deleted %s", logical)

    # === Rename ===

    def rename(self, path: str, new_name: str) -> Entity:
        """Rename the entity at path, keeping its identity.

        Descendants follow automatically: their physical paths are derived
        from ancestor names and move with the renamed directory.

        Raises:
            NotFoundError: If the path does not resolve.
            InvalidOperationOnRootError: If the path is the root.
            InvalidNameError: If new_name is invalid.
            DuplicateNameError: If a sibling already uses new_name, or an
                untracked entry occupies the new name in storage.
            IOFailureError: If the physical backing cannot be moved.
        """
        entity = self.resolve(path)
        parent_id = self._require_parent(entity, "rename", path)
        self.tree.check_name_available(parent_id, new_name, exclude_id=entity.id)

        old_logical = self.tree.logical_path(entity.id)
        old_physical = self.mirror.path_for(self.tree, entity.id)
        new_physical = old_physical.with_name(new_name)
        if new_physical != old_physical:
            self.mirror.require_vacant(new_physical, source=old_physical)
            self.mirror.move(old_physical, new_physical)

        self.tree.rename(entity.id, new_name)
        logger.info("Renamed %s to %s", old_logical, self.tree.logical_path(entity.id))
        return entity

    # === Move ===

    def move(self, source_path: str, destination_path: str) -> Entity:
        """Move the entity at source_path into the folder at destination_path.

        Raises:
            NotFoundError: If either path does not resolve.
            InvalidOperationOnRootError: If the source is the root.
            NotAFolderError: If the destination is a file.
            DuplicateNameError: If the destination already has a child of that
                name, or an untracked entry occupies the target in storage.
            InvalidDestinationError: If the destination is inside the source.
            IOFailureError: If the physical backing cannot be moved.
        """
        entity = self.resolve(source_path)
        parent_id = self._require_parent(entity, "move", source_path)
        destination = self.resolver.resolve_folder(destination_path, self.current_folder.id)
        self._check_destination(entity, destination, destination_path)

        old_logical = self.tree.logical_path(entity.id)
        source_physical = self.mirror.path_for(self.tree, entity.id)
        target_physical = self.mirror.path_for(self.tree, destination.id) / entity.name
        self.mirror.require_vacant(target_physical)
        self.mirror.move(source_physical, target_physical)

        self.tree.remove_child(parent_id, entity.id)
        self.tree.add_child(destination.id, entity.id)
        logger.info("Moved %s to %s", old_logical, self.tree.logical_path(entity.id))
        return entity

    # === Copy ===

    def copy(self, source_path: str, destination_path: str) -> Entity:
        """Copy the subtree at source_path into the folder at destination_path.

        The copy gets fresh identities and timestamps and its own physical
        bytes; it shares nothing with the source.

        Raises:
            NotFoundError: If either path does not resolve.
            NotAFolderError: If the destination is a file.
            DuplicateNameError: If the destination already has a child of that
                name, or an untracked entry occupies the target in storage.
            InvalidDestinationError: If the destination is inside the source.
            IOFailureError: If a physical copy fails. The partially built copy
                is neither attached nor left on disk.
        """
        source = self.resolve(source_path)
        destination = self.resolver.resolve_folder(destination_path, self.current_folder.id)
        self._check_destination(source, destination, destination_path)

        target_physical = self.mirror.path_for(self.tree, destination.id) / source.name
        self.mirror.require_vacant(target_physical)
        try:
            duplicate = self._copy_subtree(source, target_physical)
        except IOFailureError:
            logger.error("Copy of %s aborted", self.tree.logical_path(source.id))
            try:
                self.mirror.remove(target_physical, source.kind)
            except IOFailureError as cleanup_error:
                logger.warning("Could not remove partial copy: %s", cleanup_error)
            raise

        self.tree.add_child(destination.id, duplicate.id)
        logger.info(
            "Copied %s to %s",
            self.tree.logical_path(source.id),
            self.tree.logical_path(duplicate.id),
        )
        return duplicate

    def _copy_subtree(self, source: Entity, target: Path) -> Entity:
        """Build a detached copy of source with target as its mirror path."""
        top = self._copy_entity(source, target)
        pending = [(source, top, target)] if source.is_folder else []
        try:
            while pending:
                original, duplicate, directory = pending.pop()
                # The copy never lands inside the source, so this list is stable.
                for child in self.tree.children_of(original.id):
                    child_target = directory / child.name
                    child_copy = self._copy_entity(child, child_target)
                    self.tree.add_child(duplicate.id, child_copy.id)
                    if child.is_folder:
                        pending.append((child, child_copy, child_target))
        except IOFailureError:
            self.tree.discard(top.id)
            raise
        return top

    def _copy_entity(self, source: Entity, target: Path) -> Entity:
        if source.is_file:
            self.mirror.copy_file(self.mirror.path_for(self.tree, source.id), target)
        else:
            self.mirror.create_folder(target)
        return self.tree.new_entity(source.kind, source.name)

    # === File content ===

    def read_file(self, path: str) -> str:
        """Return a file's content, bumping its access time.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If the path is a folder.
            IOFailureError: If the physical file cannot be read.
        """
        entity = self.resolver.resolve_file(path, self.current_folder.id)
        content = self.mirror.read_file(self.mirror.path_for(self.tree, entity.id))
        entity.touch_accessed()
        self._log_access(entity, AccessAction.READ)
        return content

    def write_file(self, path: str, content: str) -> Entity:
        """Replace a file's content, bumping its modification time.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If the path is a folder.
            IOFailureError: If the physical file cannot be written.
        """
        entity = self.resolver.resolve_file(path, self.current_folder.id)
        self.mirror.write_file(self.mirror.path_for(self.tree, entity.id), content)
        entity.touch_modified()
        self._log_access(entity, AccessAction.EDIT)
        logger.info("Updated content of %s", self.tree.logical_path(entity.id))
        return entity

    def edit_file(self, path: str, editor: EditFunction) -> bool:
        """Run the editor on a file's content and store the result.

        Args:
            path: File to edit.
            editor: Collaborator mapping the current content to the new content.

        Returns:
            True if the content changed and was written.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If the path is a folder.
            IOFailureError: If the physical file cannot be read or written.
        """
        entity = self.resolver.resolve_file(path, self.current_folder.id)
        physical = self.mirror.path_for(self.tree, entity.id)
        current = self.mirror.read_file(physical)
        updated = editor(current)
        entity.touch_accessed()
        if updated == current:
            self._log_access(entity, AccessAction.READ)
            return False

        self.mirror.write_file(physical, updated)
        entity.touch_modified()
        self._log_access(entity, AccessAction.EDIT)
        logger.info("Updated content of %s", self.tree.logical_path(entity.id))
        return True

    # === Queries ===

    def list_folder(self, path: str | None = None) -> list[Entity]:
        """List a folder's children sorted by name, bumping its access time.

        Args:
            path: Folder to list. Defaults to the current folder.

        Raises:
            NotFoundError: If the path does not resolve.
            NotAFolderError: If the path is a file.
        """
        if path:
            folder = self.resolver.resolve_folder(path, self.current_folder.id)
        else:
            folder = self.current_folder
        folder.touch_accessed()
        return self.tree.children_of(folder.id)

    def search(self, term: str) -> list[Entity]:
        """Find every entity below the root whose name contains term.

        Matching is a case-sensitive substring test. Results are in
        pre-order (parents before children, siblings by name).
        """
        return [
            entity
            for entity in self.tree.walk(self.tree.root_id)
            if entity.id != self.tree.root_id and term in entity.name
        ]

    def size(self, path: str | None = None) -> int:
        """Size in bytes of the entity at path (current folder by default)."""
        entity = self.resolve(path) if path else self.current_folder
        return self.mirror.size(self.tree, entity.id)

    # === Helpers ===

    def _require_parent(self, entity: Entity, operation: str, path: str) -> int:
        """Return the parent id, rejecting the root."""
        if entity.id == self.tree.root_id or entity.parent_id is None:
            raise InvalidOperationOnRootError(f"Cannot {operation} the root folder", path)
        return entity.parent_id

    def _check_destination(self, source: Entity, destination: Entity, path: str) -> None:
        if self.tree.is_ancestor(source.id, destination.id):
            raise InvalidDestinationError(
                f"Cannot place '{source.name}' inside itself", path
            )
        self.tree.check_name_available(destination.id, source.name)

    def _log_access(self, entity: Entity, action: AccessAction) -> None:
        if self._history is not None:
            self._history.log_access(self.tree.logical_path(entity.id), utc_now(), action)
