"""Unit tests for TreeMutator.

Tests structural operations (create, delete, rename, move, copy), the
file content operations and the agreement between the logical tree and
the physical mirror after each of them.
"""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from mirrorfs.namespace.errors import (
    DuplicateNameError,
    InvalidDestinationError,
    InvalidNameError,
    InvalidOperationOnRootError,
    IOFailureError,
    NotAFolderError,
    NotFoundError,
)
from mirrorfs.namespace.history import AccessAction, AccessHistory
from mirrorfs.namespace.models import EntityTree
from mirrorfs.namespace.mutator import TreeMutator

OLD = datetime(2020, 1, 1, tzinfo=UTC)


def _physical(mutator: TreeMutator, path: str) -> Path:
    return mutator.mirror.path_for(mutator.tree, mutator.resolve(path).id)


def _assert_mirrored(mutator: TreeMutator) -> None:
    """Every entity has its physical counterpart of the right kind."""
    for entity in mutator.tree.walk():
        physical = mutator.mirror.path_for(mutator.tree, entity.id)
        if entity.is_folder:
            assert physical.is_dir(), physical
        else:
            assert physical.is_file(), physical


class TestCreate:
    """Tests for create_folder and create_file."""

    def test_create_folder(self, mutator: TreeMutator, storage_root: Path) -> None:
        folder = mutator.create_folder("docs")

        assert folder.is_folder
        assert mutator.tree.logical_path(folder.id) == "/docs"
        assert (storage_root / "root" / "docs").is_dir()

    def test_create_file_with_content(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_folder("/docs")
        file = mutator.create_file("/docs/notes", "hello")

        assert file.is_file
        assert (storage_root / "root" / "docs" / "notes").read_text() == "hello"

    def test_create_file_has_no_extension(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_file("todo")
        assert [p.name for p in (storage_root / "root").iterdir()] == ["todo"]

    def test_create_relative_to_current_folder(self, mutator: TreeMutator) -> None:
        mutator.create_folder("docs")
        mutator.change_directory("docs")

        file = mutator.create_file("notes")

        assert mutator.tree.logical_path(file.id) == "/docs/notes"

    def test_duplicate_name_case_insensitive(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        """Creating 'notes' next to 'Notes' fails and changes nothing."""
        mutator.create_file("Notes", "first")
        before = len(mutator.tree)

        with pytest.raises(DuplicateNameError):
            mutator.create_file("notes", "second")

        assert len(mutator.tree) == before
        assert (storage_root / "root" / "Notes").read_text() == "first"

    def test_folder_and_file_share_namespace(self, mutator: TreeMutator) -> None:
        mutator.create_folder("data")
        with pytest.raises(DuplicateNameError):
            mutator.create_file("DATA")

    @pytest.mark.parametrize("path", ["", "/", "..", "docs/.", "  "])
    def test_invalid_names(self, mutator: TreeMutator, path: str) -> None:
        mutator.create_folder("docs")
        with pytest.raises(InvalidNameError):
            mutator.create_folder(path)

    def test_missing_parent(self, mutator: TreeMutator) -> None:
        with pytest.raises(NotFoundError):
            mutator.create_folder("/missing/child")

    def test_parent_is_file(self, mutator: TreeMutator) -> None:
        mutator.create_file("readme")
        with pytest.raises(NotAFolderError):
            mutator.create_file("readme/inner")

    def test_create_bumps_parent_modified(self, mutator: TreeMutator) -> None:
        docs = mutator.create_folder("docs")
        docs.modified_at = OLD

        mutator.create_file("docs/notes")

        assert docs.modified_at > OLD

    def test_create_file_logs_access(
        self, mutator: TreeMutator, history: AccessHistory
    ) -> None:
        mutator.create_file("notes")

        entries = history.get_history()
        assert [(e.path, e.action) for e in entries] == [("/notes", AccessAction.CREATE)]

    def test_io_failure_leaves_tree_unchanged(self, mutator: TreeMutator) -> None:
        """A failed physical step never reaches the logical tree."""
        before = len(mutator.tree)
        with (
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(IOFailureError) as exc_info,
        ):
            mutator.create_folder("docs")

        assert len(mutator.tree) == before
        assert mutator.tree.get_child(mutator.tree.root_id, "docs") is None
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_io_failure_on_file_write(self, mutator: TreeMutator) -> None:
        with (
            patch.object(Path, "write_text", side_effect=OSError("disk full")),
            pytest.raises(IOFailureError),
        ):
            mutator.create_file("notes", "x")

        assert mutator.tree.get_child(mutator.tree.root_id, "notes") is None


class TestDelete:
    """Tests for delete."""

    def test_delete_file(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_file("notes", "x")

        mutator.delete("notes")

        assert mutator.tree.get_child(mutator.tree.root_id, "notes") is None
        assert not (storage_root / "root" / "notes").exists()

    def test_delete_folder_recursively(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_folder("docs")
        mutator.create_folder("docs/sub")
        mutator.create_file("docs/sub/deep", "x")
        before = len(mutator.tree)

        mutator.delete("/docs")

        assert len(mutator.tree) == before - 3
        assert not (storage_root / "root" / "docs").exists()

    def test_delete_root_is_rejected(self, mutator: TreeMutator, storage_root: Path) -> None:
        for path in ["/", ".", ""]:
            with pytest.raises(InvalidOperationOnRootError):
                mutator.delete(path)
        assert (storage_root / "root").is_dir()

    def test_delete_missing(self, mutator: TreeMutator) -> None:
        with pytest.raises(NotFoundError):
            mutator.delete("nope")

    def test_delete_current_folder_falls_back_to_root(self, mutator: TreeMutator) -> None:
        mutator.create_folder("docs")
        mutator.change_directory("docs")

        mutator.delete("/docs")

        assert mutator.working_directory() == "/"

    def test_delete_tolerates_missing_physical(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_file("notes")
        (storage_root / "root" / "notes").unlink()

        mutator.delete("notes")

        assert mutator.tree.get_child(mutator.tree.root_id, "notes") is None


class TestRename:
    """Tests for rename."""

    def test_rename_keeps_identity_and_created(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        folder = mutator.create_folder("docs")
        mutator.create_file("docs/notes", "hello")
        created = folder.created_at

        renamed = mutator.rename("docs", "documents")

        assert renamed is folder
        assert renamed.created_at == created
        assert (storage_root / "root" / "documents" / "notes").read_text() == "hello"
        assert not (storage_root / "root" / "docs").exists()
        assert mutator.read_file("/documents/notes") == "hello"

    def test_rename_case_only(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_file("notes", "x")

        mutator.rename("notes", "Notes")

        assert [p.name for p in (storage_root / "root").iterdir()] == ["Notes"]
        assert mutator.resolve("NOTES").name == "Notes"

    def test_rename_to_existing_sibling(self, mutator: TreeMutator) -> None:
        mutator.create_file("a")
        mutator.create_file("b")
        with pytest.raises(DuplicateNameError):
            mutator.rename("b", "A")

    def test_rename_invalid_name(self, mutator: TreeMutator) -> None:
        mutator.create_file("a")
        with pytest.raises(InvalidNameError):
            mutator.rename("a", "x/y")

    def test_rename_root_is_rejected(self, mutator: TreeMutator) -> None:
        with pytest.raises(InvalidOperationOnRootError):
            mutator.rename("/", "other")

    def test_rename_io_failure_keeps_name(self, mutator: TreeMutator) -> None:
        file = mutator.create_file("a")
        with (
            patch("mirrorfs.namespace.mirror.shutil.move", side_effect=OSError("busy")),
            pytest.raises(IOFailureError),
        ):
            mutator.rename("a", "b")
        assert file.name == "a"


class TestMove:
    """Tests for move."""

    def test_move_file(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_folder("a")
        mutator.create_folder("b")
        file = mutator.create_file("a/notes", "hi")

        moved = mutator.move("/a/notes", "/b")

        assert moved is file
        assert mutator.tree.logical_path(file.id) == "/b/notes"
        assert (storage_root / "root" / "b" / "notes").read_text() == "hi"
        assert not (storage_root / "root" / "a" / "notes").exists()

    def test_move_folder_carries_descendants(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_folder("a")
        mutator.create_folder("a/inner")
        mutator.create_file("a/inner/deep", "d")
        mutator.create_folder("b")

        mutator.move("a", "b")

        assert mutator.read_file("/b/a/inner/deep") == "d"
        _assert_mirrored(mutator)

    def test_move_updates_both_parents(self, mutator: TreeMutator) -> None:
        a = mutator.create_folder("a")
        b = mutator.create_folder("b")
        mutator.create_file("a/f")
        a.modified_at = OLD
        b.modified_at = OLD

        mutator.move("a/f", "b")

        assert a.modified_at > OLD
        assert b.modified_at > OLD
        assert a.children == {}

    def test_move_into_own_subtree(self, mutator: TreeMutator) -> None:
        mutator.create_folder("a")
        mutator.create_folder("a/b")

        with pytest.raises(InvalidDestinationError):
            mutator.move("a", "a/b")
        with pytest.raises(InvalidDestinationError):
            mutator.move("a", "a")

    def test_move_root_is_rejected(self, mutator: TreeMutator) -> None:
        mutator.create_folder("a")
        with pytest.raises(InvalidOperationOnRootError):
            mutator.move("/", "a")

    def test_move_to_file_destination(self, mutator: TreeMutator) -> None:
        mutator.create_file("a")
        mutator.create_file("b")
        with pytest.raises(NotAFolderError):
            mutator.move("a", "b")

    def test_move_name_clash(self, mutator: TreeMutator) -> None:
        mutator.create_folder("dest")
        mutator.create_file("dest/Notes")
        mutator.create_file("notes")

        with pytest.raises(DuplicateNameError):
            mutator.move("notes", "dest")
        assert mutator.resolve("/notes").is_file


class TestCopy:
    """Tests for copy."""

    def test_copy_file_is_independent(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_folder("dest")
        source = mutator.create_file("notes", "original")
        source.created_at = OLD
        source.modified_at = OLD
        source.accessed_at = OLD

        copy = mutator.copy("notes", "dest")

        assert copy.id != source.id
        assert copy.created_at > OLD
        assert copy.modified_at > OLD
        assert (storage_root / "root" / "dest" / "notes").read_text() == "original"

        mutator.write_file("/dest/notes", "changed")
        assert mutator.read_file("/notes") == "original"

    def test_copy_folder_recursively(self, mutator: TreeMutator) -> None:
        mutator.create_folder("src")
        mutator.create_folder("src/sub")
        mutator.create_file("src/sub/f", "data")
        mutator.create_file("src/g", "more")
        mutator.create_folder("dst")

        copy = mutator.copy("src", "dst")

        assert mutator.tree.count(copy.id) == 4
        assert mutator.read_file("/dst/src/sub/f") == "data"
        assert mutator.read_file("/dst/src/g") == "more"
        source_ids = {e.id for e in mutator.tree.walk(mutator.resolve("/src").id)}
        copy_ids = {e.id for e in mutator.tree.walk(copy.id)}
        assert source_ids.isdisjoint(copy_ids)
        _assert_mirrored(mutator)

    def test_copy_into_own_subtree(self, mutator: TreeMutator) -> None:
        mutator.create_folder("a")
        mutator.create_folder("a/b")
        with pytest.raises(InvalidDestinationError):
            mutator.copy("a", "a/b")

    def test_copy_root_is_rejected(self, mutator: TreeMutator) -> None:
        mutator.create_folder("a")
        with pytest.raises(InvalidDestinationError):
            mutator.copy("/", "a")

    def test_copy_name_clash(self, mutator: TreeMutator) -> None:
        mutator.create_file("notes")
        with pytest.raises(DuplicateNameError):
            mutator.copy("notes", "/")

    def test_copy_io_failure_attaches_nothing(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_folder("src")
        mutator.create_file("src/f", "data")
        dst = mutator.create_folder("dst")
        before = len(mutator.tree)

        with (
            patch("mirrorfs.namespace.mirror.shutil.copyfile", side_effect=OSError("full")),
            pytest.raises(IOFailureError),
        ):
            mutator.copy("src", "dst")

        assert dst.children == {}
        assert len(mutator.tree) == before
        assert not (storage_root / "root" / "dst" / "src").exists()
        assert mutator.mirror.untracked(mutator.tree, dst.id) == []

    def test_failed_cleanup_keeps_copy_error(self, mutator: TreeMutator) -> None:
        mutator.create_folder("src")
        mutator.create_file("src/f", "data")
        mutator.create_folder("dst")

        with (
            patch("mirrorfs.namespace.mirror.shutil.copyfile", side_effect=OSError("full")),
            patch.object(
                mutator.mirror, "remove", side_effect=IOFailureError("Cannot remove", "x")
            ),
            pytest.raises(IOFailureError, match="full"),
        ):
            mutator.copy("src", "dst")

    def test_copy_retry_after_failure(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_folder("src")
        mutator.create_file("src/f", "data")
        mutator.create_folder("dst")
        with (
            patch("mirrorfs.namespace.mirror.shutil.copyfile", side_effect=OSError("full")),
            pytest.raises(IOFailureError),
        ):
            mutator.copy("src", "dst")

        mutator.copy("src", "dst")

        assert (storage_root / "root" / "dst" / "src" / "f").read_text() == "data"


class TestUntrackedCollisions:
    """Operations must not write onto physical entries the tree does not know."""

    def test_create_folder_over_untracked_directory(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        stray = storage_root / "root" / "docs"
        stray.mkdir()
        (stray / "keep").write_text("untracked data")

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.create_folder("docs")

        assert mutator.tree.get_child(mutator.tree.root_id, "docs") is None
        assert (stray / "keep").read_text() == "untracked data"

    def test_create_file_over_untracked_file(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        stray = storage_root / "root" / "notes"
        stray.write_text("untracked data")

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.create_file("notes", "mine")

        assert mutator.tree.get_child(mutator.tree.root_id, "notes") is None
        assert stray.read_text() == "untracked data"

    def test_rename_onto_untracked_directory(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_folder("a")
        mutator.create_file("a/notes", "hello")
        (storage_root / "root" / "b").mkdir()

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.rename("/a", "b")

        assert mutator.read_file("/a/notes") == "hello"
        assert not (storage_root / "root" / "b" / "a").exists()
        assert list((storage_root / "root" / "b").iterdir()) == []
        _assert_mirrored(mutator)

    def test_move_onto_untracked_file(self, mutator: TreeMutator, storage_root: Path) -> None:
        mutator.create_file("x", "mine")
        mutator.create_folder("d")
        stray = storage_root / "root" / "d" / "x"
        stray.write_text("untracked data")

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.move("x", "d")

        assert stray.read_text() == "untracked data"
        assert mutator.read_file("/x") == "mine"
        _assert_mirrored(mutator)

    def test_move_onto_untracked_directory(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_folder("a")
        mutator.create_file("a/notes", "hello")
        mutator.create_folder("d")
        (storage_root / "root" / "d" / "a").mkdir()

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.move("a", "d")

        assert not (storage_root / "root" / "d" / "a" / "a").exists()
        assert mutator.read_file("/a/notes") == "hello"

    def test_copy_onto_untracked_directory(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_folder("src")
        mutator.create_file("src/f", "data")
        dst = mutator.create_folder("dst")
        stray = storage_root / "root" / "dst" / "src"
        stray.mkdir()
        (stray / "keep").write_text("untracked data")

        with pytest.raises(DuplicateNameError, match="Untracked entry"):
            mutator.copy("src", "dst")

        assert dst.children == {}
        assert sorted(p.name for p in stray.iterdir()) == ["keep"]


class TestContent:
    """Tests for read_file, write_file and edit_file."""

    def test_read_bumps_accessed_only(self, mutator: TreeMutator) -> None:
        file = mutator.create_file("notes", "hello")
        file.accessed_at = OLD
        file.modified_at = OLD

        assert mutator.read_file("notes") == "hello"
        assert file.accessed_at > OLD
        assert file.modified_at == OLD

    def test_read_folder_is_kind_mismatch(self, mutator: TreeMutator) -> None:
        mutator.create_folder("docs")
        with pytest.raises(NotAFolderError):
            mutator.read_file("docs")

    def test_read_missing_physical_is_empty(
        self, mutator: TreeMutator, storage_root: Path
    ) -> None:
        mutator.create_file("notes", "x")
        (storage_root / "root" / "notes").unlink()
        assert mutator.read_file("notes") == ""

    def test_write_bumps_modified(self, mutator: TreeMutator) -> None:
        file = mutator.create_file("notes", "a")
        file.modified_at = OLD

        mutator.write_file("notes", "b")

        assert file.modified_at > OLD
        assert mutator.read_file("notes") == "b"

    def test_edit_with_change(self, mutator: TreeMutator, history: AccessHistory) -> None:
        mutator.create_file("notes", "one")

        changed = mutator.edit_file("notes", lambda text: text + "\ntwo")

        assert changed is True
        assert mutator.read_file("notes") == "one\ntwo"
        assert AccessAction.EDIT in [e.action for e in history.get_history()]

    def test_edit_without_change(self, mutator: TreeMutator) -> None:
        file = mutator.create_file("notes", "same")
        file.modified_at = OLD

        changed = mutator.edit_file("notes", lambda text: text)

        assert changed is False
        assert file.modified_at == OLD
        assert file.accessed_at > OLD

    def test_history_records_reads(self, mutator: TreeMutator, history: AccessHistory) -> None:
        mutator.create_folder("docs")
        mutator.create_file("docs/notes", "x")
        mutator.read_file("/docs/notes")

        newest = history.get_history(limit=1)[0]
        assert newest.path == "/docs/notes"
        assert newest.action == AccessAction.READ

    def test_no_history_collaborator(self, tree: EntityTree, mutator: TreeMutator) -> None:
        quiet = TreeMutator(tree, mutator.mirror)
        quiet.create_file("notes", "x")
        assert quiet.read_file("notes") == "x"


class TestQueries:
    """Tests for navigation, listing, search and size."""

    def test_change_directory(self, mutator: TreeMutator) -> None:
        mutator.create_folder("docs")
        mutator.create_folder("docs/sub")

        mutator.change_directory("docs/sub")
        assert mutator.working_directory() == "/docs/sub"

        mutator.change_directory("..")
        assert mutator.working_directory() == "/docs"

    def test_change_directory_to_file(self, mutator: TreeMutator) -> None:
        mutator.create_file("notes")
        with pytest.raises(NotAFolderError):
            mutator.change_directory("notes")
        assert mutator.working_directory() == "/"

    def test_change_directory_above_root(self, mutator: TreeMutator) -> None:
        with pytest.raises(NotFoundError):
            mutator.change_directory("..")

    def test_list_folder_sorted(self, mutator: TreeMutator) -> None:
        mutator.create_file("b")
        mutator.create_folder("A")
        mutator.create_file("c")

        names = [e.name for e in mutator.list_folder()]

        assert names == ["A", "b", "c"]

    def test_list_folder_bumps_accessed(self, mutator: TreeMutator) -> None:
        docs = mutator.create_folder("docs")
        docs.accessed_at = OLD

        assert mutator.list_folder("docs") == []
        assert docs.accessed_at > OLD

    def test_search_is_case_sensitive_pre_order(self, mutator: TreeMutator) -> None:
        mutator.create_folder("notes")
        mutator.create_file("notes/old-notes")
        mutator.create_file("Notes2")
        mutator.create_file("zz-notes")

        paths = [mutator.tree.logical_path(e.id) for e in mutator.search("notes")]

        assert paths == ["/notes", "/notes/old-notes", "/zz-notes"]

    def test_search_excludes_root(self, mutator: TreeMutator) -> None:
        assert mutator.search("root") == []

    def test_size(self, mutator: TreeMutator) -> None:
        mutator.create_folder("docs")
        mutator.create_file("docs/a", "12345")
        mutator.create_file("docs/b", "123")

        assert mutator.size("docs/a") == 5
        assert mutator.size("docs") == 8
        assert mutator.size() == 8


class TestScenario:
    """End-to-end sequence over one workspace."""

    def test_create_rename_read(self, mutator: TreeMutator, storage_root: Path) -> None:
        docs = mutator.create_folder("/docs")
        mutator.create_file("/docs/notes", "hello")
        created = docs.created_at

        mutator.rename("/docs", "documents")

        assert mutator.read_file("/documents/notes") == "hello"
        assert mutator.resolve("/documents").created_at == created
        with pytest.raises(NotFoundError):
            mutator.resolve("/docs")
        assert (storage_root / "root" / "documents" / "notes").is_file()
        _assert_mirrored(mutator)
