"""Workspace: the explicit context value for one namespace session.

A Workspace is built once at startup from Settings, owns the tree, its
physical mirror and the mutator, and is persisted only at the lifecycle
boundaries: ``open`` loads and reconciles, ``close`` saves.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType

from mirrorfs.core.config import Settings
from mirrorfs.namespace.codec import (
    PersistenceCodec,
    ReconcileReport,
    SnapshotError,
    load_snapshot,
    save_snapshot,
)
from mirrorfs.namespace.errors import IOFailureError
from mirrorfs.namespace.history import AccessHistory
from mirrorfs.namespace.mirror import PhysicalMirror
from mirrorfs.namespace.models import EntityTree
from mirrorfs.namespace.mutator import TreeMutator

logger = logging.getLogger(__name__)


class Workspace:
    """Loaded namespace plus everything needed to operate on it.

    Attributes:
        settings: Settings the workspace was opened with.
        mirror: Physical mirror under the storage root.
        codec: Snapshot codec bound to the mirror.
        history: Access history logger.
        tree: The live entity tree.
        mutator: Operations over the tree.
        report: Reconcile report from loading.
    """

    def __init__(
        self,
        settings: Settings,
        tree: EntityTree,
        mirror: PhysicalMirror,
        history: AccessHistory,
        report: ReconcileReport | None = None,
    ) -> None:
        self.settings = settings
        self.mirror = mirror
        self.codec = PersistenceCodec(mirror)
        self.history = history
        self.tree = tree
        self.mutator = TreeMutator(tree, mirror, history)
        self.report = report or ReconcileReport()

    @property
    def snapshot_path(self) -> Path:
        return self.settings.effective_snapshot_path

    @classmethod
    def open(cls, settings: Settings | None = None) -> Workspace:
        """Load the namespace described by settings.

        Without a snapshot a fresh tree holding only the root is built and
        the root directory is created immediately. With a snapshot the tree
        is rebuilt and the physical mirror reconciled against it.

        Args:
            settings: Workspace settings. Defaults to Settings().

        Returns:
            Ready-to-use Workspace.

        Raises:
            SnapshotError: If an existing snapshot cannot be read or is invalid.
            IOFailureError: If the storage root or root directory cannot be created.
        """
        settings = settings or Settings()
        mirror = PhysicalMirror(settings.effective_storage_root)
        mirror.ensure_storage_root()
        codec = PersistenceCodec(mirror)
        history = AccessHistory(
            settings.effective_history_path,
            enabled=settings.history_enabled,
        )

        snapshot = load_snapshot(settings.effective_snapshot_path)
        if snapshot is None:
            logger.info("No snapshot at %s, starting fresh", settings.effective_snapshot_path)
            tree = codec.new_tree(settings.root_name)
            return cls(settings, tree, mirror, history)

        decoded = codec.deserialize(snapshot)
        report = codec.reconcile(decoded.tree, decoded.stored_paths)
        logger.info(
            "Loaded %d entities from %s", len(decoded.tree), settings.effective_snapshot_path
        )
        return cls(settings, decoded.tree, mirror, history, report)

    def save(self) -> Path:
        """Write the current tree to the snapshot file.

        Raises:
            SnapshotError: If the snapshot cannot be written.
        """
        return save_snapshot(self.codec.serialize(self.tree), self.snapshot_path)

    def close(self) -> Path:
        """Persist the namespace at shutdown."""
        path = self.save()
        logger.info("Saved %d entities to %s", len(self.tree), path)
        return path

    def __enter__(self) -> Workspace:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
            return
        # Operations leave the tree consistent even when they fail part way.
        try:
            self.close()
        except SnapshotError:
            logger.exception("Could not save snapshot after %s", exc_type.__name__)


def require_workspace(settings: Settings | None = None) -> Workspace:
    """Open the workspace or exit with a helpful error message.

    Repairs and untracked entries found while loading are reported as
    warnings.

    Raises:
        typer.Exit: If the snapshot is unreadable or the storage root unusable.
    """
    import typer
    from rich.markup import escape

    from mirrorfs.cli.display import print_reconcile_report
    from mirrorfs.core.config import require_settings
    from mirrorfs.utils.formatting import print_error

    settings = settings or require_settings()
    try:
        workspace = Workspace.open(settings)
    except SnapshotError as e:
        print_error(f"Failed to load snapshot: {escape(str(e))}")
        raise typer.Exit(code=1) from e
    except IOFailureError as e:
        print_error(f"Storage root is not usable: {escape(str(e))}")
        raise typer.Exit(code=1) from e

    print_reconcile_report(workspace.report)
    return workspace
