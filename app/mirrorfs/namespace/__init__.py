"""Virtual namespace: entity tree, path resolution, physical mirror and persistence.

The Workspace lives in mirrorfs.namespace.workspace and is not re-exported
here, since it depends on mirrorfs.core.config.
"""

from mirrorfs.namespace.codec import (
    PersistenceCodec,
    ReconcileReport,
    Snapshot,
    SnapshotError,
    load_snapshot,
    save_snapshot,
)
from mirrorfs.namespace.errors import (
    DuplicateNameError,
    ErrorKind,
    InvalidDestinationError,
    InvalidNameError,
    InvalidOperationOnRootError,
    IOFailureError,
    NamespaceError,
    NotAFolderError,
    NotFoundError,
)
from mirrorfs.namespace.history import AccessAction, AccessEntry, AccessHistory
from mirrorfs.namespace.mirror import PhysicalMirror
from mirrorfs.namespace.models import Entity, EntityKind, EntityTree
from mirrorfs.namespace.mutator import TreeMutator
from mirrorfs.namespace.resolver import PathResolver

__all__ = [
    "AccessAction",
    "AccessEntry",
    "AccessHistory",
    "DuplicateNameError",
    "Entity",
    "EntityKind",
    "EntityTree",
    "ErrorKind",
    "IOFailureError",
    "InvalidDestinationError",
    "InvalidNameError",
    "InvalidOperationOnRootError",
    "NamespaceError",
    "NotAFolderError",
    "NotFoundError",
    "PathResolver",
    "PersistenceCodec",
    "PhysicalMirror",
    "ReconcileReport",
    "Snapshot",
    "SnapshotError",
    "TreeMutator",
    "load_snapshot",
    "save_snapshot",
]
