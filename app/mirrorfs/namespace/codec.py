"""Snapshot serialization of the namespace and mirror reconciliation.

The snapshot is forward-only JSON: each folder record lists its children,
and no record carries a parent reference. Loading rebuilds the entities
first and assigns parent links in a second structural pass, then repairs
the physical mirror so it matches the logical tree.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from mirrorfs.namespace.errors import DuplicateNameError, InvalidNameError, IOFailureError
from mirrorfs.namespace.mirror import PhysicalMirror
from mirrorfs.namespace.models import Entity, EntityKind, EntityTree, utc_now, validate_name

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


class EntityRecord(BaseModel):
    """Serialized form of one entity.

    Attributes:
        kind: Folder or file.
        name: Entity name.
        created_at: Creation timestamp.
        modified_at: Last modification timestamp.
        accessed_at: Last access timestamp.
        path: Mirror path relative to the storage root at save time (files only).
        children: Child records (folders only).
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    kind: EntityKind
    name: str
    created_at: Annotated[datetime, Field(alias="createdAt")]
    modified_at: Annotated[datetime, Field(alias="modifiedAt")]
    accessed_at: Annotated[datetime, Field(alias="accessedAt")]
    path: str | None = None
    children: list[EntityRecord] | None = None

    @field_validator("name")
    @classmethod
    def validate_entity_name(cls, v: str) -> str:
        try:
            validate_name(v)
        except InvalidNameError as e:
            raise ValueError(f"{e.message}: {v!r}") from None
        return v

    @model_validator(mode="after")
    def validate_kind_fields(self) -> EntityRecord:
        """Only folders have children and only files have a mirror path."""
        if self.kind == EntityKind.FOLDER:
            if self.path is not None:
                msg = f"Folder '{self.name}' cannot carry a file path"
                raise ValueError(msg)
            if self.children is None:
                self.children = []
        elif self.children is not None:
            msg = f"File '{self.name}' cannot have children"
            raise ValueError(msg)
        return self


class Snapshot(BaseModel):
    """Durable snapshot of a whole namespace.

    Attributes:
        version: Snapshot format version.
        saved_at: When the snapshot was taken.
        root: Record of the root folder.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    version: Annotated[str, Field(description="Snapshot format version")] = SNAPSHOT_VERSION
    saved_at: Annotated[datetime, Field(alias="savedAt", default_factory=utc_now)]
    root: EntityRecord

    @model_validator(mode="after")
    def validate_root(self) -> Snapshot:
        if self.root.kind != EntityKind.FOLDER:
            msg = "Snapshot root must be a folder"
            raise ValueError(msg)
        return self


class SnapshotError(Exception):
    """Base exception for snapshot I/O errors."""


class SnapshotParseError(SnapshotError):
    """Raised when the snapshot file is not valid JSON."""


class SnapshotValidationError(SnapshotError):
    """Raised when the snapshot content doesn't match the schema."""


@dataclass(slots=True)
class DecodedTree:
    """Result of decoding a snapshot.

    Attributes:
        tree: Rebuilt tree with parent links assigned.
        stored_paths: Entity id to mirror path recorded at save time (files).
        dropped: Logical paths of records skipped as duplicate siblings.
    """

    tree: EntityTree
    stored_paths: dict[int, str] = field(default_factory=dict)
    dropped: list[str] = field(default_factory=list)


class RepairAction(str, Enum):
    """What the reconcile pass did (or failed to do) for one node.

    Attributes:
        CREATED_FOLDER: Missing directory was created.
        MOVED_FILE: File found at its stored path was moved to its derived path.
        RECREATED_FILE: Missing file was recreated empty.
        UNTRACKED: Physical entry has no logical counterpart (left in place).
        FAILED: Repair was attempted and failed.
    """

    CREATED_FOLDER = "created_folder"
    MOVED_FILE = "moved_file"
    RECREATED_FILE = "recreated_file"
    UNTRACKED = "untracked"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RepairRecord:
    """Outcome of reconciling one node.

    Attributes:
        path: Logical path (or physical path for untracked entries).
        action: Repair performed.
        detail: Extra information, e.g. the error message for failures.
    """

    path: str
    action: RepairAction
    detail: str | None = None


@dataclass(slots=True)
class ReconcileReport:
    """Per-node results of a reconcile pass."""

    records: list[RepairRecord] = field(default_factory=list)

    def add(self, path: str, action: RepairAction, detail: str | None = None) -> None:
        self.records.append(RepairRecord(path=path, action=action, detail=detail))

    @property
    def failures(self) -> list[RepairRecord]:
        return [r for r in self.records if r.action == RepairAction.FAILED]

    @property
    def repairs(self) -> list[RepairRecord]:
        return [
            r
            for r in self.records
            if r.action not in (RepairAction.FAILED, RepairAction.UNTRACKED)
        ]

    @property
    def untracked(self) -> list[RepairRecord]:
        return [r for r in self.records if r.action == RepairAction.UNTRACKED]

    @property
    def is_clean(self) -> bool:
        return not self.records


class PersistenceCodec:
    """Converts between an EntityTree and its Snapshot, and repairs the mirror."""

    def __init__(self, mirror: PhysicalMirror) -> None:
        self._mirror = mirror

    # === Serialization ===

    def serialize(self, tree: EntityTree) -> Snapshot:
        """Take a snapshot of the whole tree.

        Children are emitted in name order; parent links are never emitted.
        """
        # Reversed pre-order visits every child before its parent.
        records: dict[int, EntityRecord] = {}
        for entity in reversed(list(tree.walk(tree.root_id))):
            records[entity.id] = self._encode(tree, entity, records)
        return Snapshot(root=records[tree.root_id])

    def _encode(
        self, tree: EntityTree, entity: Entity, records: dict[int, EntityRecord]
    ) -> EntityRecord:
        if entity.is_folder:
            return EntityRecord(
                kind=entity.kind,
                name=entity.name,
                created_at=entity.created_at,
                modified_at=entity.modified_at,
                accessed_at=entity.accessed_at,
                children=[records.pop(child.id) for child in tree.children_of(entity.id)],
            )
        return EntityRecord(
            kind=entity.kind,
            name=entity.name,
            created_at=entity.created_at,
            modified_at=entity.modified_at,
            accessed_at=entity.accessed_at,
            path=self._mirror.relative_path(tree, entity.id),
        )

    # === Deserialization ===

    def deserialize(self, snapshot: Snapshot) -> DecodedTree:
        """Rebuild a tree from a snapshot.

        Pass one creates every entity without links and remembers the
        record structure; pass two walks that structure and assigns parent
        links. Duplicate sibling names (case-insensitive) keep the first
        record and drop the later one with its subtree.
        """
        root_record = snapshot.root
        tree = EntityTree(root_record.name)
        _apply_timestamps(tree.root, root_record)
        decoded = DecodedTree(tree=tree)

        # Pass one: entities and the forward-only structure.
        structure: dict[int, list[int]] = {}
        pending: list[tuple[int, EntityRecord]] = [(tree.root_id, root_record)]
        while pending:
            folder_id, record = pending.pop()
            child_ids: list[int] = []
            for child_record in record.children or []:
                child = tree.adopt(
                    Entity(id=-1, kind=child_record.kind, name=child_record.name)
                )
                _apply_timestamps(child, child_record)
                if child_record.path is not None:
                    decoded.stored_paths[child.id] = child_record.path
                child_ids.append(child.id)
                if child_record.kind == EntityKind.FOLDER:
                    pending.append((child.id, child_record))
            structure[folder_id] = child_ids

        # Pass two: parent links.
        self._link(decoded, structure, tree.root_id)
        return decoded

    def _link(
        self, decoded: DecodedTree, structure: dict[int, list[int]], folder_id: int
    ) -> None:
        tree = decoded.tree
        pending = [folder_id]
        while pending:
            parent_id = pending.pop()
            for child_id in structure.get(parent_id, []):
                try:
                    tree.add_child(parent_id, child_id, touch=False)
                except DuplicateNameError:
                    name = tree.get(child_id).name
                    dropped = tree.logical_path(parent_id).rstrip("/") + "/" + name
                    logger.warning("Dropping duplicate snapshot entry %s", dropped)
                    decoded.dropped.append(dropped)
                    self._drop(decoded, structure, child_id)
                    continue
                pending.append(child_id)

    def _drop(
        self, decoded: DecodedTree, structure: dict[int, list[int]], entity_id: int
    ) -> None:
        # None of these were linked, so each one is discarded on its own.
        pending = [entity_id]
        while pending:
            current = pending.pop()
            pending.extend(structure.get(current, []))
            decoded.stored_paths.pop(current, None)
            decoded.tree.discard(current)

    # === Reconciliation ===

    def reconcile(
        self, tree: EntityTree, stored_paths: dict[int, str] | None = None
    ) -> ReconcileReport:
        """Bring the physical mirror in line with the logical tree.

        Folders get their directory created when missing. Files whose stored
        mirror path differs from the derived one are moved; files missing
        everywhere are recreated empty. Every failure is recorded per node
        and the pass continues with the rest of the tree.

        Args:
            tree: Logical tree (authoritative).
            stored_paths: File mirror paths recorded in the snapshot.

        Returns:
            ReconcileReport listing every repair, failure and untracked entry.
        """
        mirror = self._mirror
        stored = stored_paths or {}
        report = ReconcileReport()

        for entity in tree.walk(tree.root_id):
            logical = tree.logical_path(entity.id)
            derived = mirror.path_for(tree, entity.id)
            try:
                if entity.is_folder:
                    if not derived.is_dir():
                        mirror.create_folder(derived)
                        report.add(logical, RepairAction.CREATED_FOLDER)
                    continue

                if derived.is_file():
                    continue
                mirror.require_vacant(derived)
                previous = stored.get(entity.id)
                if previous is not None and previous != mirror.relative_path(tree, entity.id):
                    source = mirror.resolve_relative(previous)
                    if source.is_file():
                        mirror.move(source, derived)
                        report.add(logical, RepairAction.MOVED_FILE, f"from {previous}")
                        continue
                mirror.write_file(derived, "")
                report.add(logical, RepairAction.RECREATED_FILE)
            except (IOFailureError, DuplicateNameError) as e:
                logger.error("Could not repair %s: %s", logical, e)
                report.add(logical, RepairAction.FAILED, str(e))

        for entity in tree.walk(tree.root_id):
            if not entity.is_folder:
                continue
            for orphan in mirror.untracked(tree, entity.id):
                report.add(str(orphan), RepairAction.UNTRACKED)

        for record in report.repairs:
            logger.warning("Repaired %s: %s", record.path, record.action.value)
        return report

    def new_tree(self, root_name: str = "root") -> EntityTree:
        """Build a fresh tree holding only the root, creating its directory.

        Raises:
            IOFailureError: If the root directory cannot be created.
        """
        tree = EntityTree(root_name)
        self._mirror.create_folder(self._mirror.path_for(tree, tree.root_id))
        return tree


def _apply_timestamps(entity: Entity, record: EntityRecord) -> None:
    entity.created_at = record.created_at
    entity.modified_at = record.modified_at
    entity.accessed_at = record.accessed_at


def save_snapshot(snapshot: Snapshot, path: Path) -> Path:
    """Write a snapshot as JSON.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.
    The temporary file is cleaned up on failure.

    Args:
        snapshot: Snapshot to persist.
        path: Destination file.

    Returns:
        Path where the snapshot was saved.

    Raises:
        SnapshotError: If the snapshot cannot be encoded or written.
    """
    try:
        data = snapshot.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    except (ValueError, RecursionError) as e:
        # Trees nested deeper than the serializer allows
        raise SnapshotError(f"Failed to encode snapshot: {e}") from e

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(data)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SnapshotError(f"Failed to write snapshot: {e}") from e

    logger.debug("Saved snapshot to %s", path)
    return path


def load_snapshot(path: Path) -> Snapshot | None:
    """Read a snapshot file.

    Args:
        path: Snapshot file.

    Returns:
        Validated Snapshot, or None if the file does not exist.

    Raises:
        SnapshotParseError: If the file is not valid JSON.
        SnapshotValidationError: If the content doesn't match the schema.
        SnapshotError: If the file cannot be read.
    """
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, RecursionError) as e:
        raise SnapshotParseError(f"Invalid JSON in snapshot: {e}") from e
    except OSError as e:
        raise SnapshotError(f"Failed to read snapshot: {e}") from e

    try:
        return Snapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotValidationError(f"Invalid snapshot content: {e}") from e
