"""Entity model for the virtual namespace.

Entities live in a single arena (EntityTree) and are addressed by stable
integer ids. A folder owns the ids of its children; the parent link is a
plain id lookup and never a second ownership edge, so the structure has
no reference cycles.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from mirrorfs.namespace.errors import (
    DuplicateNameError,
    InvalidNameError,
    NotAFolderError,
    NotFoundError,
)

SEPARATOR = "/"

_RESERVED_NAMES = frozenset({".", ".."})


class EntityKind(str, Enum):
    """Kind of namespace entity.

    Attributes:
        FOLDER: Container of named child entities.
        FILE: Leaf whose content lives in the physical mirror.
    """

    FOLDER = "folder"
    FILE = "file"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def validate_name(name: str) -> None:
    """Check that a name can be used for an entity.

    Args:
        name: Candidate entity name.

    Raises:
        InvalidNameError: If the name is empty, whitespace-only, ``.``/``..``,
            or contains the separator or a NUL character.
    """
    if not name or not name.strip():
        raise InvalidNameError("Name cannot be empty", name)
    if name in _RESERVED_NAMES:
        raise InvalidNameError("Name is reserved", name)
    if SEPARATOR in name or "\x00" in name:
        raise InvalidNameError("Name cannot contain '/' or NUL", name)


def name_key(name: str) -> str:
    """Return the case-insensitive lookup key for a name."""
    return name.casefold()


@dataclass(slots=True)
class Entity:
    """A named node in the namespace.

    Attributes:
        id: Stable handle inside the owning EntityTree.
        kind: Folder or file.
        name: Display name (case preserved).
        created_at: When the entity was created.
        modified_at: Last content (file) or child-set (folder) change.
        accessed_at: Last read/view operation.
        parent_id: Id of the containing folder, None for the root and detached entities.
        children: Lookup key to child id (folders only).
    """

    id: int
    kind: EntityKind
    name: str
    created_at: datetime = field(default_factory=utc_now)
    modified_at: datetime = field(default_factory=utc_now)
    accessed_at: datetime = field(default_factory=utc_now)
    parent_id: int | None = None
    children: dict[str, int] = field(default_factory=dict)

    @property
    def is_folder(self) -> bool:
        return self.kind == EntityKind.FOLDER

    @property
    def is_file(self) -> bool:
        return self.kind == EntityKind.FILE

    def touch_modified(self) -> None:
        self.modified_at = utc_now()

    def touch_accessed(self) -> None:
        self.accessed_at = utc_now()


class EntityTree:
    """Arena holding every entity of one namespace.

    The root folder is allocated on construction. All structural changes
    go through this class so that sibling-name uniqueness and parent links
    stay consistent.

    Attributes:
        root_id: Id of the root folder.
    """

    def __init__(self, root_name: str = "root") -> None:
        """Initialize the tree with a single root folder.

        Args:
            root_name: Name of the root folder (used for its mirror directory).

        Raises:
            InvalidNameError: If root_name is not a valid entity name.
        """
        validate_name(root_name)
        self._entities: dict[int, Entity] = {}
        self._next_id = 0
        self.root_id = self.new_entity(EntityKind.FOLDER, root_name).id

    @property
    def root(self) -> Entity:
        return self._entities[self.root_id]

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def get(self, entity_id: int) -> Entity:
        """Look up an entity by id.

        Raises:
            NotFoundError: If no entity has this id (e.g. it was deleted).
        """
        try:
            return self._entities[entity_id]
        except KeyError:
            raise NotFoundError(f"No entity with id {entity_id}") from None

    def new_entity(self, kind: EntityKind, name: str) -> Entity:
        """Allocate a detached entity with fresh timestamps.

        Args:
            kind: Folder or file.
            name: Entity name.

        Returns:
            The new, detached Entity.

        Raises:
            InvalidNameError: If the name is invalid.
        """
        validate_name(name)
        now = utc_now()
        entity = Entity(
            id=self._next_id,
            kind=kind,
            name=name,
            created_at=now,
            modified_at=now,
            accessed_at=now,
        )
        self._entities[entity.id] = entity
        self._next_id += 1
        return entity

    def adopt(self, entity: Entity) -> Entity:
        """Insert an already-built entity (used when rebuilding from a snapshot).

        The entity keeps its timestamps but is given a fresh id and no links.
        """
        validate_name(entity.name)
        entity.id = self._next_id
        entity.parent_id = None
        entity.children = {}
        self._entities[entity.id] = entity
        self._next_id += 1
        return entity

    def get_child(self, folder_id: int, name: str) -> Entity | None:
        """Case-insensitive child lookup.

        Returns:
            The child entity, or None if the folder has no child of that name
            (or is a file).
        """
        folder = self.get(folder_id)
        child_id = folder.children.get(name_key(name))
        if child_id is None:
            return None
        return self._entities[child_id]

    def add_child(self, folder_id: int, entity_id: int, *, touch: bool = True) -> None:
        """Attach a detached entity to a folder.

        Args:
            folder_id: Folder to attach to.
            entity_id: Detached entity.
            touch: Bump the folder's modified_at (off when rebuilding a snapshot).

        Raises:
            NotAFolderError: If folder_id is a file.
            DuplicateNameError: If the folder already has a child of that name.
        """
        folder = self.get(folder_id)
        entity = self.get(entity_id)
        if not folder.is_folder:
            raise NotAFolderError("Cannot add a child to a file", self.logical_path(folder_id))
        key = name_key(entity.name)
        if key in folder.children:
            raise DuplicateNameError(
                f"An entity named '{entity.name}' already exists",
                self.logical_path(folder_id),
            )
        folder.children[key] = entity_id
        entity.parent_id = folder_id
        if touch:
            folder.touch_modified()

    def remove_child(self, folder_id: int, entity_id: int) -> None:
        """Detach a child from a folder without touching physical state.

        Raises:
            NotFoundError: If the entity is not a current child of the folder.
        """
        folder = self.get(folder_id)
        entity = self.get(entity_id)
        key = name_key(entity.name)
        if folder.children.get(key) != entity_id:
            raise NotFoundError(
                f"'{entity.name}' is not a child of '{folder.name}'",
                self.logical_path(folder_id),
            )
        del folder.children[key]
        entity.parent_id = None
        folder.touch_modified()

    def check_name_available(
        self, folder_id: int, name: str, exclude_id: int | None = None
    ) -> None:
        """Validate a name and make sure no other child of the folder uses it.

        Args:
            folder_id: Folder that would contain the name.
            name: Candidate name.
            exclude_id: Entity allowed to hold the name already (rename of itself).

        Raises:
            InvalidNameError: If the name is invalid.
            DuplicateNameError: If another child already uses the name.
        """
        validate_name(name)
        existing = self.get_child(folder_id, name)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateNameError(
                f"An entity named '{existing.name}' already exists",
                self.logical_path(folder_id),
            )

    def rename(self, entity_id: int, new_name: str) -> None:
        """Rename an entity in place, keeping its identity.

        Raises:
            InvalidNameError: If new_name is invalid.
            DuplicateNameError: If a sibling already uses new_name.
        """
        entity = self.get(entity_id)
        parent_id = entity.parent_id
        if parent_id is None:
            validate_name(new_name)
            entity.name = new_name
            entity.touch_modified()
            return

        self.check_name_available(parent_id, new_name, exclude_id=entity_id)
        parent = self.get(parent_id)
        del parent.children[name_key(entity.name)]
        parent.children[name_key(new_name)] = entity_id
        entity.name = new_name
        entity.touch_modified()

    def children_of(self, folder_id: int) -> list[Entity]:
        """Return a folder's children sorted by name (case-insensitive)."""
        folder = self.get(folder_id)
        children = [self._entities[cid] for cid in folder.children.values()]
        return sorted(children, key=lambda e: (name_key(e.name), e.name))

    def walk(self, entity_id: int | None = None) -> Iterator[Entity]:
        """Pre-order traversal of a subtree (children sorted by name)."""
        start = self.root_id if entity_id is None else entity_id
        stack = [self.get(start)]
        while stack:
            entity = stack.pop()
            yield entity
            if entity.is_folder:
                stack.extend(reversed(self.children_of(entity.id)))

    def count(self, entity_id: int) -> int:
        """Number of entities in a subtree, including its top."""
        return sum(1 for _ in self.walk(entity_id))

    def discard(self, entity_id: int) -> None:
        """Drop a detached subtree from the arena.

        Raises:
            ValueError: If the entity is still attached or is the root.
        """
        entity = self.get(entity_id)
        if entity.parent_id is not None or entity_id == self.root_id:
            msg = f"Entity {entity_id} must be detached before it is discarded"
            raise ValueError(msg)
        for descendant in list(self.walk(entity_id)):
            del self._entities[descendant.id]

    def ancestors(self, entity_id: int) -> list[Entity]:
        """Entities from the top of the chain down to (and including) entity_id."""
        chain: list[Entity] = []
        current: int | None = entity_id
        while current is not None:
            entity = self.get(current)
            chain.append(entity)
            current = entity.parent_id
        chain.reverse()
        return chain

    def segments(self, entity_id: int) -> list[str]:
        """Names from the root down to the entity, root name included."""
        return [e.name for e in self.ancestors(entity_id)]

    def logical_path(self, entity_id: int) -> str:
        """Render the logical path of an entity (``/`` for the root)."""
        names = self.segments(entity_id)[1:]
        return SEPARATOR + SEPARATOR.join(names)

    def is_attached(self, entity_id: int) -> bool:
        """True if the entity exists and its parent chain reaches the root."""
        if entity_id not in self._entities:
            return False
        return self.ancestors(entity_id)[0].id == self.root_id

    def is_ancestor(self, candidate_id: int, entity_id: int) -> bool:
        """True if candidate_id is entity_id itself or one of its ancestors."""
        return any(e.id == candidate_id for e in self.ancestors(entity_id))
