"""Error taxonomy for namespace operations.

Every resolver and mutator failure is raised as a NamespaceError subclass
carrying an ErrorKind and the offending path, so callers can report the
kind and path without parsing messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kind of namespace failure.

    Attributes:
        NOT_FOUND: Path does not resolve.
        DUPLICATE_NAME: Case-insensitive collision with a sibling.
        INVALID_NAME: Empty, whitespace-only or reserved name.
        INVALID_OPERATION_ON_ROOT: Delete, rename or move attempted on the root.
        NOT_A_FOLDER: Path resolved to the wrong kind of entity.
        INVALID_DESTINATION: Destination lies inside the source subtree.
        IO_FAILURE: Physical mirror create/read/write/move/delete failed.
    """

    NOT_FOUND = "NotFound"
    DUPLICATE_NAME = "DuplicateName"
    INVALID_NAME = "InvalidName"
    INVALID_OPERATION_ON_ROOT = "InvalidOperationOnRoot"
    NOT_A_FOLDER = "NotAFolder"
    INVALID_DESTINATION = "InvalidDestination"
    IO_FAILURE = "IOFailure"


class NamespaceError(Exception):
    """Base exception for namespace operations.

    Attributes:
        kind: Error kind reported to the caller.
        path: Path (or name) the operation failed on.
        message: Human-readable description without kind and path.
    """

    kind: ErrorKind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, path: str = "") -> None:
        self.message = message
        self.path = path
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.path:
            return f"{self.kind.value}: {self.message} ({self.path})"
        return f"{self.kind.value}: {self.message}"


class NotFoundError(NamespaceError):
    """Raised when a path does not resolve to an entity."""

    kind = ErrorKind.NOT_FOUND


class DuplicateNameError(NamespaceError):
    """Raised when a sibling already uses a name (case-insensitive)."""

    kind = ErrorKind.DUPLICATE_NAME


class InvalidNameError(NamespaceError):
    """Raised when a name is empty, whitespace-only or reserved."""

    kind = ErrorKind.INVALID_NAME


class InvalidOperationOnRootError(NamespaceError):
    """Raised when deleting, renaming or moving the root folder."""

    kind = ErrorKind.INVALID_OPERATION_ON_ROOT


class NotAFolderError(NamespaceError):
    """Raised when a path resolves to a file where a folder is expected, or vice versa."""

    kind = ErrorKind.NOT_A_FOLDER


class InvalidDestinationError(NamespaceError):
    """Raised when a folder would be moved or copied into its own subtree."""

    kind = ErrorKind.INVALID_DESTINATION


class IOFailureError(NamespaceError):
    """Raised when the physical mirror could not be updated.

    The underlying OSError is chained as ``__cause__``.
    """

    kind = ErrorKind.IO_FAILURE
