"""File access history.

Records every read, edit and creation of a file to a JSON Lines file.
The namespace core only appends; the ``history`` command reads it back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from mirrorfs.core.paths import get_history_path

logger = logging.getLogger(__name__)


class AccessAction(str, Enum):
    """What was done to the file.

    Attributes:
        CREATE: File was created.
        READ: File content was viewed.
        EDIT: File content was replaced.
    """

    CREATE = "create"
    READ = "read"
    EDIT = "edit"


@dataclass(frozen=True, slots=True)
class AccessEntry:
    """Single file access record.

    Attributes:
        path: Logical full path of the file at access time.
        timestamp: When the access happened (ISO 8601 with timezone).
        action: Kind of access.
    """

    path: str
    timestamp: str
    action: AccessAction = AccessAction.READ

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.path:
            msg = "Access path cannot be empty"
            raise ValueError(msg)
        if not self.timestamp:
            msg = "Timestamp cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "timestamp": self.timestamp,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessEntry:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the action is unknown.
        """
        return cls(
            path=data["path"],
            timestamp=data["timestamp"],
            action=AccessAction(data.get("action", AccessAction.READ.value)),
        )

    def to_json_line(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> AccessEntry:
        return cls.from_dict(json.loads(line.strip()))


class AccessHistory:
    """Append-only access log in JSONL format.

    Storage location: ~/.local/state/mirrorfs/history.jsonl unless overridden.
    A disabled history accepts log calls and records nothing.
    """

    def __init__(self, history_path: Path | None = None, enabled: bool = True) -> None:
        """Initialize AccessHistory.

        Args:
            history_path: Optional override for the history file.
            enabled: If False, log_access is a no-op.
        """
        self._history_path = history_path if history_path is not None else get_history_path()
        self._enabled = enabled

    @property
    def history_path(self) -> Path:
        return self._history_path

    def log_access(
        self,
        full_path: str,
        timestamp: datetime,
        action: AccessAction = AccessAction.READ,
    ) -> None:
        """Append one access record.

        Write failures are logged and not raised: the access itself has
        already succeeded and the log is informational.

        Args:
            full_path: Logical path of the accessed file.
            timestamp: Time of access.
            action: Kind of access.
        """
        if not self._enabled:
            return

        entry = AccessEntry(path=full_path, timestamp=timestamp.isoformat(), action=action)
        try:
            self._history_path.parent.mkdir(parents=True, exist_ok=True)
            with self._history_path.open(mode="a", encoding="utf-8") as f:
                f.write(entry.to_json_line() + "\n")
                f.flush()
        except OSError as e:
            logger.warning("Could not record access to %s: %s", full_path, e)

    def get_history(self, limit: int | None = None) -> list[AccessEntry]:
        """Read access entries, newest first.

        Args:
            limit: Maximum number of entries to return. If None, returns all.

        Returns:
            List of AccessEntry, newest first. Empty if the file doesn't exist.
        """
        if not self._history_path.exists():
            return []

        entries: list[AccessEntry] = []

        with self._history_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue

                try:
                    entries.append(AccessEntry.from_json_line(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning("Skipping corrupt history line %d: %s", line_num, str(e))
                    continue

        entries.reverse()

        if limit is not None:
            return entries[:limit]

        return entries
