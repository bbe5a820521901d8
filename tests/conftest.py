"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest
from mirrorfs.namespace.history import AccessHistory
from mirrorfs.namespace.mirror import PhysicalMirror
from mirrorfs.namespace.models import EntityTree
from mirrorfs.namespace.mutator import TreeMutator


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every XDG directory into the test's tmp_path."""
    home = tmp_path / "home"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.delenv("MIRRORFS_CONFIG", raising=False)
    return home


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Empty storage root directory."""
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def mirror(storage_root: Path) -> PhysicalMirror:
    return PhysicalMirror(storage_root)


@pytest.fixture
def tree(mirror: PhysicalMirror) -> EntityTree:
    """Fresh tree whose root directory exists on disk."""
    fresh = EntityTree()
    mirror.create_folder(mirror.path_for(fresh, fresh.root_id))
    return fresh


@pytest.fixture
def history(tmp_path: Path) -> AccessHistory:
    return AccessHistory(tmp_path / "history.jsonl")


@pytest.fixture
def mutator(tree: EntityTree, mirror: PhysicalMirror, history: AccessHistory) -> TreeMutator:
    return TreeMutator(tree, mirror, history)
