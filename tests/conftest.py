"""Pytest configuration and shared fixtures."""

from datetime import datetime
from pathlib import Path
from typing import Callable

import pytest

from msmanager.constants import DATA_DIR
from msmanager.core import VersionEngine, init_repository

FIXED_NOW = datetime(2026, 3, 14, 9, 26)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a workspace with an initialized repository."""
    workspace_root = tmp_path / "workspace"
    workspace_root.mkdir()
    init_repository(workspace_root)
    return workspace_root


@pytest.fixture
def data_dir(workspace: Path) -> Path:
    return workspace / DATA_DIR


@pytest.fixture
def engine(workspace: Path) -> VersionEngine:
    """Create a VersionEngine with a frozen clock."""
    return VersionEngine(workspace, clock=lambda: FIXED_NOW)


@pytest.fixture
def drafts(tmp_path: Path) -> Path:
    """Directory outside the workspace where new revisions are written."""
    drafts_dir = tmp_path / "drafts"
    drafts_dir.mkdir()
    return drafts_dir


@pytest.fixture
def make_draft(drafts: Path) -> Callable[[str, bytes], Path]:
    """Write a draft file and return its path."""

    def _make(name: str, content: bytes) -> Path:
        path = drafts / name
        path.write_bytes(content)
        return path

    return _make
