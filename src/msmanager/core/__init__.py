"""Core engine layer for msmanager.

This module provides the version engine that composes the archive, the
label registry and the version log into track, update, restore and undo.
"""

from msmanager.core.engine import VersionEngine, init_repository
from msmanager.core.models import (
    DriftReport,
    LabelStatus,
    PendingUpdate,
    UndoOperation,
    UndoResult,
    UpdateResult,
    UpdateStatus,
    WorkingFileState,
)

__all__ = [
    "VersionEngine",
    "init_repository",
    "DriftReport",
    "LabelStatus",
    "PendingUpdate",
    "UndoOperation",
    "UndoResult",
    "UpdateResult",
    "UpdateStatus",
    "WorkingFileState",
]
