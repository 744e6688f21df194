"""Result types returned by the version engine.

The engine never prints; callers render these objects.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from msmanager.storage.version_log import VersionRecord


class UpdateStatus(str, Enum):
    APPLIED = "applied"
    DECLINED = "declined"


class UndoOperation(str, Enum):
    """Kind of operation an undo reverted."""

    TRACK = "track"
    UPDATE = "update"


class WorkingFileState(str, Enum):
    """State of a label's current working file.

    NO_VERSIONS: label tracked but never updated
    CLEAN: file matches the archived digest
    MODIFIED: file was edited since it was archived (drift)
    MISSING: file is no longer in the workspace
    """

    NO_VERSIONS = "no versions"
    CLEAN = "clean"
    MODIFIED = "modified"
    MISSING = "missing"


@dataclass(frozen=True)
class PendingUpdate:
    """What an update is about to do, shown to the user for confirmation."""

    label: str
    source: Path
    author: str
    version: int
    target_filename: str
    digest: str


@dataclass(frozen=True)
class DriftReport:
    """A superseded working file that no longer matches its archive.

    ``actual_digest`` is None when the file is missing altogether.
    """

    filename: str
    expected_digest: str
    actual_digest: Optional[str]

    @property
    def missing(self) -> bool:
        return self.actual_digest is None


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of ``VersionEngine.update``.

    Attributes:
        status: APPLIED, or DECLINED when confirmation was refused
        pending: The update as it was presented for confirmation
        record: The appended version record (None when declined)
        removed_previous: Name of the superseded working file that was
            deleted, if any
        drift: Drift found on the superseded working file, if any
    """

    status: UpdateStatus
    pending: PendingUpdate
    record: Optional[VersionRecord] = None
    removed_previous: Optional[str] = None
    drift: Optional[DriftReport] = None

    @property
    def applied(self) -> bool:
        return self.status is UpdateStatus.APPLIED


@dataclass(frozen=True)
class UndoResult:
    """Outcome of ``VersionEngine.undo``.

    Attributes:
        operation: Whether a track or an update was reverted
        record: The version record that was removed
        restored_filename: Name the working file was renamed back to
            (updates only)
        rematerialized_filename: Working file of the prior version that was
            decompressed back into the workspace, if any
    """

    operation: UndoOperation
    record: VersionRecord
    restored_filename: Optional[str] = None
    rematerialized_filename: Optional[str] = None


@dataclass(frozen=True)
class LabelStatus:
    label: str
    filename_template: str
    record: Optional[VersionRecord]
    state: WorkingFileState
