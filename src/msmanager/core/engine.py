"""Version engine for msmanager.

The engine is the only writer of the archive, the labels-table and the
versions-table. It composes them into the four state-changing operations:

- ``track``: register a label and write its version 0 record
- ``update``: archive a new revision and make it the label's working file
- ``restore``: decompress any archived revision next to the working files
- ``undo``: revert the last record of the versions-table, whatever label
  it belongs to

Validation happens before the first write. Once an update or undo starts
mutating, I/O errors are raised as they occur and nothing is rolled back.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from msmanager.constants import (
    ARCHIVES_DIR,
    DATA_DIR,
    DATE_FORMAT,
    DEFAULT_INITIALS,
    LABELS_TABLE,
    RESTORED_PREFIX,
    SENTINEL,
    TIME_FORMAT,
    VERSIONS_TABLE,
)
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
from msmanager.errors import (
    DuplicateContentError,
    InconsistentStateError,
    LabelNotFoundError,
    NothingToUndoError,
    RenameFailedError,
    RepositoryExistsError,
    RepositoryNotFoundError,
    SourceFileUnreadableError,
    UnknownDigestError,
    VersionLogError,
)
from msmanager.storage import (
    ArchiveStore,
    LabelEntry,
    LabelRegistry,
    VersionLog,
    VersionRecord,
    compute_digest,
    digest_file,
)
from msmanager.storage.archive_store import is_valid_digest
from msmanager.storage.table import check_field

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[PendingUpdate], bool]
PathLike = Union[str, Path]


def init_repository(workspace_root: PathLike, force: bool = False) -> Path:
    """Create an empty repository in a workspace.

    Layout::

        <workspace>/msmanager-data/
            archives/
            labels-table
            versions-table

    Args:
        workspace_root: Directory that will hold working files
        force: Delete an existing repository first

    Returns:
        Path to the data directory

    Raises:
        RepositoryExistsError: If a repository exists and force is False
    """
    data_dir = Path(workspace_root) / DATA_DIR

    if data_dir.exists():
        if not force:
            raise RepositoryExistsError(
                f"Repository already exists in {workspace_root}"
            )
        logger.warning("Removing existing repository at %s", data_dir)
        shutil.rmtree(data_dir)

    try:
        data_dir.mkdir()
        (data_dir / ARCHIVES_DIR).mkdir()
        (data_dir / LABELS_TABLE).touch()
        (data_dir / VERSIONS_TABLE).touch()
    except Exception:
        # Clean up partial initialization
        if data_dir.exists():
            shutil.rmtree(data_dir)
        raise

    logger.info("Initialized repository at %s", data_dir)
    return data_dir


class VersionEngine:
    """Orchestrates labels, versions and archives of one workspace.

    Working files and restored files live in the workspace root; repository
    state lives in ``<workspace>/msmanager-data``.

    Attributes:
        workspace_root: Directory holding the working files
        data_dir: Path to msmanager-data
        archive: Content-addressed archive store
        registry: Label registry
        log: Version log
        initials: Tag put into every stored filename

    Example:
        >>> engine = VersionEngine(Path.cwd())
        >>> engine.track("report", "quarterly")
        >>> result = engine.update("report", Path("/tmp/draft.docx"), "a@x.com")
        >>> result.record.stored_filename
        'quarterly_1_XX.docx'
    """

    def __init__(
        self,
        workspace_root: PathLike,
        initials: str = DEFAULT_INITIALS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Open the repository of a workspace.

        Args:
            workspace_root: Directory containing msmanager-data
            initials: Tag used when naming stored files
            clock: Returns the current local time (default: datetime.now)

        Raises:
            RepositoryNotFoundError: If the workspace has no repository
            InvalidFieldError: If initials is not a single token
        """
        self.workspace_root = Path(workspace_root)
        self.data_dir = self.workspace_root / DATA_DIR

        if not self.data_dir.is_dir():
            raise RepositoryNotFoundError(
                f"No repository in {self.workspace_root} ({DATA_DIR}/ not found)"
            )

        self.archive = ArchiveStore(self.data_dir)
        self.registry = LabelRegistry(self.data_dir)
        self.log = VersionLog(self.data_dir)
        self.initials = check_field("initials", initials)
        self._clock = clock or datetime.now

    # Read side

    def labels(self) -> List[LabelEntry]:
        return self.registry.all()

    def history(self, label: Optional[str] = None) -> List[VersionRecord]:
        """Version records in append order, optionally for one label only."""
        if label is None:
            return self.log.all()
        return self.log.for_label(label)

    def status(self) -> List[LabelStatus]:
        """Current version and working-file state of every label."""
        current = self.log.current_versions()
        statuses = []
        for entry in self.registry.all():
            record = current.get(entry.label)
            statuses.append(
                LabelStatus(
                    label=entry.label,
                    filename_template=entry.filename_template,
                    record=record,
                    state=self._working_file_state(record),
                )
            )
        return statuses

    def _working_file_state(self, record: Optional[VersionRecord]) -> WorkingFileState:
        if record is None or record.is_track:
            return WorkingFileState.NO_VERSIONS
        path = self.workspace_root / record.stored_filename
        if not path.is_file():
            return WorkingFileState.MISSING
        if digest_file(path) != record.digest:
            return WorkingFileState.MODIFIED
        return WorkingFileState.CLEAN

    # Operations

    def track(self, label: str, filename_template: str) -> VersionRecord:
        """Start tracking a label.

        Adds the label and its template to the labels-table and writes the
        label's version 0 record.

        Raises:
            LabelAlreadyExistsError: If the label is already registered
            InvalidFieldError: If label or template contain whitespace
        """
        self.registry.create(label, filename_template)
        record = VersionRecord.track(label, self._clock())
        self.log.append(record)
        logger.info("Tracking label %s as %s", label, filename_template)
        return record

    def stored_filename(self, filename_template: str, version: int, source: Path) -> str:
        """Name of the working file for a version, keeping the source extension."""
        return f"{filename_template}_{version}_{self.initials}{Path(source).suffix}"

    def update(
        self,
        label: str,
        source: PathLike,
        author: str,
        confirm: Optional[ConfirmFn] = None,
    ) -> UpdateResult:
        """Make a file the next version of a label.

        Steps, in order:

        1. Hash the source. Content that was ever archived, under any
           label, is rejected.
        2. Ask ``confirm``; a falsy answer returns a DECLINED result.
        3. Archive the content as ``<digest>.gz``.
        4. Move the source into the workspace as
           ``<template>_<version>_<initials><ext>``.
        5. Delete the previous working file if it still matches its archive,
           otherwise keep it and report the drift.
        6. Append the new version record.

        Args:
            label: Tracked label to update
            source: File holding the new revision
            author: Author recorded for the version
            confirm: Called with the pending update; None means confirmed

        Returns:
            UpdateResult describing what happened

        Raises:
            LabelNotFoundError: If the label was never tracked
            SourceFileUnreadableError: If the source cannot be read
            DuplicateContentError: If the content was archived before
            InvalidFieldError: If author or source name contain whitespace
            RenameFailedError: If the source cannot be moved into place
            ArchiveError: If the archive cannot be written
        """
        filename_template = self.registry.lookup(label)
        if filename_template is None:
            raise LabelNotFoundError(f"Label did not exist: {label}")

        source = Path(source)
        check_field("author", author)
        check_field("file name", source.name)

        if not source.is_file():
            raise SourceFileUnreadableError(f"Unable to find file: {source}")
        try:
            content = source.read_bytes()
        except OSError as e:
            raise SourceFileUnreadableError(f"Unable to read {source}: {e}") from e

        digest = compute_digest(content)
        if self.archive.exists(digest):
            raise DuplicateContentError(digest)

        previous = self.log.latest_for(label)
        if previous is None:
            raise InconsistentStateError(
                f"Label {label} is registered but has no version records"
            )

        version = previous.version + 1
        target_filename = self.stored_filename(filename_template, version, source)
        target_path = self.workspace_root / target_filename

        if target_path.exists() and not _same_file(source, target_path):
            raise RenameFailedError(f"Target file already exists: {target_filename}")

        # Submitting the edited working file itself consumes it
        replaces_previous = not previous.is_track and _same_file(
            source, self.workspace_root / previous.stored_filename
        )

        pending = PendingUpdate(
            label=label,
            source=source,
            author=author,
            version=version,
            target_filename=target_filename,
            digest=digest,
        )

        if confirm is not None and not confirm(pending):
            logger.info("Update of %s declined", label)
            return UpdateResult(status=UpdateStatus.DECLINED, pending=pending)

        # From here on every step mutates the repository
        self.archive.put(content)

        try:
            shutil.move(str(source), str(target_path))
        except OSError as e:
            raise RenameFailedError(
                f"Failed to rename {source} to {target_filename}: {e}"
            ) from e
        logger.info("Rename file: %s --> %s", source, target_filename)

        removed_previous, drift = None, None
        if not replaces_previous:
            removed_previous, drift = self._handle_previous_version(previous)

        now = self._clock()
        record = VersionRecord(
            date=now.strftime(DATE_FORMAT),
            time=now.strftime(TIME_FORMAT),
            label=label,
            version=version,
            original_filename=source.name,
            stored_filename=target_filename,
            author=author,
            digest=digest,
        )
        self.log.append(record)

        return UpdateResult(
            status=UpdateStatus.APPLIED,
            pending=pending,
            record=record,
            removed_previous=removed_previous,
            drift=drift,
        )

    def _handle_previous_version(
        self, previous: VersionRecord
    ) -> Tuple[Optional[str], Optional[DriftReport]]:
        """Delete the superseded working file if it matches its archive.

        Returns:
            (name of the deleted file, drift report); at most one is set
        """
        if previous.is_track or previous.stored_filename == SENTINEL:
            return None, None

        prev_path = self.workspace_root / previous.stored_filename

        if not prev_path.is_file():
            logger.info(
                "Previous version %s is missing from the workspace",
                previous.stored_filename,
            )
            return None, DriftReport(
                filename=previous.stored_filename,
                expected_digest=previous.digest,
                actual_digest=None,
            )

        actual = digest_file(prev_path)
        if actual != previous.digest:
            logger.info(
                "%s is different from the archived version %s; the file will not be removed",
                previous.stored_filename,
                previous.digest,
            )
            return None, DriftReport(
                filename=previous.stored_filename,
                expected_digest=previous.digest,
                actual_digest=actual,
            )

        try:
            prev_path.unlink()
        except OSError as e:
            logger.warning("Could not remove previous version %s: %s", prev_path.name, e)
            return None, None

        logger.info("Removed previous version %s", prev_path.name)
        return previous.stored_filename, None

    def restore(self, digest: str, dest_dir: Optional[PathLike] = None) -> Path:
        """Decompress an archived revision to ``restored_<original name>``.

        Logs and working files are left untouched. A previous restore of the
        same revision is overwritten.

        Args:
            digest: Full digest or unique prefix (7+ characters)
            dest_dir: Output directory (default: workspace root)

        Returns:
            Path of the restored file

        Raises:
            UnknownDigestError: If no version record has the digest
            AmbiguousDigestError: If a prefix matches several versions
            ArchiveNotFoundError: If the archive entry is gone
            VersionLogError: If the matching record holds a malformed ID
        """
        record = self.log.find_by_digest(digest)
        if record is None:
            raise UnknownDigestError(f"Unknown ID: {digest}")
        _check_recorded_digest(record)

        dest = Path(dest_dir) if dest_dir is not None else self.workspace_root
        restored = dest / f"{RESTORED_PREFIX}{record.original_filename}"
        self.archive.extract(record.digest, restored)
        logger.info("File restored: %s", restored)
        return restored

    def undo(self) -> UndoResult:
        """Revert the last record of the versions-table.

        Undoing a track removes the label and its version 0 record. Undoing
        an update renames the working file back to the name it was submitted
        under, deletes its archive and its record, and puts the prior
        version's working file back if it was deleted by the update.

        Raises:
            NothingToUndoError: If the versions-table is empty
            InconsistentStateError: If the labels-table does not end with the
                label whose track is being undone
            RenameFailedError: If the working file cannot be renamed back
            VersionLogError: If a record involved holds a malformed ID
        """
        last = self.log.last()
        if last is None:
            raise NothingToUndoError("Nothing to undo")

        if last.is_track:
            return self._undo_track(last)
        return self._undo_update(last)

    def _undo_track(self, record: VersionRecord) -> UndoResult:
        entry = self.registry.last()
        if entry is None or entry.label != record.label:
            raise InconsistentStateError(
                f"Last label in labels-table is {entry.label if entry else 'missing'}, "
                f"expected {record.label}"
            )

        self.registry.remove_last()
        self.log.remove_last()
        logger.info("Undid track of label %s", record.label)
        return UndoResult(operation=UndoOperation.TRACK, record=record)

    def _undo_update(self, record: VersionRecord) -> UndoResult:
        working = self.workspace_root / record.stored_filename
        original = self.workspace_root / record.original_filename

        history = self.log.for_label(record.label)
        prior = history[-2] if len(history) > 1 else None
        _check_recorded_digest(record)
        if record.version > 1 and prior is not None and not prior.is_track:
            _check_recorded_digest(prior)

        if not working.is_file():
            raise RenameFailedError(
                f"Working file {record.stored_filename} is missing, cannot undo"
            )
        if original.exists() and not _same_file(working, original):
            raise RenameFailedError(
                f"{record.original_filename} already exists, cannot rename "
                f"{record.stored_filename} back"
            )

        try:
            shutil.move(str(working), str(original))
        except OSError as e:
            raise RenameFailedError(
                f"Failed to rename {record.stored_filename} to {record.original_filename}: {e}"
            ) from e
        logger.info("Rename file: %s --> %s", record.stored_filename, record.original_filename)

        self.archive.remove(record.digest)
        self.log.remove_last()

        rematerialized = None
        if record.version > 1 and prior is not None and not prior.is_track:
            prior_path = self.workspace_root / prior.stored_filename
            if prior_path.exists():
                logger.info("Previous version %s is still present", prior.stored_filename)
            else:
                self.archive.extract(prior.digest, prior_path)
                rematerialized = prior.stored_filename
                logger.info("Restore previous version: %s", prior.stored_filename)

        return UndoResult(
            operation=UndoOperation.UPDATE,
            record=record,
            restored_filename=record.original_filename,
            rematerialized_filename=rematerialized,
        )


def _check_recorded_digest(record: VersionRecord) -> None:
    if not is_valid_digest(record.digest):
        raise VersionLogError(
            f"Version {record.version} of {record.label} has a malformed ID: {record.digest!r}"
        )


def _same_file(a: Path, b: Path) -> bool:
    try:
        return a.samefile(b)
    except OSError:
        return False
