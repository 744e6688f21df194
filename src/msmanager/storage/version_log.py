"""Version log for msmanager.

The versions-table records every tracked state change, oldest first. Lines
have eight columns::

    DATE TIME LABEL VERSION ORIGFILE FILE AUTHOR ID

Version 0 of a label is written by ``track`` and carries ``none`` in
ORIGFILE, FILE, AUTHOR and ID. Append position is the only ordering; the
log is never sorted or rewritten except to drop its last line.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from msmanager.constants import (
    DATE_FORMAT,
    MIN_DIGEST_PREFIX,
    SENTINEL,
    TIME_FORMAT,
    VERSIONS_TABLE,
)
from msmanager.errors import AmbiguousDigestError, VersionLogError
from msmanager.storage.table import AppendOnlyTable, check_field

_FIELD_NAMES = (
    "date",
    "time",
    "label",
    "version",
    "original filename",
    "stored filename",
    "author",
    "digest",
)


@dataclass(frozen=True)
class VersionRecord:
    """One line of the versions-table.

    Attributes:
        date: Date of the change (YYYY-MM-DD)
        time: Time of the change (HH:MM)
        label: Label the change belongs to
        version: Version number, 0 for the track record
        original_filename: Base name of the file given to update
        stored_filename: Name of the working file in the workspace
        author: Author of the update
        digest: Digest of the archived content
    """

    date: str
    time: str
    label: str
    version: int
    original_filename: str
    stored_filename: str
    author: str
    digest: str

    @classmethod
    def track(cls, label: str, when: datetime) -> "VersionRecord":
        """Build the version 0 record written when a label is tracked."""
        return cls(
            date=when.strftime(DATE_FORMAT),
            time=when.strftime(TIME_FORMAT),
            label=label,
            version=0,
            original_filename=SENTINEL,
            stored_filename=SENTINEL,
            author=SENTINEL,
            digest=SENTINEL,
        )

    @property
    def is_track(self) -> bool:
        return self.version == 0

    def to_line(self) -> str:
        fields = [
            self.date,
            self.time,
            self.label,
            str(self.version),
            self.original_filename,
            self.stored_filename,
            self.author,
            self.digest,
        ]
        for name, value in zip(_FIELD_NAMES, fields):
            check_field(name, value)
        return " ".join(fields)

    @classmethod
    def from_line(cls, line: str) -> "VersionRecord":
        """Parse a versions-table line.

        Raises:
            VersionLogError: If the line does not have eight fields or the
                version is not a non-negative integer
        """
        fields = line.split()
        if len(fields) != 8:
            raise VersionLogError(
                f"Expected 8 fields in versions-table line, got {len(fields)}: {line!r}"
            )
        try:
            version = int(fields[3])
        except ValueError as e:
            raise VersionLogError(f"Invalid version number {fields[3]!r}") from e
        if version < 0:
            raise VersionLogError(f"Invalid version number {version}")

        return cls(
            date=fields[0],
            time=fields[1],
            label=fields[2],
            version=version,
            original_filename=fields[4],
            stored_filename=fields[5],
            author=fields[6],
            digest=fields[7],
        )

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary representation."""
        return {
            "date": self.date,
            "time": self.time,
            "label": self.label,
            "version": self.version,
            "original_filename": self.original_filename,
            "stored_filename": self.stored_filename,
            "author": self.author,
            "digest": self.digest,
        }


class VersionLog:
    """Ordered, append-only sequence of version records.

    The log does not validate sequencing; the engine computes the next
    version number before appending.

    Example:
        >>> log = VersionLog(Path("msmanager-data"))
        >>> log.append(VersionRecord.track("report", datetime.now()))
        >>> log.latest_for("report").version
        0
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.table = AppendOnlyTable(self.data_dir / VERSIONS_TABLE)

    def append(self, record: VersionRecord) -> None:
        self.table.append_line(record.to_line())

    def all(self) -> List[VersionRecord]:
        """Every record in append order.

        Raises:
            VersionLogError: If a line is malformed (message names the line)
        """
        records = []
        for lineno, line in enumerate(self.table.read_lines(), start=1):
            try:
                records.append(VersionRecord.from_line(line))
            except VersionLogError as e:
                raise VersionLogError(f"versions-table line {lineno}: {e}") from e
        return records

    def for_label(self, label: str) -> List[VersionRecord]:
        return [record for record in self.all() if record.label == label]

    def latest_for(self, label: str) -> Optional[VersionRecord]:
        """Last record of a label, or None if it was never tracked."""
        latest = None
        for record in self.all():
            if record.label == label:
                latest = record
        return latest

    def current_versions(self) -> Dict[str, VersionRecord]:
        """Map every label to its current record, in first-tracked order."""
        current: Dict[str, VersionRecord] = {}
        for record in self.all():
            current[record.label] = record
        return current

    def find_by_digest(self, digest: str) -> Optional[VersionRecord]:
        """Find the record that archived the given content.

        Accepts a full digest or a unique prefix of at least 7 characters.
        Track records never match.

        Raises:
            AmbiguousDigestError: If a prefix matches more than one digest
        """
        digest = digest.lower()
        if len(digest) < MIN_DIGEST_PREFIX:
            return None

        matches = [
            record
            for record in self.all()
            if not record.is_track and record.digest.startswith(digest)
        ]
        if not matches:
            return None

        exact = [record for record in matches if record.digest == digest]
        if exact:
            return exact[0]

        if len({record.digest for record in matches}) > 1:
            raise AmbiguousDigestError(
                f"Digest prefix {digest} matches {len(matches)} versions"
            )
        return matches[0]

    def last(self) -> Optional[VersionRecord]:
        line = self.table.last_line()
        return VersionRecord.from_line(line) if line is not None else None

    def remove_last(self) -> Optional[VersionRecord]:
        """Remove the most recently appended record.

        Returns:
            The removed record, or None if the log was empty
        """
        line = self.table.remove_last_line()
        return VersionRecord.from_line(line) if line is not None else None

    def __len__(self) -> int:
        return len(self.table)
