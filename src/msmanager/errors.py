"""Exception hierarchy for msmanager.

Every error raised by the storage and core layers derives from
:class:`MsManagerError`. The intermediate classes group errors by how the
CLI reports them: user errors (not found, already exists, duplicate content,
invalid input), I/O failures, and data errors (corrupt or inconsistent
repository state).
"""


class MsManagerError(Exception):
    """Base class for all msmanager errors."""

    pass


# User errors


class NotFoundError(MsManagerError):
    """Raised when a label, digest, file or repository is absent."""

    pass


class LabelNotFoundError(NotFoundError):
    """Raised when updating a label that was never tracked."""

    pass


class UnknownDigestError(NotFoundError):
    """Raised when no version record carries the requested digest."""

    pass


class ArchiveNotFoundError(NotFoundError):
    """Raised when an archive entry is missing from the archives directory."""

    pass


class NothingToUndoError(NotFoundError):
    """Raised when undo is requested on an empty versions table."""

    pass


class RepositoryNotFoundError(NotFoundError):
    """Raised when the workspace has no msmanager-data directory."""

    pass


class AlreadyExistsError(MsManagerError):
    """Raised when creating something that already exists."""

    pass


class LabelAlreadyExistsError(AlreadyExistsError):
    """Raised when tracking a label that is already registered."""

    pass


class RepositoryExistsError(AlreadyExistsError):
    """Raised when initializing over an existing repository."""

    pass


class DuplicateContentError(MsManagerError):
    """Raised when an update carries content that was archived before.

    Attributes:
        digest: Digest of the rejected content
    """

    def __init__(self, digest: str) -> None:
        super().__init__(f"File already used (ID: {digest})")
        self.digest = digest


class InvalidFieldError(MsManagerError, ValueError):
    """Raised when a value cannot be stored as a single table field."""

    pass


class AmbiguousDigestError(MsManagerError):
    """Raised when a digest prefix matches more than one record."""

    pass


# I/O failures


class IOFailureError(MsManagerError):
    """Base class for read, write, rename and compression failures."""

    pass


class SourceFileUnreadableError(IOFailureError):
    """Raised when the file given to update cannot be read."""

    pass


class RenameFailedError(IOFailureError):
    """Raised when a working file cannot be moved into place."""

    pass


class ArchiveError(IOFailureError):
    """Raised when writing or deleting an archive entry fails."""

    pass


class TableError(IOFailureError):
    """Raised when an append-only table cannot be read or written."""

    pass


# Data errors


class DataError(MsManagerError):
    """Base class for corrupt or inconsistent repository data."""

    pass


class ArchiveCorruptedError(DataError):
    """Raised when an archive entry does not decompress to its digest."""

    pass


class VersionLogError(DataError):
    """Raised when a versions-table line cannot be parsed."""

    pass


class LabelRegistryError(DataError):
    """Raised when a labels-table line cannot be parsed."""

    pass


class InconsistentStateError(DataError):
    """Raised when the two tables disagree about the last operation."""

    pass
