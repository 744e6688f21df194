"""Content-addressable archive storage for msmanager.

Every revision handed to ``update`` is gzip-compressed into
msmanager-data/archives/<digest>.gz, where the digest is the SHA-256 of the
uncompressed bytes. The presence of an archive file is what marks a byte
sequence as already used.
"""

import gzip
import hashlib
import logging
import os
import shutil
import tempfile
import zlib
from pathlib import Path
from typing import List

from msmanager.constants import (
    ARCHIVE_SUFFIX,
    ARCHIVES_DIR,
    GZIP_LEVEL,
    HASH_ALGORITHM,
    HASH_LENGTH,
    READ_CHUNK_SIZE,
)
from msmanager.errors import (
    ArchiveCorruptedError,
    ArchiveError,
    ArchiveNotFoundError,
    SourceFileUnreadableError,
)

logger = logging.getLogger(__name__)


def compute_digest(content: bytes) -> str:
    """Compute the hex digest used as archive key.

    Args:
        content: Binary data to hash

    Returns:
        Hex string of hash (64 characters for SHA-256)
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(content)
    return hasher.hexdigest()


def digest_file(path: Path) -> str:
    """Compute the digest of a file on disk without loading it whole.

    Raises:
        SourceFileUnreadableError: If the file cannot be opened or read
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
                hasher.update(chunk)
    except OSError as e:
        raise SourceFileUnreadableError(f"Unable to read {path}: {e}") from e
    return hasher.hexdigest()


def is_valid_digest(digest: str) -> bool:
    if not isinstance(digest, str) or len(digest) != HASH_LENGTH:
        return False
    return all(c in "0123456789abcdef" for c in digest)


class ArchiveStore:
    """Gzip blob storage keyed by content digest.

    Storage layout:
        msmanager-data/archives/<digest>.gz

    Attributes:
        data_dir: Path to the msmanager-data directory
        archives_dir: Path to the archives directory

    Example:
        >>> store = ArchiveStore(Path("msmanager-data"))
        >>> digest = store.put(b"draft contents")
        >>> assert store.get(digest) == b"draft contents"
    """

    def __init__(self, data_dir: Path) -> None:
        """Initialize the archive store.

        Args:
            data_dir: Path to msmanager-data directory

        Raises:
            ValueError: If data_dir doesn't exist
        """
        self.data_dir = Path(data_dir)
        self.archives_dir = self.data_dir / ARCHIVES_DIR

        if not self.data_dir.exists():
            raise ValueError(f"msmanager data directory not found: {data_dir}")

    def put(self, content: bytes) -> str:
        """Compress and archive content under its digest.

        Identical content always maps to the same key. If the key is already
        present nothing is written. Uses atomic write (tmp file + rename) so
        a failed write never leaves a truncated archive behind.

        Args:
            content: Binary content to archive

        Returns:
            Digest of the content (64 hex characters)

        Raises:
            ArchiveError: If the archive cannot be written
        """
        digest = compute_digest(content)

        if self.exists(digest):
            return digest

        archive_path = self.path_for(digest)
        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                dir=archive_path.parent,
                prefix=".tmp_",
                suffix=ARCHIVE_SUFFIX,
            )
            try:
                with os.fdopen(tmp_fd, "wb") as f:
                    f.write(gzip.compress(content, compresslevel=GZIP_LEVEL))
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, archive_path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise ArchiveError(f"Can't compress file into {archive_path.name}: {e}") from e

        logger.info("Archived %d bytes as %s", len(content), archive_path.name)
        return digest

    def exists(self, digest: str) -> bool:
        """Check whether content with this digest has been archived.

        Malformed digests are reported as absent.
        """
        if not is_valid_digest(digest):
            return False
        return self.path_for(digest).exists()

    def get(self, digest: str, verify: bool = True) -> bytes:
        """Decompress and return archived content.

        Args:
            digest: Digest of the archived content
            verify: Whether to recompute and verify the digest (default: True)

        Returns:
            The original bytes

        Raises:
            ArchiveNotFoundError: If no archive exists for the digest
            ArchiveCorruptedError: If decompression or verification fails
            ValueError: If digest is malformed
        """
        self._validate_digest(digest)
        archive_path = self.path_for(digest)

        if not archive_path.exists():
            raise ArchiveNotFoundError(f"Unable to find file: {archive_path}")

        try:
            with open(archive_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ArchiveError(f"Failed to read {archive_path.name}: {e}") from e

        try:
            content = gzip.decompress(data)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise ArchiveCorruptedError(f"Archive {archive_path.name} is not valid gzip: {e}") from e

        if verify:
            actual = compute_digest(content)
            if actual != digest:
                raise ArchiveCorruptedError(
                    f"Archive corrupted: expected {digest}, got {actual}"
                )

        return content

    def extract(self, digest: str, dest: Path) -> Path:
        """Decompress an archive entry straight into a file.

        An existing file at ``dest`` is overwritten.

        Returns:
            The destination path

        Raises:
            ArchiveNotFoundError: If no archive exists for the digest
            ArchiveError: If the destination cannot be written
        """
        self._validate_digest(digest)
        archive_path = self.path_for(digest)

        if not archive_path.exists():
            raise ArchiveNotFoundError(f"Unable to find file: {archive_path}")

        dest = Path(dest)
        try:
            with gzip.open(archive_path, "rb") as src, open(dest, "wb") as out:
                shutil.copyfileobj(src, out, READ_CHUNK_SIZE)
        except (gzip.BadGzipFile, EOFError, zlib.error) as e:
            raise ArchiveCorruptedError(f"Error decompressing {archive_path.name}: {e}") from e
        except OSError as e:
            raise ArchiveError(f"Error decompressing {archive_path.name} to {dest}: {e}") from e

        return dest

    def remove(self, digest: str) -> None:
        """Delete an archive entry.

        Removing an entry that does not exist is not an error.

        Raises:
            ArchiveError: If the file exists but cannot be deleted
        """
        self._validate_digest(digest)
        archive_path = self.path_for(digest)
        try:
            archive_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise ArchiveError(f"Failed to delete {archive_path.name}: {e}") from e
        logger.info("Deleted archive %s", archive_path.name)

    def list_digests(self) -> List[str]:
        """Digests of every archive entry, sorted."""
        if not self.archives_dir.exists():
            return []
        digests = []
        for path in self.archives_dir.iterdir():
            if path.name.endswith(ARCHIVE_SUFFIX):
                digest = path.name[: -len(ARCHIVE_SUFFIX)]
                if is_valid_digest(digest):
                    digests.append(digest)
        return sorted(digests)

    def path_for(self, digest: str) -> Path:
        """Get the filesystem path for an archive entry.

        Example:
            >>> store.path_for("abc123...")
            >>> # msmanager-data/archives/abc123....gz
        """
        return self.archives_dir / f"{digest}{ARCHIVE_SUFFIX}"

    def _validate_digest(self, digest: str) -> None:
        """Validate that a digest string is properly formatted.

        Raises:
            ValueError: If digest is invalid format
        """
        if not isinstance(digest, str):
            raise ValueError(f"Digest must be string, got {type(digest)}")

        if len(digest) != HASH_LENGTH:
            raise ValueError(
                f"Digest must be {HASH_LENGTH} characters, got {len(digest)}"
            )

        if not is_valid_digest(digest):
            raise ValueError(f"Digest must be lowercase hexadecimal: {digest}")
