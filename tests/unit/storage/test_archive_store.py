"""Unit tests for ArchiveStore."""

import gzip
import hashlib
from pathlib import Path

import pytest

from msmanager.errors import (
    ArchiveCorruptedError,
    ArchiveNotFoundError,
    SourceFileUnreadableError,
)
from msmanager.storage.archive_store import ArchiveStore, compute_digest, digest_file


@pytest.fixture
def store(data_dir: Path) -> ArchiveStore:
    """Create an ArchiveStore instance."""
    return ArchiveStore(data_dir)


class TestArchiveStoreInit:
    """Test ArchiveStore initialization."""

    def test_init_with_valid_dir(self, data_dir: Path) -> None:
        store = ArchiveStore(data_dir)
        assert store.data_dir == data_dir
        assert store.archives_dir == data_dir / "archives"

    def test_init_with_nonexistent_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            ArchiveStore(tmp_path / "nonexistent")


class TestDigest:
    """Test digest helpers."""

    def test_compute_digest_is_sha256(self) -> None:
        assert compute_digest(b"") == hashlib.sha256(b"").hexdigest()
        assert compute_digest(b"draft") == hashlib.sha256(b"draft").hexdigest()

    def test_digest_file_matches_compute_digest(self, tmp_path: Path) -> None:
        content = b"x" * 3_000_000  # spans several read chunks
        path = tmp_path / "big.bin"
        path.write_bytes(content)

        assert digest_file(path) == compute_digest(content)

    def test_digest_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(SourceFileUnreadableError):
            digest_file(tmp_path / "missing.docx")


class TestPut:
    """Test archiving content."""

    def test_put_basic(self, store: ArchiveStore) -> None:
        content = b"Quarterly report, first draft\n"
        digest = store.put(content)

        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)
        assert store.exists(digest)

    def test_put_writes_gzip_under_digest(self, store: ArchiveStore) -> None:
        content = b"compressed on disk"
        digest = store.put(content)

        archive_path = store.archives_dir / f"{digest}.gz"
        assert archive_path.exists()
        assert gzip.decompress(archive_path.read_bytes()) == content

    def test_put_is_deterministic(self, store: ArchiveStore) -> None:
        """Identical bytes give the identical digest and a single entry."""
        digest1 = store.put(b"same bytes")
        digest2 = store.put(b"same bytes")

        assert digest1 == digest2
        assert store.list_digests() == [digest1]

    def test_put_different_content(self, store: ArchiveStore) -> None:
        assert store.put(b"first") != store.put(b"second")

    def test_put_leaves_no_temp_files(self, store: ArchiveStore) -> None:
        store.put(b"atomic")
        leftovers = [p for p in store.archives_dir.iterdir() if p.name.startswith(".tmp_")]
        assert leftovers == []


class TestGet:
    """Test reading archived content."""

    def test_get_round_trip(self, store: ArchiveStore) -> None:
        content = bytes(range(256)) * 10
        digest = store.put(content)
        assert store.get(digest) == content

    def test_get_missing(self, store: ArchiveStore) -> None:
        with pytest.raises(ArchiveNotFoundError):
            store.get("a" * 64)

    def test_get_invalid_digest(self, store: ArchiveStore) -> None:
        with pytest.raises(ValueError, match="64 characters"):
            store.get("abc")
        with pytest.raises(ValueError, match="hexadecimal"):
            store.get("z" * 64)

    def test_get_detects_wrong_content(self, store: ArchiveStore) -> None:
        digest = compute_digest(b"expected")
        store.archives_dir.mkdir(exist_ok=True)
        store.path_for(digest).write_bytes(gzip.compress(b"tampered"))

        with pytest.raises(ArchiveCorruptedError, match="expected"):
            store.get(digest)
        assert store.get(digest, verify=False) == b"tampered"

    def test_get_detects_invalid_gzip(self, store: ArchiveStore) -> None:
        digest = compute_digest(b"anything")
        store.path_for(digest).write_bytes(b"not gzip at all")

        with pytest.raises(ArchiveCorruptedError):
            store.get(digest)


class TestExistsRemoveExtract:
    """Test existence checks, removal and extraction."""

    def test_exists_malformed_digest(self, store: ArchiveStore) -> None:
        assert not store.exists("none")
        assert not store.exists("")

    def test_remove(self, store: ArchiveStore) -> None:
        digest = store.put(b"to be removed")
        store.remove(digest)
        assert not store.exists(digest)

    def test_remove_is_idempotent(self, store: ArchiveStore) -> None:
        digest = store.put(b"twice")
        store.remove(digest)
        store.remove(digest)
        store.remove("b" * 64)
        assert not store.exists(digest)

    def test_extract(self, store: ArchiveStore, tmp_path: Path) -> None:
        content = b"extracted content"
        digest = store.put(content)
        dest = tmp_path / "out.docx"

        assert store.extract(digest, dest) == dest
        assert dest.read_bytes() == content

    def test_extract_overwrites(self, store: ArchiveStore, tmp_path: Path) -> None:
        digest = store.put(b"fresh")
        dest = tmp_path / "out.docx"
        dest.write_bytes(b"stale")

        store.extract(digest, dest)
        assert dest.read_bytes() == b"fresh"

    def test_extract_missing(self, store: ArchiveStore, tmp_path: Path) -> None:
        with pytest.raises(ArchiveNotFoundError):
            store.extract("c" * 64, tmp_path / "out.docx")
        assert not (tmp_path / "out.docx").exists()

    def test_list_digests_ignores_foreign_files(self, store: ArchiveStore) -> None:
        digest = store.put(b"listed")
        (store.archives_dir / "README").write_text("not an archive")
        (store.archives_dir / "short.gz").write_bytes(b"")

        assert store.list_digests() == [digest]
