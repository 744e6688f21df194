"""Integration tests for msmanager hist, status, restore and undo commands."""

import hashlib
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from msmanager.cli.main import app

runner = CliRunner()


def submit(path: Path) -> None:
    result = runner.invoke(app, ["update", "report", str(path), "--author", "a@x.com", "-y"])
    assert result.exit_code == 0, result.stdout


@pytest.fixture
def repo(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Workspace with label 'report' tracked, used as current directory."""
    monkeypatch.chdir(workspace)
    runner.invoke(app, ["track", "report", "quarterly"])
    return workspace


class TestHistCommand:
    """Test msmanager hist command."""

    def test_hist_json(self, repo: Path, make_draft) -> None:
        submit(make_draft("draft.docx", b"v1"))

        result = runner.invoke(app, ["hist", "--format", "json"])

        assert result.exit_code == 0
        records = json.loads(result.stdout)
        assert [r["version"] for r in records] == [0, 1]
        assert records[0]["digest"] == "none"
        assert records[1]["stored_filename"] == "quarterly_1_XX.docx"
        assert records[1]["digest"] == hashlib.sha256(b"v1").hexdigest()

    def test_hist_filters_by_label(self, repo: Path, make_draft) -> None:
        runner.invoke(app, ["track", "memo", "weekly"])
        submit(make_draft("draft.docx", b"v1"))

        result = runner.invoke(app, ["hist", "--label", "memo", "--format", "json"])

        records = json.loads(result.stdout)
        assert [(r["label"], r["version"]) for r in records] == [("memo", 0)]

    def test_hist_table(self, repo: Path) -> None:
        result = runner.invoke(app, ["hist"])

        assert result.exit_code == 0
        assert "LABEL" in result.stdout
        assert "report" in result.stdout

    def test_hist_unknown_format(self, repo: Path) -> None:
        result = runner.invoke(app, ["hist", "--format", "xml"])
        assert result.exit_code == 1


class TestStatusCommand:
    """Test msmanager status command."""

    def test_status(self, repo: Path, make_draft) -> None:
        submit(make_draft("draft.docx", b"v1"))

        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "clean" in result.stdout

        (repo / "quarterly_1_XX.docx").write_bytes(b"edited")
        result = runner.invoke(app, ["status"])
        assert "modified" in result.stdout


class TestRestoreCommand:
    """Test msmanager restore command."""

    def test_restore(self, repo: Path, make_draft) -> None:
        submit(make_draft("draft.docx", b"keep me"))
        digest = hashlib.sha256(b"keep me").hexdigest()

        result = runner.invoke(app, ["restore", digest])

        assert result.exit_code == 0
        assert "restored_draft.docx" in result.stdout
        assert (repo / "restored_draft.docx").read_bytes() == b"keep me"

    def test_restore_unknown(self, repo: Path) -> None:
        result = runner.invoke(app, ["restore", "0" * 64])

        assert result.exit_code == 1
        assert "Unknown ID" in result.stdout


class TestUndoCommand:
    """Test msmanager undo command."""

    def test_undo_update(self, repo: Path, make_draft) -> None:
        submit(make_draft("draft.docx", b"v1"))

        result = runner.invoke(app, ["undo"])

        assert result.exit_code == 0
        assert "draft.docx" in result.stdout
        assert (repo / "draft.docx").read_bytes() == b"v1"
        assert not (repo / "quarterly_1_XX.docx").exists()

    def test_undo_track(self, repo: Path) -> None:
        result = runner.invoke(app, ["undo"])

        assert result.exit_code == 0
        assert "Label removed" in result.stdout
        assert (repo / "msmanager-data" / "labels-table").read_text() == ""

    def test_undo_empty(self, repo: Path) -> None:
        runner.invoke(app, ["undo"])

        result = runner.invoke(app, ["undo"])

        assert result.exit_code == 1
        assert "Nothing to undo" in result.stdout


class TestCorruptTables:
    """Test exit codes on malformed repository tables."""

    def test_malformed_labels_table(self, repo: Path) -> None:
        (repo / "msmanager-data" / "labels-table").write_text("justonefield\n")

        result = runner.invoke(app, ["labels"])

        assert result.exit_code == 3
        assert "Malformed labels-table line" in result.stdout

    def test_malformed_versions_table(self, repo: Path) -> None:
        (repo / "msmanager-data" / "versions-table").write_text("garbage line\n")

        result = runner.invoke(app, ["hist"])

        assert result.exit_code == 3

    def test_malformed_recorded_digest(self, repo: Path) -> None:
        versions = repo / "msmanager-data" / "versions-table"
        with open(versions, "a", encoding="utf-8") as f:
            f.write("2026-03-14 09:26 report 1 draft.docx quarterly_1_XX.docx a@x.com nothexdigest\n")

        result = runner.invoke(app, ["restore", "nothexd"])

        assert result.exit_code == 3
        assert "malformed ID" in result.stdout
