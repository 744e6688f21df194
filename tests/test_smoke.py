"""Basic smoke tests to verify project setup."""

from msmanager import __version__


def test_version() -> None:
    """Test that version is correctly defined."""
    assert __version__ == "0.1.0"


def test_import_storage() -> None:
    """Test that storage module can be imported."""
    from msmanager import storage  # noqa: F401


def test_import_core() -> None:
    """Test that core module can be imported."""
    from msmanager import core  # noqa: F401


def test_import_cli() -> None:
    """Test that cli module can be imported."""
    from msmanager.cli import main  # noqa: F401


def test_workspace_fixture(workspace, data_dir) -> None:
    """Test that workspace fixture creates the repository layout."""
    assert data_dir.is_dir()
    assert (data_dir / "archives").is_dir()
    assert (data_dir / "labels-table").exists()
    assert (data_dir / "versions-table").exists()
