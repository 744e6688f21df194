"""Append-only line tables for msmanager.

Both repository tables (labels-table and versions-table) are plain text
files holding one whitespace-separated record per line. New records are only
ever appended; the single destructive operation is dropping the last line,
which is what undo needs.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

from msmanager.errors import InvalidFieldError, TableError


def check_field(name: str, value: str) -> str:
    """Validate that a value can be written as one table field.

    Args:
        name: Field name, used in the error message
        value: Value to validate

    Returns:
        The value, unchanged

    Raises:
        InvalidFieldError: If the value is empty or contains whitespace
    """
    if not isinstance(value, str) or not value:
        raise InvalidFieldError(f"{name} must be a non-empty string")
    if any(c.isspace() for c in value):
        raise InvalidFieldError(f"{name} must not contain whitespace: {value!r}")
    return value


class AppendOnlyTable:
    """A text file of whitespace-separated records, one per line.

    Attributes:
        path: Path to the table file

    Example:
        >>> table = AppendOnlyTable(Path("msmanager-data/labels-table"))
        >>> table.append_line("report quarterly")
        >>> table.read_lines()
        ['report quarterly']
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append_line(self, line: str) -> None:
        """Append one record to the end of the table.

        Creates the file if it does not exist yet.

        Raises:
            TableError: If the file cannot be written
        """
        if "\n" in line:
            raise InvalidFieldError(f"Table line must not contain newlines: {line!r}")
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise TableError(f"Failed to append to {self.path.name}: {e}") from e

    def read_lines(self) -> List[str]:
        """Read every record in append order.

        Blank lines are skipped. A table that does not exist reads as empty.

        Raises:
            TableError: If the file exists but cannot be read
        """
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return [line.rstrip("\n") for line in f if line.strip()]
        except OSError as e:
            raise TableError(f"Failed to read {self.path.name}: {e}") from e

    def last_line(self) -> Optional[str]:
        lines = self.read_lines()
        return lines[-1] if lines else None

    def remove_last_line(self) -> Optional[str]:
        """Drop the most recently appended record.

        The table is rewritten through a temp file and an atomic rename, so a
        failure leaves the previous contents in place.

        Returns:
            The removed line, or None if the table was empty

        Raises:
            TableError: If the table cannot be rewritten
        """
        lines = self.read_lines()
        if not lines:
            return None

        removed = lines.pop()
        content = "".join(line + "\n" for line in lines)

        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".tmp_",
                suffix=".table",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise TableError(f"Failed to rewrite {self.path.name}: {e}") from e

        return removed

    def __len__(self) -> int:
        return len(self.read_lines())
