"""Label registry for msmanager.

The labels-table binds each label to the filename template its working
files are named after. Lines have two columns::

    LABEL BASENAME
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from msmanager.constants import LABELS_TABLE, SENTINEL
from msmanager.errors import InvalidFieldError, LabelAlreadyExistsError, LabelRegistryError
from msmanager.storage.table import AppendOnlyTable, check_field


@dataclass(frozen=True)
class LabelEntry:
    """One line of the labels-table."""

    label: str
    filename_template: str

    def to_line(self) -> str:
        return f"{self.label} {self.filename_template}"

    @classmethod
    def from_line(cls, line: str) -> "LabelEntry":
        fields = line.split()
        if len(fields) != 2:
            raise LabelRegistryError(f"Malformed labels-table line: {line!r}")
        return cls(label=fields[0], filename_template=fields[1])


class LabelRegistry:
    """Append-only mapping from label to filename template.

    Lookups scan the whole table; labels are few and the table is never
    indexed.

    Attributes:
        table: Underlying append-only table

    Example:
        >>> registry = LabelRegistry(Path("msmanager-data"))
        >>> registry.create("report", "quarterly")
        >>> registry.lookup("report")
        'quarterly'
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.table = AppendOnlyTable(self.data_dir / LABELS_TABLE)

    def all(self) -> List[LabelEntry]:
        """Every label entry in registration order."""
        return [LabelEntry.from_line(line) for line in self.table.read_lines()]

    def lookup(self, label: str) -> Optional[str]:
        """Get the filename template of a label.

        Returns:
            The template, or None if the label was never registered
        """
        for entry in self.all():
            if entry.label == label:
                return entry.filename_template
        return None

    def exists(self, label: str) -> bool:
        return self.lookup(label) is not None

    def create(self, label: str, filename_template: str) -> LabelEntry:
        """Register a new label.

        Raises:
            LabelAlreadyExistsError: If the label is already registered
            InvalidFieldError: If label or template are not single tokens
        """
        check_field("label", label)
        check_field("filename template", filename_template)
        if label == SENTINEL:
            raise InvalidFieldError(f"{SENTINEL!r} is reserved and cannot be used as a label")

        if self.exists(label):
            raise LabelAlreadyExistsError(f"Label already exists: {label}")

        entry = LabelEntry(label=label, filename_template=filename_template)
        self.table.append_line(entry.to_line())
        return entry

    def last(self) -> Optional[LabelEntry]:
        line = self.table.last_line()
        return LabelEntry.from_line(line) if line is not None else None

    def remove_last(self) -> Optional[LabelEntry]:
        """Remove the most recently registered label, whichever it is.

        Callers must know that the last registry append pairs with the
        version record being undone.

        Returns:
            The removed entry, or None if the registry was empty
        """
        line = self.table.remove_last_line()
        return LabelEntry.from_line(line) if line is not None else None
