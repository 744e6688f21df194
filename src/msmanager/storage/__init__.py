"""Storage layer for msmanager.

This module provides the content-addressable archive, the label registry
and the version log, the last two built on append-only text tables.
"""

from msmanager.storage.archive_store import ArchiveStore, compute_digest, digest_file
from msmanager.storage.label_registry import LabelEntry, LabelRegistry
from msmanager.storage.table import AppendOnlyTable
from msmanager.storage.version_log import VersionLog, VersionRecord

__all__ = [
    "AppendOnlyTable",
    "ArchiveStore",
    "compute_digest",
    "digest_file",
    "LabelEntry",
    "LabelRegistry",
    "VersionLog",
    "VersionRecord",
]
