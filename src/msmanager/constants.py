"""Constants used throughout msmanager."""

# Version
VERSION = "0.1.0"

# Directory names
DATA_DIR = "msmanager-data"
ARCHIVES_DIR = "archives"

# File names
LABELS_TABLE = "labels-table"
VERSIONS_TABLE = "versions-table"
ARCHIVE_SUFFIX = ".gz"
RESTORED_PREFIX = "restored_"

# Placeholder written in every field a track record has no value for
SENTINEL = "none"

# Hash algorithm
HASH_ALGORITHM = "sha256"
HASH_LENGTH = 64  # SHA-256 produces 64 hex characters
MIN_DIGEST_PREFIX = 7

# Compression
GZIP_LEVEL = 6
READ_CHUNK_SIZE = 1024 * 1024

# Stored filename: <template>_<version>_<initials><ext>
DEFAULT_INITIALS = "XX"

# Record timestamps
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Environment variables read by the CLI
ENV_AUTHOR = "MSMANAGER_AUTHOR"
ENV_INITIALS = "MSMANAGER_INITIALS"

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2
EXIT_DATA_ERROR = 3
EXIT_INTERRUPTED = 130

# Table headers, in column order
LABELS_HEADER = ("LABEL", "BASENAME")
VERSIONS_HEADER = (
    "DATE",
    "TIME",
    "LABEL",
    "VERSION",
    "ORIGFILE",
    "FILE",
    "AUTHOR",
    "ID",
)
