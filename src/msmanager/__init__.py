"""msmanager - Label-based version tracking for documents.

msmanager keeps successive revisions of a document under a label, archives
every revision by content digest, and can restore or undo them from two
append-only tables stored next to the working files.
"""

__version__ = "0.1.0"
__author__ = "msmanager Contributors"

__all__ = ["__version__", "__author__"]
