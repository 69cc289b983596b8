"""
Domain exceptions for SaveKeep.

Notes
-----
Engine code raises domain exceptions for every expected failure mode. Plain
``OSError`` is reserved for fatal I/O failures, which propagate unmodified so
callers see the underlying cause.
"""

from __future__ import annotations


class SaveKeepError(RuntimeError):
    """Base exception for all SaveKeep domain failures."""


class SnapshotError(SaveKeepError):
    """Raised when a snapshot archive cannot be built."""


class ArchiveMemberNameError(SnapshotError):
    """Raised when a source path normalizes to an empty in-archive name."""


class EmptySnapshotError(SnapshotError):
    """Raised when a snapshot is requested for an empty resolved file set."""


class SnapshotExistsError(SnapshotError):
    """Raised when the composed archive file name already exists on disk."""


class ArchiveIndexError(SaveKeepError):
    """Raised when an archive cannot be listed, renamed or removed."""
