from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from savekeep_engine.errors import SaveKeepError


class RestoreError(SaveKeepError):
    """Base class for restore-domain errors."""


class ArchiveNotFoundError(RestoreError):
    """Raised when the archive to restore does not exist in the profile."""


class SafeguardSnapshotError(RestoreError):
    """Raised when the pre-restore safeguard snapshot fails; no live file was touched."""


class RestoreTargetError(RestoreError):
    """Raised when an archive entry carries no restore-target metadata."""


@dataclass(frozen=True, slots=True)
class DeletionFailure:
    """
    A live file that could not be deleted before extraction.

    Attributes
    ----------
    path:
        Live file path.
    message:
        Underlying error text.
    """

    path: Path
    message: str


class RestoreDeletionError(RestoreError):
    """
    Raised after extraction when one or more live files could not be deleted.

    The archive content has been written; the safeguard snapshot holds the
    pre-restore state of every file.
    """

    def __init__(self, failures: Sequence[DeletionFailure], *, safeguard_archive: str) -> None:
        self.failures = tuple(failures)
        self.safeguard_archive = safeguard_archive
        lines = [f"{len(self.failures)} live file(s) could not be deleted before restore:"]
        lines.extend(f"  {f.path}: {f.message}" for f in self.failures)
        lines.append(f"Pre-restore state is preserved in {safeguard_archive}.")
        super().__init__("\n".join(lines))
