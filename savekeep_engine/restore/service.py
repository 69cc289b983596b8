"""
Restore orchestration for SaveKeep.

A restore replaces the live state of a profile's tracked files with the content
of one of its archives. The sequence is fixed:

1. validate names and locate the archive (no writes);
2. take a safeguard snapshot of the current state (``auto=True``); if this
   fails, nothing else happens;
3. preflight the requested archive: every entry must carry a restore target;
4. delete every live file captured by the safeguard, collecting failures;
5. extract each archive entry to its recorded absolute path.

Deletion failures do not stop extraction. They are reported together, after
extraction, as a single RestoreDeletionError.

Notes
-----
The sequence is not atomic. A crash between steps 4 and 5 leaves tracked files
deleted; the journal records which safeguard archive holds the pre-restore
state, and restoring that archive recovers it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from savekeep_engine.backup.build import SnapshotResult
from savekeep_engine.backup.service import run_backup
from savekeep_engine.clock import Clock, SystemClock
from savekeep_engine.errors import SaveKeepError
from savekeep_engine.paths_and_safety import (
    resolve_archive_path,
    validate_archive_name,
    validate_profile_name,
)
from savekeep_engine.profile_store.config_store import open_profile_store
from savekeep_engine.profile_store.errors import UnknownProfileError

from .errors import (
    ArchiveNotFoundError,
    DeletionFailure,
    RestoreDeletionError,
    RestoreError,
    SafeguardSnapshotError,
)
from .extract import extract_to_targets, read_restore_entries
from .journal import RestoreJournal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RestoreResult:
    """
    Outcome of a completed restore.

    Attributes
    ----------
    profile_name:
        Restored profile.
    archive_name:
        Archive that was restored.
    safeguard:
        Safeguard snapshot taken before any live file was touched.
    deleted:
        Live files removed before extraction.
    restored:
        Files written from the archive.
    """

    profile_name: str
    archive_name: str
    safeguard: SnapshotResult
    deleted: tuple[Path, ...]
    restored: tuple[Path, ...]


def run_restore(
    profile_name: str,
    archive_name: str,
    *,
    data_root: Path | None = None,
    clock: Clock | None = None,
) -> RestoreResult:
    """
    Restore a profile from one of its archives.

    Parameters
    ----------
    profile_name:
        Profile owning the archive.
    archive_name:
        File name of the archive inside the profile directory.
    data_root:
        Optional override for the SaveKeep data root.
    clock:
        Time source for the safeguard archive name and journal.

    Returns
    -------
    RestoreResult
        Summary of the restore.

    Raises
    ------
    SafetyViolationError
        If a name is invalid (raised before any I/O).
    UnknownProfileError
        If the profile does not exist.
    ArchiveNotFoundError
        If the archive does not exist.
    SafeguardSnapshotError
        If the safeguard snapshot fails; live files are untouched.
    RestoreTargetError
        If an archive entry has no restore target.
    RestoreDeletionError
        If extraction completed but some live files could not be deleted first.
    OSError
        If extraction fails on I/O.
    """
    profile = validate_profile_name(profile_name)
    archive = validate_archive_name(archive_name)

    store = open_profile_store(data_root)
    paths = store.paths_for(profile)
    if not paths.profile_root.is_dir():
        raise UnknownProfileError(f"Unknown profile: {profile}")

    archive_path = resolve_archive_path(paths, archive)
    if not archive_path.is_file():
        raise ArchiveNotFoundError(f"Archive not found in profile {profile!r}: {archive}")

    clock_to_use = clock if clock is not None else SystemClock()
    journal = RestoreJournal(paths.journal_path, clock=clock_to_use, archive_name=archive)
    journal.append("restore_started", {"profile_name": profile, "archive_path": str(archive_path)})

    safeguard = _take_safeguard(
        profile, data_root=paths.data_root, clock=clock_to_use, journal=journal
    )

    try:
        entries = read_restore_entries(archive_path)
    except RestoreError as exc:
        journal.append("preflight_failed", {"error_type": type(exc).__name__, "error": str(exc)})
        raise
    journal.append("preflight_passed", {"entries": len(entries)})

    deleted, failures = _delete_live_files(safeguard)
    journal.append(
        "live_files_deleted",
        {
            "deleted": len(deleted),
            "failed": [{"path": str(f.path), "message": f.message} for f in failures],
        },
    )

    journal.append("extraction_started", {"entries": len(entries)})
    try:
        restored = extract_to_targets(archive_path)
    except (RestoreError, OSError) as exc:
        journal.append("extraction_failed", {"error_type": type(exc).__name__, "error": str(exc)})
        logger.error(
            "Restore of %s failed during extraction; pre-restore state is in %s",
            archive,
            safeguard.archive_name,
        )
        raise

    journal.append(
        "restore_completed",
        {"restored": len(restored), "deletion_failures": len(failures)},
    )
    logger.info("Restored %d files of %s from %s", len(restored), profile, archive)

    if failures:
        raise RestoreDeletionError(failures, safeguard_archive=safeguard.archive_name)

    return RestoreResult(
        profile_name=profile,
        archive_name=archive,
        safeguard=safeguard,
        deleted=tuple(deleted),
        restored=tuple(restored),
    )


def _take_safeguard(
    profile: str,
    *,
    data_root: Path,
    clock: Clock,
    journal: RestoreJournal,
) -> SnapshotResult:
    try:
        safeguard = run_backup(
            profile,
            data_root=data_root,
            clock=clock,
            auto=True,
            allow_empty=True,
        )
    except (SaveKeepError, OSError) as exc:
        journal.append("safeguard_failed", {"error_type": type(exc).__name__, "error": str(exc)})
        raise SafeguardSnapshotError(
            f"Safeguard snapshot failed; nothing was restored: {exc}"
        ) from exc

    journal.append(
        "safeguard_created",
        {
            "safeguard_archive": safeguard.archive_name,
            "members": len(safeguard.members),
            "digest": safeguard.digest,
        },
    )
    return safeguard


def _delete_live_files(safeguard: SnapshotResult) -> tuple[list[Path], list[DeletionFailure]]:
    deleted: list[Path] = []
    failures: list[DeletionFailure] = []
    for member in safeguard.members:
        try:
            member.absolute_path.unlink()
        except FileNotFoundError:
            logger.debug("Live file already gone: %s", member.absolute_path)
            continue
        except OSError as exc:
            logger.warning("Could not delete %s: %s", member.absolute_path, exc)
            failures.append(DeletionFailure(path=member.absolute_path, message=str(exc)))
            continue
        deleted.append(member.absolute_path)
    return deleted, failures
