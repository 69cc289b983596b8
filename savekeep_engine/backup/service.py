"""
Backup orchestration for SaveKeep.

This module coordinates:
- profile path resolution (validation before any I/O)
- loading the profile's tracked path set
- resolving it into a concrete file set
- building and writing the snapshot archive

Safety posture
--------------
- Source files are only read.
- Exactly one new file is written: the archive.
"""

from __future__ import annotations

import logging
from pathlib import Path

from savekeep_engine.clock import Clock, SystemClock
from savekeep_engine.paths_and_safety import validate_profile_name
from savekeep_engine.profile_store.config_store import open_profile_store

from .build import SnapshotResult, build_snapshot
from .resolve import resolve_file_set

logger = logging.getLogger(__name__)


def run_backup(
    profile_name: str,
    *,
    data_root: Path | None = None,
    clock: Clock | None = None,
    auto: bool = False,
    allow_empty: bool = False,
) -> SnapshotResult:
    """
    Snapshot the current state of a profile's tracked paths.

    Parameters
    ----------
    profile_name:
        Profile to snapshot.
    data_root:
        Optional override for the SaveKeep data root.
    clock:
        Time source for the archive name. Defaults to the system clock.
    auto:
        Mark the archive as a safeguard snapshot.
    allow_empty:
        Permit an archive with no members.

    Returns
    -------
    SnapshotResult
        The written archive.

    Raises
    ------
    SafetyViolationError
        If the profile name is invalid.
    UnknownProfileError
        If the profile does not exist.
    SnapshotError
        If the archive cannot be built (empty set, bad member name, name collision).
    OSError
        On any fatal read or write failure.
    """
    validate_profile_name(profile_name)
    store = open_profile_store(data_root)
    paths = store.paths_for(profile_name)
    tracked = store.load_tracked_paths(profile_name)

    files = resolve_file_set(tracked)
    logger.debug(
        "Profile %s: %d tracked paths resolved to %d files",
        paths.profile_root.name,
        len(tracked),
        len(files),
    )

    return build_snapshot(
        files,
        profile_name=paths.profile_root.name,
        profile_root=paths.profile_root,
        auto=auto,
        clock=clock or SystemClock(),
        allow_empty=allow_empty,
    )

