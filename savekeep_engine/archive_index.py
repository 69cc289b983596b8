"""
Archive listing, renaming and removal for a profile.

These are filesystem metadata operations only: no archive is opened and no
digest is checked.

Policy
------
- Listing includes regular files with the archive extension, newest first by
  modification time (ties by name, descending).
- Renaming never overwrites. On collision a timestamp suffix is appended, then
  a counter, within a fixed number of attempts.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .backup.build import is_auto_archive_name
from .clock import Clock, SystemClock, format_archive_timestamp
from .errors import ArchiveIndexError
from .paths_and_safety import (
    ARCHIVE_EXTENSION,
    ProfilePaths,
    resolve_archive_path,
    resolve_profile_paths,
    validate_archive_name,
)

logger = logging.getLogger(__name__)

MAX_RENAME_ATTEMPTS = 100


@dataclass(frozen=True, slots=True)
class ArchiveSummary:
    """
    Summary information about one archive of a profile.

    Attributes
    ----------
    name:
        Archive file name.
    path:
        Absolute path to the archive.
    size_bytes:
        Archive size in bytes.
    modified_epoch_seconds:
        Last modification time.
    auto:
        True for safeguard snapshots taken before a restore.
    """

    name: str
    path: Path
    size_bytes: int
    modified_epoch_seconds: float
    auto: bool


def list_archives(profile_name: str, *, data_root: Path | None = None) -> list[ArchiveSummary]:
    """
    List a profile's archives, most recent first.

    Parameters
    ----------
    profile_name:
        Profile to list.
    data_root:
        Optional override for the SaveKeep data root.

    Returns
    -------
    list[ArchiveSummary]
        Archives sorted by modification time, descending.

    Raises
    ------
    ArchiveIndexError
        If the profile directory does not exist.
    OSError
        If the directory cannot be read.
    """
    paths = _existing_profile(profile_name, data_root)

    summaries: list[ArchiveSummary] = []
    with os.scandir(paths.profile_root) as entries:
        for entry in entries:
            if not entry.name.endswith(ARCHIVE_EXTENSION):
                continue
            if not entry.is_file():
                continue
            st = entry.stat()
            summaries.append(
                ArchiveSummary(
                    name=entry.name,
                    path=Path(entry.path),
                    size_bytes=int(st.st_size),
                    modified_epoch_seconds=float(st.st_mtime),
                    auto=is_auto_archive_name(entry.name),
                )
            )

    summaries.sort(key=lambda s: (s.modified_epoch_seconds, s.name), reverse=True)
    return summaries


def rename_archive(
    profile_name: str,
    old_name: str,
    new_name: str,
    *,
    data_root: Path | None = None,
    clock: Clock | None = None,
) -> str:
    """
    Rename an archive without ever overwriting another file.

    Parameters
    ----------
    profile_name:
        Profile owning the archive.
    old_name:
        Current archive file name.
    new_name:
        Requested name; the archive extension is appended if missing.
    data_root:
        Optional override for the SaveKeep data root.
    clock:
        Time source for collision suffixes.

    Returns
    -------
    str
        The name the archive actually received.

    Raises
    ------
    SafetyViolationError
        If either name is empty or not a plain file name.
    ArchiveIndexError
        If the archive does not exist or no free name is found.
    """
    old = validate_archive_name(old_name)
    requested = validate_archive_name(new_name)
    if not requested.endswith(ARCHIVE_EXTENSION):
        requested += ARCHIVE_EXTENSION

    paths = _existing_profile(profile_name, data_root)
    source = resolve_archive_path(paths, old)
    if not source.is_file():
        raise ArchiveIndexError(f"Archive not found: {old}")
    if requested == old:
        return old

    clock_to_use = clock if clock is not None else SystemClock()
    for candidate in _candidate_names(requested, clock_to_use):
        target = resolve_archive_path(paths, candidate)
        if os.path.lexists(target):
            continue
        source.rename(target)
        logger.info("Renamed archive %s -> %s", old, candidate)
        return candidate

    raise ArchiveIndexError(
        f"No free archive name for {requested!r} after {MAX_RENAME_ATTEMPTS} attempts."
    )


def remove_archive(profile_name: str, archive_name: str, *, data_root: Path | None = None) -> None:
    """
    Delete a single archive file.

    Raises
    ------
    SafetyViolationError
        If the archive name is empty or not a plain file name.
    ArchiveIndexError
        If the archive does not exist.
    """
    name = validate_archive_name(archive_name)
    paths = _existing_profile(profile_name, data_root)
    target = resolve_archive_path(paths, name)
    try:
        target.unlink()
    except FileNotFoundError as exc:
        raise ArchiveIndexError(f"Archive not found: {name}") from exc
    logger.info("Removed archive %s", target)


def _candidate_names(requested: str, clock: Clock) -> Iterator[str]:
    stem = requested[: -len(ARCHIVE_EXTENSION)]
    yield requested
    stamp = format_archive_timestamp(clock)
    yield f"{stem}_{stamp}{ARCHIVE_EXTENSION}"
    for counter in range(1, MAX_RENAME_ATTEMPTS - 1):
        yield f"{stem}_{stamp}_{counter}{ARCHIVE_EXTENSION}"


def _existing_profile(profile_name: str, data_root: Path | None) -> ProfilePaths:
    paths = resolve_profile_paths(profile_name, data_root=data_root)
    if not paths.profile_root.is_dir():
        raise ArchiveIndexError(f"Unknown profile: {paths.profile_root.name}")
    return paths
