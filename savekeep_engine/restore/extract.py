"""
Archive extraction to recorded absolute locations.

Every entry of a snapshot archive stores the absolute path it was read from in
its zip comment. Extraction writes each entry back to exactly that path; the
entry's in-archive name is informational only.

Safety posture
--------------
- An entry without restore-target metadata is a structural error: the target is
  unknowable, so extraction stops at that entry.
- Each file is written to a sibling temp file and moved into place with
  ``os.replace``, so a failed write never leaves a truncated target.
"""

from __future__ import annotations

import logging
import os
import zipfile
from dataclasses import dataclass
from pathlib import Path

from savekeep_engine.backup.build import decode_restore_target

from .errors import RestoreError, RestoreTargetError

logger = logging.getLogger(__name__)

RESTORED_FILE_MODE = 0o644


@dataclass(frozen=True, slots=True)
class RestoreEntry:
    """
    One archive entry and the absolute path it restores to.

    Attributes
    ----------
    member_name:
        Name inside the zip.
    target_path:
        Absolute restore location.
    """

    member_name: str
    target_path: Path


def read_restore_entries(archive_path: Path) -> list[RestoreEntry]:
    """
    List the restore targets of an archive without extracting anything.

    Parameters
    ----------
    archive_path:
        Snapshot archive.

    Returns
    -------
    list[RestoreEntry]
        Entries in archive order.

    Raises
    ------
    RestoreTargetError
        If any entry lacks usable restore-target metadata.
    RestoreError
        If the file is not a readable zip archive.
    """
    with _open_archive(archive_path) as zf:
        return [_entry_for(info) for info in zf.infolist()]


def extract_to_targets(archive_path: Path) -> list[Path]:
    """
    Write every archive entry to its recorded absolute path.

    Parameters
    ----------
    archive_path:
        Snapshot archive.

    Returns
    -------
    list[pathlib.Path]
        Paths written, in archive order.

    Raises
    ------
    RestoreTargetError
        On the first entry without restore-target metadata. Entries before it
        have already been written.
    RestoreError
        If the file is not a readable zip archive.
    OSError
        If an entry cannot be read or a target cannot be written.
    """
    written: list[Path] = []
    with _open_archive(archive_path) as zf:
        for info in zf.infolist():
            entry = _entry_for(info)
            data = zf.read(info)
            _write_file_atomic(entry.target_path, data)
            written.append(entry.target_path)
            logger.debug("Restored %s -> %s", entry.member_name, entry.target_path)
    return written


def _open_archive(archive_path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive_path, "r")
    except zipfile.BadZipFile as exc:
        raise RestoreError(f"Not a readable zip archive: {archive_path}") from exc


def _entry_for(info: zipfile.ZipInfo) -> RestoreEntry:
    target = decode_restore_target(info.comment) if info.comment else ""
    if not target.strip():
        raise RestoreTargetError(f"Archive entry {info.filename!r} has no restore target path.")
    if not os.path.isabs(target):
        raise RestoreTargetError(
            f"Archive entry {info.filename!r} has a non-absolute restore target: {target!r}"
        )
    return RestoreEntry(member_name=info.filename, target_path=Path(target))


def _write_file_atomic(target_path: Path, data: bytes) -> None:
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target_path.with_name(target_path.name + ".savekeep-tmp")
    try:
        with temp_path.open("wb") as handle:
            handle.write(data)
        os.chmod(temp_path, RESTORED_FILE_MODE)
        os.replace(temp_path, target_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
