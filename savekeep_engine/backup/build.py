"""
Snapshot archive construction.

A snapshot is a single deflate-compressed zip written directly into the profile
directory. Every entry carries the absolute path it was read from in its zip
comment field; restore depends on that field.

Design constraints
------------------
- The whole archive is built in memory and written in one shot after the zip
  is finalized, so a failure never leaves a partial archive on disk.
- The content digest covers file bytes only, in sorted member order. Names,
  metadata and timestamps do not affect it.
- Source files are only read, never modified.
"""

from __future__ import annotations

import hashlib
import io
import logging
import os
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from savekeep_engine.clock import ARCHIVE_TIMESTAMP_FORMAT, Clock
from savekeep_engine.errors import EmptySnapshotError, SnapshotExistsError
from savekeep_engine.paths_and_safety import ARCHIVE_EXTENSION, validate_profile_name

from .normalize import archive_member_name, compute_anchor

logger = logging.getLogger(__name__)

AUTO_MARKER = "_auto"


@dataclass(frozen=True, slots=True)
class SnapshotMember:
    """
    One entry of a snapshot archive.

    Attributes
    ----------
    relative_name:
        Forward-slash name inside the zip.
    absolute_path:
        Original location the entry is restored to.
    size_bytes:
        Uncompressed size.
    """

    relative_name: str
    absolute_path: Path
    size_bytes: int


@dataclass(frozen=True, slots=True)
class SnapshotResult:
    """
    Result of building a snapshot archive.

    Attributes
    ----------
    archive_path:
        Path of the written archive.
    digest:
        MD5 hex digest of member contents in member order.
    members:
        Archived members in order.
    auto:
        True for safeguard snapshots taken before a restore.
    created_at:
        Clock time the archive name was derived from.
    """

    archive_path: Path
    digest: str
    members: tuple[SnapshotMember, ...]
    auto: bool
    created_at: datetime

    @property
    def archive_name(self) -> str:
        """Archive file name inside the profile directory."""
        return self.archive_path.name


def compose_archive_name(
    *, profile_name: str, created_at: datetime, digest: str, auto: bool
) -> str:
    """
    Compose ``{profile}_{YYYYMMDD_HHMMSS}_{digest}[_auto].zip``.
    """
    marker = AUTO_MARKER if auto else ""
    stamp = created_at.strftime(ARCHIVE_TIMESTAMP_FORMAT)
    return f"{profile_name}_{stamp}_{digest}{marker}{ARCHIVE_EXTENSION}"


def is_auto_archive_name(archive_name: str) -> bool:
    """Return True if the name carries the safeguard marker."""
    return archive_name.endswith(AUTO_MARKER + ARCHIVE_EXTENSION)


def encode_restore_target(path: str | os.PathLike[str]) -> bytes:
    """Encode an absolute path for storage in a zip entry comment."""
    return os.fsencode(os.fspath(path))


def decode_restore_target(comment: bytes) -> str:
    """Decode a zip entry comment written by :func:`encode_restore_target`."""
    return os.fsdecode(comment)


def build_snapshot(
    files: Sequence[Path],
    *,
    profile_name: str,
    profile_root: Path,
    auto: bool,
    clock: Clock,
    allow_empty: bool = False,
) -> SnapshotResult:
    """
    Pack a resolved file set into a new archive in ``profile_root``.

    Parameters
    ----------
    files:
        Absolute file paths, sorted (see ``resolve_file_set``).
    profile_name:
        Profile name, used as the archive name prefix.
    profile_root:
        Existing profile directory the archive is written into.
    auto:
        Mark the archive as a safeguard snapshot.
    clock:
        Time source for the archive name.
    allow_empty:
        Permit an archive with no members. Only the restore safeguard uses this.

    Returns
    -------
    SnapshotResult
        Description of the written archive.

    Raises
    ------
    EmptySnapshotError
        If ``files`` is empty and ``allow_empty`` is False.
    ArchiveMemberNameError
        If a path normalizes to an empty member name.
    SnapshotExistsError
        If a user archive with the composed name already exists. A safeguard
        (``auto``) build reuses the existing archive instead: its name carries
        the same content digest.
    OSError
        If any source file cannot be read or the archive cannot be written.
    """
    profile = validate_profile_name(profile_name)
    if not files:
        if not allow_empty:
            raise EmptySnapshotError(f"Profile {profile!r} has no files to snapshot.")
        logger.warning("Profile %r resolved to no files; writing an empty archive.", profile)

    anchor = compute_anchor([str(p) for p in files])
    hasher = hashlib.md5()
    members: list[SnapshotMember] = []

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for file_path in files:
            name = archive_member_name(file_path, anchor)
            info = zipfile.ZipInfo.from_file(file_path, arcname=name, strict_timestamps=False)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.comment = encode_restore_target(file_path)

            data = Path(file_path).read_bytes()
            zf.writestr(info, data)
            hasher.update(data)

            members.append(
                SnapshotMember(
                    relative_name=name,
                    absolute_path=Path(file_path),
                    size_bytes=len(data),
                )
            )

    digest = hasher.hexdigest()
    created_at = clock.now()
    archive_name = compose_archive_name(
        profile_name=profile, created_at=created_at, digest=digest, auto=auto
    )
    archive_path = profile_root / archive_name

    try:
        _write_archive_exclusive(archive_path, buffer.getvalue())
    except SnapshotExistsError:
        if not auto:
            raise
        # Same second, same digest: the existing safeguard already holds this state.
        logger.info("Reusing safeguard archive %s (%d members)", archive_path, len(members))
    else:
        logger.info(
            "Wrote %sarchive %s (%d members)",
            "safeguard " if auto else "",
            archive_path,
            len(members),
        )

    return SnapshotResult(
        archive_path=archive_path,
        digest=digest,
        members=tuple(members),
        auto=auto,
        created_at=created_at,
    )


def _write_archive_exclusive(archive_path: Path, payload: bytes) -> None:
    """Write archive bytes, refusing to overwrite and removing partial output."""
    try:
        handle = archive_path.open("xb")
    except FileExistsError as exc:
        raise SnapshotExistsError(f"Archive already exists: {archive_path}") from exc

    try:
        with handle:
            handle.write(payload)
    except OSError:
        archive_path.unlink(missing_ok=True)
        raise
