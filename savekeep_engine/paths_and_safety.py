"""
Filesystem path policy and safety gates.

This module is the single choke point for determining where SaveKeep keeps its
own data:

- Runtime data lives under a SaveKeep "data root" (default: ~/game_saves).
- Each profile is one directory directly under the data root.
- Profile and archive names are validated before any filesystem access.

The data root is always passed in explicitly; nothing in the engine caches it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import SaveKeepError

DATA_ROOT_ENV_VAR = "SAVEKEEP_DATA_ROOT"
DEFAULT_DATA_ROOT_NAME = "game_saves"

CONFIG_FILE_NAME = "config"
JOURNAL_FILE_NAME = "restore_journal.jsonl"
LOCK_FILE_NAME = ".savekeep.lock"
LOG_FILE_NAME = "savekeep.log"
ARCHIVE_EXTENSION = ".zip"

_FORBIDDEN_NAME_CHARACTERS = '\\/:*?"<>|'


@dataclass(frozen=True, slots=True)
class ProfilePaths:
    """
    Concrete resolved paths for a SaveKeep profile.

    Attributes
    ----------
    data_root:
        The root directory holding every profile.
    profile_root:
        Directory of the named profile; archives live directly inside it.
    config_path:
        Newline-separated tracked path set.
    journal_path:
        Append-only JSONL journal of restore transactions.
    lock_path:
        Caller-side lock file serializing operations on this profile.
    """

    data_root: Path
    profile_root: Path
    config_path: Path
    journal_path: Path
    lock_path: Path


class SafetyViolationError(SaveKeepError):
    """Raised when an input is rejected by validation before any I/O."""


def default_data_root() -> Path:
    """
    Resolve the default SaveKeep data root.

    Preference order:
    1) $SAVEKEEP_DATA_ROOT if set
    2) ~/game_saves
    """
    override = os.environ.get(DATA_ROOT_ENV_VAR)
    if override and override.strip():
        return Path(override.strip()).expanduser()
    return Path.home() / DEFAULT_DATA_ROOT_NAME


def ensure_data_root(data_root: Path | None = None) -> Path:
    """
    Return the data root, creating it when missing.

    Parameters
    ----------
    data_root:
        Optional override for the default data root.

    Returns
    -------
    pathlib.Path
        Resolved, existing data root directory.
    """
    root = (data_root or default_data_root()).expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def validate_profile_name(profile_name: str) -> str:
    """
    Validate a profile name and return it stripped.

    Raises
    ------
    SafetyViolationError
        If the name is empty or could escape the data root.
    """
    return _validate_simple_name(profile_name, kind="Profile name")


def validate_archive_name(archive_name: str) -> str:
    """
    Validate an archive file name and return it stripped.

    Raises
    ------
    SafetyViolationError
        If the name is empty or is not a plain file name.
    """
    return _validate_simple_name(archive_name, kind="Archive name")


def resolve_profile_paths(profile_name: str, data_root: Path | None = None) -> ProfilePaths:
    """
    Resolve and return all filesystem paths for a given profile.

    Parameters
    ----------
    profile_name:
        Name of the profile. Must be a non-empty, simple folder name.
    data_root:
        Optional override for the SaveKeep data root.

    Returns
    -------
    ProfilePaths
        Resolved profile paths. Nothing is created on disk.

    Raises
    ------
    SafetyViolationError
        If profile_name is unsafe or resolution violates safety rules.
    """
    profile = validate_profile_name(profile_name)

    root = (data_root or default_data_root()).expanduser().resolve()
    profile_root = (root / profile).resolve()

    _assert_within(root, profile_root, purpose="profile root")
    return ProfilePaths(
        data_root=root,
        profile_root=profile_root,
        config_path=profile_root / CONFIG_FILE_NAME,
        journal_path=profile_root / JOURNAL_FILE_NAME,
        lock_path=profile_root / LOCK_FILE_NAME,
    )


def resolve_archive_path(paths: ProfilePaths, archive_name: str) -> Path:
    """Return the on-disk path of an archive inside a profile directory."""
    name = validate_archive_name(archive_name)
    candidate = paths.profile_root / name
    _assert_within(paths.profile_root, candidate.resolve(), purpose="archive path")
    return candidate


def _validate_simple_name(name: str, *, kind: str) -> str:
    value = name.strip()
    if not value:
        raise SafetyViolationError(f"{kind} must not be empty.")
    if any(ch in value for ch in _FORBIDDEN_NAME_CHARACTERS):
        raise SafetyViolationError(f"{kind} contains invalid characters: {value!r}")
    if value in {".", ".."}:
        raise SafetyViolationError(f"{kind} must not be '.' or '..'.")
    return value


def _assert_within(base: Path, candidate: Path, purpose: str) -> None:
    """Ensure candidate is within base after resolution."""
    try:
        candidate.relative_to(base)
    except ValueError as exc:
        raise SafetyViolationError(
            f"Unsafe path for {purpose}: {candidate} is not within {base}"
        ) from exc
