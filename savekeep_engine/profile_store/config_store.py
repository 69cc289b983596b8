"""
Line-based file implementation of ProfileStore.

Each profile is a directory under the data root. Its tracked path set lives in
a ``config`` file holding one absolute path per line.

File format
-----------
- Lines are stripped; blank and whitespace-only lines are ignored.
- Duplicates collapse on load.
- Writes are sorted, joined with ``\\n`` and replaced atomically
  (temp file + ``os.replace``).

Threading
---------
Every mutation is load, merge, rewrite with no locking. Callers serialize
operations per profile (see ``savekeep_engine.profile_lock``).
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from ..paths_and_safety import (
    ProfilePaths,
    SafetyViolationError,
    ensure_data_root,
    resolve_profile_paths,
)
from .api import ProfileStore
from .errors import ProfileExistsError, UnknownProfileError, UnknownTrackedPathError

logger = logging.getLogger(__name__)


def parse_tracked_paths(text: str) -> list[str]:
    """
    Parse ``config`` file content into a sorted, deduplicated path list.

    Parameters
    ----------
    text:
        Raw file content.

    Returns
    -------
    list[str]
        Non-blank stripped lines, deduplicated and sorted.
    """
    return sorted({line.strip() for line in text.splitlines() if line.strip()})


def render_tracked_paths(paths: Iterable[str]) -> str:
    """Render a tracked path set in ``config`` file format."""
    return "\n".join(sorted(set(paths)))


@dataclass(frozen=True, slots=True)
class ConfigFileProfileStore(ProfileStore):
    """
    ProfileStore backed by profile directories and ``config`` files.

    Parameters
    ----------
    data_root:
        Directory holding one subdirectory per profile. Created if absent.
    """

    data_root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_root", ensure_data_root(self.data_root))

    def paths_for(self, profile_name: str) -> ProfilePaths:
        """Resolve the paths of a profile without touching the filesystem."""
        return resolve_profile_paths(profile_name, data_root=self.data_root)

    def list_profiles(self) -> Sequence[str]:
        """See ProfileStore.list_profiles."""
        return sorted(entry.name for entry in self.data_root.iterdir() if entry.is_dir())

    def create_profile(self, profile_name: str) -> None:
        """See ProfileStore.create_profile."""
        paths = self.paths_for(profile_name)
        try:
            paths.profile_root.mkdir()
        except FileExistsError as exc:
            raise ProfileExistsError(f"Profile already exists: {paths.profile_root.name}") from exc
        logger.info("Created profile %s", paths.profile_root)

    def delete_profile(self, profile_name: str) -> None:
        """See ProfileStore.delete_profile."""
        paths = self._existing(profile_name)
        shutil.rmtree(paths.profile_root)
        logger.info("Deleted profile %s", paths.profile_root)

    def load_tracked_paths(self, profile_name: str) -> Sequence[str]:
        """See ProfileStore.load_tracked_paths."""
        paths = self._existing(profile_name)
        return _read_config(paths.config_path)

    def add_tracked_paths(self, profile_name: str, paths: Iterable[str]) -> Sequence[str]:
        """See ProfileStore.add_tracked_paths."""
        incoming = _clean_new_paths(paths)
        profile_paths = self._existing(profile_name)
        if not incoming:
            return _read_config(profile_paths.config_path)

        current = set(_read_config(profile_paths.config_path))
        merged = sorted(current.union(incoming))
        if len(merged) != len(current):
            _write_config_atomic(profile_paths.config_path, merged)
            logger.info(
                "Profile %s now tracks %d paths (+%d)",
                profile_paths.profile_root.name,
                len(merged),
                len(merged) - len(current),
            )
        return merged

    def remove_tracked_path(self, profile_name: str, path: str) -> Sequence[str]:
        """See ProfileStore.remove_tracked_path."""
        target = path.strip()
        if not target:
            raise SafetyViolationError("Tracked path must not be empty.")
        profile_paths = self._existing(profile_name)

        current = _read_config(profile_paths.config_path)
        if target not in current:
            raise UnknownTrackedPathError(
                f"Path is not tracked by {profile_paths.profile_root.name!r}: {target}"
            )

        remaining = [p for p in current if p != target]
        _write_config_atomic(profile_paths.config_path, remaining)
        logger.info("Profile %s stopped tracking %s", profile_paths.profile_root.name, target)
        return remaining

    def _existing(self, profile_name: str) -> ProfilePaths:
        paths = self.paths_for(profile_name)
        if not paths.profile_root.is_dir():
            raise UnknownProfileError(f"Unknown profile: {paths.profile_root.name}")
        return paths


def open_profile_store(data_root: Path | None = None) -> ConfigFileProfileStore:
    """
    Convenience constructor resolving the default data root.

    Parameters
    ----------
    data_root:
        Optional override for the SaveKeep data root.

    Returns
    -------
    ConfigFileProfileStore
        Ready-to-use store; the data root exists afterwards.
    """
    return ConfigFileProfileStore(data_root=ensure_data_root(data_root))


def _clean_new_paths(paths: Iterable[str]) -> set[str]:
    cleaned: set[str] = set()
    for raw in paths:
        value = str(raw).strip()
        if not value:
            continue
        if not os.path.isabs(value):
            raise SafetyViolationError(f"Tracked paths must be absolute: {value!r}")
        cleaned.add(value)
    return cleaned


def _read_config(config_path: Path) -> list[str]:
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    return parse_tracked_paths(text)


def _write_config_atomic(config_path: Path, paths: Sequence[str]) -> None:
    temp_path = config_path.with_name(config_path.name + ".tmp")
    try:
        with temp_path.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(render_tracked_paths(paths))
        os.replace(temp_path, config_path)
    except OSError:
        temp_path.unlink(missing_ok=True)
        raise
