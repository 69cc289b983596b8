"""
Tracked path resolution for snapshots.

This module expands a profile's tracked paths into the concrete set of files to
archive. It performs no writes.

Policy
------
- A tracked path that no longer exists is skipped; anything else that fails to
  stat or walk aborts resolution with the original ``OSError``.
- Directories are walked recursively; only files become members.
- Directory symlinks are not followed. File symlinks are included.
- The result is deduplicated and sorted by the string form of the path, which
  fixes member order and therefore the content digest.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)


def resolve_file_set(tracked_paths: Iterable[str | Path]) -> list[Path]:
    """
    Resolve tracked paths into a sorted, deduplicated list of absolute file paths.

    Parameters
    ----------
    tracked_paths:
        Absolute paths of files or directories.

    Returns
    -------
    list[pathlib.Path]
        Every existing regular file named directly or found beneath a tracked
        directory, sorted lexicographically by absolute path.

    Raises
    ------
    OSError
        For any stat or walk failure other than "does not exist".
    """
    found: set[str] = set()

    for tracked in tracked_paths:
        path = os.fspath(tracked)
        try:
            st = os.stat(path)
        except FileNotFoundError:
            logger.debug("Skipping missing tracked path: %s", path)
            continue

        if stat.S_ISDIR(st.st_mode):
            found.update(_walk_files(path))
        elif stat.S_ISREG(st.st_mode):
            found.add(path)
        else:
            logger.debug("Skipping non-regular tracked path: %s", path)

    return [Path(p) for p in sorted(found)]


def _walk_files(root: str) -> Iterable[str]:
    for directory_path, directory_names, file_names in os.walk(
        root,
        topdown=True,
        onerror=_raise_walk_error,
        followlinks=False,
    ):
        directory_names.sort()
        file_names.sort()
        for file_name in file_names:
            path = os.path.join(directory_path, file_name)
            try:
                st = os.stat(path)
            except FileNotFoundError:
                logger.debug("Skipping dangling entry: %s", path)
                continue
            if stat.S_ISREG(st.st_mode):
                yield path


def _raise_walk_error(exc: OSError) -> None:
    raise exc
