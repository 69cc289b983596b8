"""
Path normalization for archive members.

Two pure functions, no filesystem access:

- :func:`compute_anchor` finds the tightest common ancestor directory of a
  sorted set of absolute file paths.
- :func:`archive_member_name` turns an absolute path into the portable,
  forward-slash relative name stored inside the zip.
"""

from __future__ import annotations

import os
import re
from typing import Sequence

from savekeep_engine.errors import ArchiveMemberNameError

_DRIVE_PREFIX = re.compile(r"^([A-Za-z]):")


def compute_anchor(paths: Sequence[str | os.PathLike[str]]) -> str:
    """
    Compute the tightest common ancestor directory of ``paths``.

    Parameters
    ----------
    paths:
        Absolute file paths, sorted lexicographically.

    Returns
    -------
    str
        The longest directory every path lies under. A single path yields its
        containing directory. Empty input, or paths with no common root (files
        on different Windows drives), yield ``""``.
    """
    if not paths:
        return ""

    anchor = os.path.dirname(os.fspath(paths[0]))
    for raw in paths[1:]:
        path = os.fspath(raw)
        while anchor and not _is_under(path, anchor):
            parent = os.path.dirname(anchor)
            anchor = "" if parent == anchor else parent
        if not anchor:
            break
    return anchor


def archive_member_name(path: str | os.PathLike[str], anchor: str) -> str:
    """
    Derive the in-archive relative name for ``path``.

    Parameters
    ----------
    path:
        Absolute source file path.
    anchor:
        Anchor directory from :func:`compute_anchor`. Empty means "no anchor":
        the whole path is used.

    Returns
    -------
    str
        Forward-slash name without leading or trailing slashes and without a
        drive-letter colon.

    Raises
    ------
    ArchiveMemberNameError
        If the name is empty after normalization.
    """
    text = os.fspath(path)
    relative = text[len(anchor):] if anchor and _is_under(text, anchor) else text

    relative = relative.replace(os.sep, "/")
    if os.altsep:
        relative = relative.replace(os.altsep, "/")
    relative = _DRIVE_PREFIX.sub(r"\1", relative)
    relative = relative.strip("/")

    if not relative:
        raise ArchiveMemberNameError(
            f"Empty archive member name for {text!r} (anchor {anchor!r})."
        )
    return relative


def _is_under(path: str, anchor: str) -> bool:
    """Return True if ``anchor`` is an ancestor of ``path`` on a component boundary."""
    prefix = anchor if anchor.endswith(os.sep) else anchor + os.sep
    return path.startswith(prefix)
