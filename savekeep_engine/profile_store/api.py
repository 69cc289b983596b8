"""
ProfileStore public API.

This module defines the persistence surface that front ends (CLI, GUI) use for
profile bookkeeping: the list of profiles and each profile's tracked path set.
Callers speak only in profile names and absolute path strings; the on-disk
format belongs to the implementation.

Notes
-----
- Tracked path sets are semantically unordered; implementations return them
  sorted for stable display.
- Profile deletion also deletes every archive of the profile.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence


class ProfileStore(Protocol):
    """
    Persistence API for profiles and their tracked paths.
    """

    def list_profiles(self) -> Sequence[str]:
        """
        Return known profile names in display order.

        Returns
        -------
        Sequence[str]
            Profile names, sorted.
        """
        raise NotImplementedError

    def create_profile(self, profile_name: str) -> None:
        """
        Create an empty profile.

        Raises
        ------
        ProfileExistsError
            If the profile already exists.
        """
        raise NotImplementedError

    def delete_profile(self, profile_name: str) -> None:
        """
        Delete a profile together with its tracked paths and archives.

        Raises
        ------
        UnknownProfileError
            If the profile does not exist.
        """
        raise NotImplementedError

    def load_tracked_paths(self, profile_name: str) -> Sequence[str]:
        """
        Load the tracked path set of a profile.

        Returns
        -------
        Sequence[str]
            Sorted, deduplicated absolute paths. Empty if nothing is tracked.
        """
        raise NotImplementedError

    def add_tracked_paths(self, profile_name: str, paths: Iterable[str]) -> Sequence[str]:
        """
        Merge paths into the tracked path set and persist it.

        Returns
        -------
        Sequence[str]
            The updated tracked path set.
        """
        raise NotImplementedError

    def remove_tracked_path(self, profile_name: str, path: str) -> Sequence[str]:
        """
        Remove a single path from the tracked path set and persist it.

        Raises
        ------
        UnknownTrackedPathError
            If the path is not tracked.
        """
        raise NotImplementedError
