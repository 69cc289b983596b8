"""Domain exceptions for ProfileStore."""

from __future__ import annotations

from savekeep_engine.errors import SaveKeepError
from savekeep_engine.paths_and_safety import SafetyViolationError


class ProfileStoreError(SaveKeepError):
    """Base error for profile store operations."""


class UnknownProfileError(ProfileStoreError):
    """Raised when a profile directory does not exist."""


class ProfileExistsError(ProfileStoreError):
    """Raised when creating a profile whose directory already exists."""


class UnknownTrackedPathError(ProfileStoreError, SafetyViolationError):
    """Raised when removing a path that the profile does not track; rejected as invalid input."""
