"""
Per-profile lock for SaveKeep front ends.

Engine operations assume they are the only operation running against their
profile. Front ends that may be started more than once (the CLI) hold this lock
around every mutating command.

The lock is a small JSON file created with exclusive-create semantics inside
the profile directory. An existing lock is only broken on request:

- ``force`` breaks a lock whose owner is provably gone (same host, PID not
  running);
- ``break_lock`` breaks any lock, including an unreadable one.
"""

from __future__ import annotations

import json
import os
import platform
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from savekeep_engine.errors import SaveKeepError

LOCK_SCHEMA_VERSION = "savekeep_profile_lock_v1"


class ProfileLockError(SaveKeepError):
    """
    Raised when a profile lock cannot be taken, broken or released.

    Messages are shown to the user as-is and name the flag that overrides the
    refusal.
    """


@dataclass(frozen=True, slots=True)
class ProfileLockInfo:
    """
    Owner record stored in a lock file.

    Attributes
    ----------
    schema_version:
        Lock file schema identifier.
    profile_name:
        Locked profile.
    created_at_utc:
        Acquisition time, ISO 8601 with a trailing 'Z'.
    hostname:
        Host of the owning process.
    pid:
        Owning process ID.
    command:
        CLI command holding the lock, e.g. "restore".
    """

    schema_version: str
    profile_name: str
    created_at_utc: str
    hostname: str
    pid: int
    command: str

    @classmethod
    def for_current_process(cls, *, profile_name: str, command: str) -> ProfileLockInfo:
        now = datetime.now(timezone.utc).replace(microsecond=0)
        return cls(
            schema_version=LOCK_SCHEMA_VERSION,
            profile_name=profile_name,
            created_at_utc=now.strftime("%Y-%m-%dT%H:%M:%SZ"),
            hostname=platform.node(),
            pid=os.getpid(),
            command=command,
        )

    def is_owned_by(self, other: Mapping[str, Any]) -> bool:
        """Return True if ``other`` names the same host and process."""
        return (
            str(other.get("pid")) == str(self.pid)
            and str(other.get("hostname", "")).lower() == self.hostname.lower()
        )


@contextmanager
def acquire_profile_lock(
    *,
    lock_path: Path,
    profile_name: str,
    command: str,
    force: bool = False,
    break_lock: bool = False,
) -> Iterator[ProfileLockInfo]:
    """
    Hold the profile lock for the duration of the ``with`` block.

    Parameters
    ----------
    lock_path:
        Lock file path (``ProfilePaths.lock_path``); its directory must exist.
    profile_name:
        Locked profile, recorded for inspection.
    command:
        Command name recorded in the lock.
    force:
        Break an existing lock that is provably stale.
    break_lock:
        Break an existing lock unconditionally.

    Yields
    ------
    ProfileLockInfo
        The record written to the lock file.

    Raises
    ------
    ProfileLockError
        If an existing lock may not be broken under the given flags, or the
        lock file cannot be written or removed.
    """
    info = ProfileLockInfo.for_current_process(profile_name=profile_name, command=command)
    _take(lock_path, info, force=force, break_lock=break_lock)
    try:
        yield info
    finally:
        _release(lock_path, info)


def read_profile_lock(lock_path: Path) -> dict[str, Any] | None:
    """
    Read a lock file.

    Returns
    -------
    dict | None
        The decoded record, or None if the file is missing or not a JSON object.
    """
    try:
        data = json.loads(lock_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def is_pid_running(pid: int) -> bool | None:
    """
    Report whether ``pid`` is a live process on this host.

    Returns
    -------
    bool | None
        True or False when known, None when it cannot be determined.
    """
    if pid <= 0:
        return None
    if os.name == "nt":
        return _is_pid_running_windows(pid)
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else.
        return True
    except OSError:
        return None
    return True


def _take(lock_path: Path, info: ProfileLockInfo, *, force: bool, break_lock: bool) -> None:
    try:
        _create(lock_path, info)
        return
    except FileExistsError:
        pass
    except OSError as exc:
        raise ProfileLockError(f"Failed to create lock: {lock_path} ({exc})") from exc

    existing = read_profile_lock(lock_path)
    refusal = _refusal(existing, force=force, break_lock=break_lock)
    if refusal is not None:
        raise ProfileLockError(refusal)

    try:
        lock_path.unlink(missing_ok=True)
        _create(lock_path, info)
    except FileExistsError:
        raise ProfileLockError(f"Lock was taken by another process: {lock_path}") from None
    except OSError as exc:
        raise ProfileLockError(f"Failed to replace lock: {lock_path} ({exc})") from exc


def _create(lock_path: Path, info: ProfileLockInfo) -> None:
    with lock_path.open("x", encoding="utf-8", newline="\n") as handle:
        json.dump(asdict(info), handle, sort_keys=True)
        handle.write("\n")


def _release(lock_path: Path, info: ProfileLockInfo) -> None:
    existing = read_profile_lock(lock_path)
    if existing is not None and not info.is_owned_by(existing):
        # Broken and re-taken by someone else meanwhile.
        return
    try:
        lock_path.unlink(missing_ok=True)
    except OSError as exc:
        raise ProfileLockError(f"Failed to release lock: {lock_path} ({exc})") from exc


def _refusal(existing: Mapping[str, Any] | None, *, force: bool, break_lock: bool) -> str | None:
    """Return why an existing lock may not be broken, or None if it may."""
    if break_lock:
        return None
    if existing is None:
        return (
            "Lock exists but could not be read. Re-run with --break-lock if no other "
            "savekeep process is using this profile."
        )

    details = _describe(existing)
    if _is_provably_stale(existing):
        if force:
            return None
        return f"Lock appears to be stale. Re-run with --force to break it.\n{details}"
    return (
        "Profile is in use by another operation. Re-run with --break-lock to override.\n"
        f"{details}"
    )


def _describe(existing: Mapping[str, Any]) -> str:
    keys = ("profile_name", "command", "hostname", "pid", "created_at_utc")
    return "Lock details: " + ", ".join(f"{k}={existing.get(k)!r}" for k in keys if k in existing)


def _is_provably_stale(existing: Mapping[str, Any]) -> bool:
    host = existing.get("hostname")
    pid = existing.get("pid")
    if not isinstance(host, str) or not isinstance(pid, int):
        return False
    if host.lower() != platform.node().lower():
        return False
    return is_pid_running(pid) is False


def _is_pid_running_windows(pid: int) -> bool | None:
    import ctypes
    from ctypes import wintypes

    query_limited_information = 0x1000
    still_active = 259

    kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)
    kernel32.OpenProcess.restype = wintypes.HANDLE
    kernel32.OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]

    handle = kernel32.OpenProcess(query_limited_information, False, pid)
    if not handle:
        # Not running, or running but inaccessible.
        return None
    try:
        code = wintypes.DWORD()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(code)):
            return None
        return code.value == still_active
    finally:
        kernel32.CloseHandle(handle)
