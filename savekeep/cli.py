"""
Command-line interface for SaveKeep.

Notes
-----
The CLI is intentionally thin. It parses arguments, serializes mutating commands
per profile with the profile lock, and delegates to engine modules.

Exit codes
----------
- 0: success
- 1: rejected by validation (bad names, relative or untracked paths)
- 2: any other SaveKeep or I/O failure
"""

from __future__ import annotations

import argparse
import os
from datetime import datetime
from pathlib import Path
from typing import Callable

from savekeep_engine.archive_index import list_archives, remove_archive, rename_archive
from savekeep_engine.backup.service import run_backup
from savekeep_engine.errors import SaveKeepError
from savekeep_engine.logging_setup import configure_logging
from savekeep_engine.paths_and_safety import (
    LOG_FILE_NAME,
    SafetyViolationError,
    ensure_data_root,
    resolve_profile_paths,
    validate_profile_name,
)
from savekeep_engine.profile_lock import acquire_profile_lock
from savekeep_engine.profile_store.config_store import open_profile_store
from savekeep_engine.restore.errors import RestoreDeletionError
from savekeep_engine.restore.service import run_restore


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="savekeep",
        description="Snapshot and restore tracked save files per profile",
    )
    parser.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help="Directory holding all profiles. Defaults to $SAVEKEEP_DATA_ROOT or ~/game_saves.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase console log output (-v info, -vv debug).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    profiles_p = sub.add_parser("profiles", help="List profiles")
    profiles_p.set_defaults(handler=_cmd_profiles)

    create_p = sub.add_parser("create", help="Create an empty profile")
    _add_profile_argument(create_p)
    create_p.set_defaults(handler=_cmd_create)

    delete_p = sub.add_parser("delete", help="Delete a profile and all of its archives")
    _add_profile_argument(delete_p)
    _add_lock_arguments(delete_p)
    delete_p.set_defaults(handler=_cmd_delete)

    paths_p = sub.add_parser("paths", help="List the paths a profile tracks")
    _add_profile_argument(paths_p)
    paths_p.set_defaults(handler=_cmd_paths)

    track_p = sub.add_parser("track", help="Add files or directories to a profile")
    _add_profile_argument(track_p)
    track_p.add_argument("paths", nargs="+", help="Files or directories to track")
    _add_lock_arguments(track_p)
    track_p.set_defaults(handler=_cmd_track)

    untrack_p = sub.add_parser("untrack", help="Stop tracking a path")
    _add_profile_argument(untrack_p)
    untrack_p.add_argument("path", help="Tracked path to remove, exactly as listed by 'paths'")
    _add_lock_arguments(untrack_p)
    untrack_p.set_defaults(handler=_cmd_untrack)

    backup_p = sub.add_parser("backup", help="Snapshot the tracked paths of a profile")
    _add_profile_argument(backup_p)
    _add_lock_arguments(backup_p)
    backup_p.set_defaults(handler=_cmd_backup)

    restore_p = sub.add_parser(
        "restore",
        help="Restore an archive (a safeguard snapshot of the current state is taken first)",
    )
    _add_profile_argument(restore_p)
    restore_p.add_argument("--archive", required=True, help="Archive file name to restore")
    _add_lock_arguments(restore_p)
    restore_p.set_defaults(handler=_cmd_restore)

    archives_p = sub.add_parser("archives", help="List a profile's archives, newest first")
    _add_profile_argument(archives_p)
    archives_p.set_defaults(handler=_cmd_archives)

    rename_p = sub.add_parser("rename", help="Rename an archive without overwriting")
    _add_profile_argument(rename_p)
    rename_p.add_argument("--archive", required=True, help="Current archive file name")
    rename_p.add_argument("--to", required=True, dest="new_name", help="New archive name")
    _add_lock_arguments(rename_p)
    rename_p.set_defaults(handler=_cmd_rename)

    remove_p = sub.add_parser("remove", help="Delete a single archive")
    _add_profile_argument(remove_p)
    remove_p.add_argument("--archive", required=True, help="Archive file name to delete")
    _add_lock_arguments(remove_p)
    remove_p.set_defaults(handler=_cmd_remove)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        # Names are checked before the data root or log file is created.
        if getattr(args, "profile", None) is not None:
            validate_profile_name(args.profile)
        data_root = ensure_data_root(args.data_root)
        configure_logging(verbosity=args.verbose, log_file=data_root / LOG_FILE_NAME)
        args.data_root = data_root
        handler: Callable[[argparse.Namespace], int] = args.handler
        return handler(args)
    except SafetyViolationError as exc:
        print(f"ERROR: {exc}")
        return 1
    except (SaveKeepError, OSError) as exc:
        print(f"ERROR: {exc}")
        return 2


def _add_profile_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--profile", required=True, help="Profile name")


def _add_lock_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--force",
        action="store_true",
        help="Break the profile lock if it is provably stale.",
    )
    parser.add_argument(
        "--break-lock",
        action="store_true",
        help="Break the profile lock even if it is not provably stale.",
    )


def _locked(args: argparse.Namespace, command: str, action: Callable[[], int]) -> int:
    """Run ``action`` holding the profile lock, if the profile exists."""
    paths = resolve_profile_paths(args.profile, data_root=args.data_root)
    if not paths.profile_root.is_dir():
        # The engine reports the unknown profile.
        return action()
    with acquire_profile_lock(
        lock_path=paths.lock_path,
        profile_name=paths.profile_root.name,
        command=command,
        force=args.force,
        break_lock=args.break_lock,
    ):
        return action()


def _cmd_profiles(args: argparse.Namespace) -> int:
    for name in open_profile_store(args.data_root).list_profiles():
        print(name)
    return 0


def _cmd_create(args: argparse.Namespace) -> int:
    store = open_profile_store(args.data_root)
    store.create_profile(args.profile)
    print(f"Created profile: {store.paths_for(args.profile).profile_root}")
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    store = open_profile_store(args.data_root)

    def _action() -> int:
        store.delete_profile(args.profile)
        print(f"Deleted profile: {args.profile.strip()}")
        return 0

    return _locked(args, "delete", _action)


def _cmd_paths(args: argparse.Namespace) -> int:
    for path in open_profile_store(args.data_root).load_tracked_paths(args.profile):
        print(path)
    return 0


def _cmd_track(args: argparse.Namespace) -> int:
    store = open_profile_store(args.data_root)
    absolute = [os.path.abspath(os.path.expanduser(p)) for p in args.paths]

    def _action() -> int:
        tracked = store.add_tracked_paths(args.profile, absolute)
        print(f"Tracking {len(tracked)} path(s).")
        return 0

    return _locked(args, "track", _action)


def _cmd_untrack(args: argparse.Namespace) -> int:
    store = open_profile_store(args.data_root)

    def _action() -> int:
        remaining = store.remove_tracked_path(args.profile, args.path)
        print(f"Tracking {len(remaining)} path(s).")
        return 0

    return _locked(args, "untrack", _action)


def _cmd_backup(args: argparse.Namespace) -> int:
    def _action() -> int:
        result = run_backup(args.profile, data_root=args.data_root)
        print("Backup complete:")
        print(f"  Archive : {result.archive_path}")
        print(f"  Members : {len(result.members)}")
        print(f"  Digest  : {result.digest}")
        return 0

    return _locked(args, "backup", _action)


def _cmd_restore(args: argparse.Namespace) -> int:
    def _action() -> int:
        try:
            result = run_restore(args.profile, args.archive, data_root=args.data_root)
        except RestoreDeletionError as exc:
            print("Restore completed with errors:")
            print(str(exc))
            return 2
        print("Restore complete:")
        print(f"  Archive   : {result.archive_name}")
        print(f"  Safeguard : {result.safeguard.archive_name}")
        print(f"  Deleted   : {len(result.deleted)}")
        print(f"  Restored  : {len(result.restored)}")
        return 0

    return _locked(args, "restore", _action)


def _cmd_archives(args: argparse.Namespace) -> int:
    for summary in list_archives(args.profile, data_root=args.data_root):
        modified = datetime.fromtimestamp(summary.modified_epoch_seconds).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        marker = "  [auto]" if summary.auto else ""
        print(f"{modified}  {summary.size_bytes:>10}  {summary.name}{marker}")
    return 0


def _cmd_rename(args: argparse.Namespace) -> int:
    def _action() -> int:
        final = rename_archive(args.profile, args.archive, args.new_name, data_root=args.data_root)
        print(f"Renamed: {args.archive} -> {final}")
        return 0

    return _locked(args, "rename", _action)


def _cmd_remove(args: argparse.Namespace) -> int:
    def _action() -> int:
        remove_archive(args.profile, args.archive, data_root=args.data_root)
        print(f"Removed: {args.archive}")
        return 0

    return _locked(args, "remove", _action)


if __name__ == "__main__":
    raise SystemExit(main())
