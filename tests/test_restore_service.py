from __future__ import annotations

import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pytest

from savekeep_engine.archive_index import list_archives
from savekeep_engine.backup.build import encode_restore_target
from savekeep_engine.backup.service import run_backup
from savekeep_engine.clock import FixedClock
from savekeep_engine.errors import SaveKeepError
from savekeep_engine.paths_and_safety import SafetyViolationError
from savekeep_engine.profile_store.config_store import open_profile_store
from savekeep_engine.restore.errors import (
    ArchiveNotFoundError,
    RestoreDeletionError,
    RestoreError,
    RestoreTargetError,
    SafeguardSnapshotError,
)
from savekeep_engine.restore.journal import read_journal
from savekeep_engine.restore.service import run_restore

BACKUP_CLOCK = FixedClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
RESTORE_CLOCK = FixedClock(datetime(2026, 1, 1, 12, 5, 0, tzinfo=timezone.utc))


@dataclass(frozen=True)
class _Setup:
    data_root: Path
    profile_root: Path
    live: Path
    archive_name: str


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


@pytest.fixture()
def setup(tmp_path: Path) -> _Setup:
    data_root = tmp_path / "data"
    live = tmp_path / "live"
    _write(live / "options.ini", b"volume=7\n")
    _write(live / "saves" / "slot1.sav", b"\x00slot-one\xff")
    _write(live / "saves" / "sub" / "slot2.sav", b"slot-two")

    store = open_profile_store(data_root)
    store.create_profile("game")
    store.add_tracked_paths("game", [str(live / "options.ini"), str(live / "saves")])
    result = run_backup("game", data_root=data_root, clock=BACKUP_CLOCK)

    return _Setup(
        data_root=data_root,
        profile_root=store.paths_for("game").profile_root,
        live=live,
        archive_name=result.archive_name,
    )


def _mutate_live_state(live: Path) -> None:
    (live / "options.ini").unlink()
    (live / "saves" / "slot1.sav").write_bytes(b"overwritten")
    _write(live / "saves" / "new.sav", b"created after backup")


def _events(setup: _Setup) -> list[str]:
    return [r["event"] for r in read_journal(setup.profile_root / "restore_journal.jsonl")]


def _auto_archives(setup: _Setup) -> list[str]:
    return [s.name for s in list_archives("game", data_root=setup.data_root) if s.auto]


def test_restore_reproduces_original_bytes_at_original_paths(setup: _Setup) -> None:
    _mutate_live_state(setup.live)

    result = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert (setup.live / "options.ini").read_bytes() == b"volume=7\n"
    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"\x00slot-one\xff"
    assert (setup.live / "saves" / "sub" / "slot2.sav").read_bytes() == b"slot-two"
    assert sorted(result.restored) == sorted(
        [
            setup.live / "options.ini",
            setup.live / "saves" / "slot1.sav",
            setup.live / "saves" / "sub" / "slot2.sav",
        ]
    )


def test_restore_deletes_files_created_after_the_archive(setup: _Setup) -> None:
    _mutate_live_state(setup.live)

    result = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert not (setup.live / "saves" / "new.sav").exists()
    assert setup.live / "saves" / "new.sav" in result.deleted


def test_restore_takes_safeguard_of_current_state(setup: _Setup) -> None:
    _mutate_live_state(setup.live)

    result = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert result.safeguard.auto
    assert result.safeguard.archive_name.startswith("game_20260101_120500_")
    assert _auto_archives(setup) == [result.safeguard.archive_name]
    with zipfile.ZipFile(result.safeguard.archive_path) as zf:
        # options.ini is gone, so the anchor narrows to the saves directory.
        assert zf.read("slot1.sav") == b"overwritten"
        assert zf.read("new.sav") == b"created after backup"


def test_restoring_the_safeguard_recovers_pre_restore_state(setup: _Setup) -> None:
    _mutate_live_state(setup.live)
    first = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    later = FixedClock(datetime(2026, 1, 1, 12, 10, 0, tzinfo=timezone.utc))
    run_restore("game", first.safeguard.archive_name, data_root=setup.data_root, clock=later)

    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"overwritten"
    assert (setup.live / "saves" / "new.sav").read_bytes() == b"created after backup"
    assert not (setup.live / "options.ini").exists()


def test_journal_records_every_phase(setup: _Setup) -> None:
    result = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert _events(setup) == [
        "restore_started",
        "safeguard_created",
        "preflight_passed",
        "live_files_deleted",
        "extraction_started",
        "restore_completed",
    ]
    records = read_journal(setup.profile_root / "restore_journal.jsonl")
    assert all(r["archive"] == setup.archive_name for r in records)
    assert records[1]["data"]["safeguard_archive"] == result.safeguard.archive_name


def test_safeguard_survives_extraction_failure(
    setup: _Setup, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _fail(_archive_path: Path) -> list[Path]:
        raise OSError("disk full")

    monkeypatch.setattr("savekeep_engine.restore.service.extract_to_targets", _fail)

    with pytest.raises(OSError):
        run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert len(_auto_archives(setup)) == 1
    assert _events(setup)[-1] == "extraction_failed"


def test_safeguard_failure_leaves_live_files_untouched(
    setup: _Setup, monkeypatch: pytest.MonkeyPatch
) -> None:
    _mutate_live_state(setup.live)

    def _fail(*_args: object, **_kwargs: object) -> None:
        raise SaveKeepError("cannot snapshot")

    monkeypatch.setattr("savekeep_engine.restore.service.run_backup", _fail)

    with pytest.raises(SafeguardSnapshotError) as excinfo:
        run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert isinstance(excinfo.value.__cause__, SaveKeepError)
    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"overwritten"
    assert (setup.live / "saves" / "new.sav").exists()
    assert _events(setup) == ["restore_started", "safeguard_failed"]


def test_archive_without_restore_targets_is_rejected_before_deletion(setup: _Setup) -> None:
    with zipfile.ZipFile(setup.profile_root / "broken.zip", "w") as zf:
        zf.writestr("saves/slot1.sav", b"no target")

    with pytest.raises(RestoreTargetError):
        run_restore("game", "broken.zip", data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"\x00slot-one\xff"
    assert len(_auto_archives(setup)) == 1
    assert _events(setup)[-1] == "preflight_failed"


def test_relative_restore_target_is_rejected(setup: _Setup) -> None:
    with zipfile.ZipFile(setup.profile_root / "relative.zip", "w") as zf:
        info = zipfile.ZipInfo("a.txt")
        info.comment = encode_restore_target("relative/a.txt")
        zf.writestr(info, b"x")

    with pytest.raises(RestoreTargetError):
        run_restore("game", "relative.zip", data_root=setup.data_root, clock=RESTORE_CLOCK)


def test_missing_archive_fails_before_safeguard(setup: _Setup) -> None:
    with pytest.raises(ArchiveNotFoundError):
        run_restore("game", "nope.zip", data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert _auto_archives(setup) == []


def test_invalid_archive_name_is_rejected(setup: _Setup) -> None:
    with pytest.raises(SafetyViolationError):
        run_restore("game", "../escape.zip", data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert _auto_archives(setup) == []


def test_deletion_failures_are_aggregated_after_extraction(
    setup: _Setup, monkeypatch: pytest.MonkeyPatch
) -> None:
    _mutate_live_state(setup.live)
    blocked = {setup.live / "saves" / "slot1.sav", setup.live / "saves" / "new.sav"}
    original_unlink = Path.unlink

    def _unlink(self: Path, missing_ok: bool = False) -> None:
        if self in blocked:
            raise PermissionError(13, "Permission denied", str(self))
        original_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, "unlink", _unlink)

    with pytest.raises(RestoreDeletionError) as excinfo:
        run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    err = excinfo.value
    assert {f.path for f in err.failures} == blocked
    assert err.safeguard_archive in _auto_archives(setup)
    # Extraction still ran for every entry.
    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"\x00slot-one\xff"
    assert (setup.live / "options.ini").read_bytes() == b"volume=7\n"
    # The undeletable orphan is left in place.
    assert (setup.live / "saves" / "new.sav").exists()
    assert _events(setup)[-1] == "restore_completed"


def test_restore_with_no_live_files_uses_empty_safeguard(setup: _Setup) -> None:
    (setup.live / "options.ini").unlink()
    (setup.live / "saves" / "slot1.sav").unlink()
    (setup.live / "saves" / "sub" / "slot2.sav").unlink()

    result = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert result.safeguard.members == ()
    assert result.deleted == ()
    assert (setup.live / "saves" / "sub" / "slot2.sav").read_bytes() == b"slot-two"


def test_non_zip_archive_is_rejected_before_deletion(setup: _Setup) -> None:
    (setup.profile_root / "garbage.zip").write_bytes(b"not a zip file")

    with pytest.raises(RestoreError):
        run_restore("game", "garbage.zip", data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert (setup.live / "options.ini").exists()


def test_restoring_twice_in_one_second_reuses_safeguard(setup: _Setup) -> None:
    first = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)
    second = run_restore("game", setup.archive_name, data_root=setup.data_root, clock=RESTORE_CLOCK)

    assert second.safeguard.archive_name == first.safeguard.archive_name
    assert _auto_archives(setup) == [first.safeguard.archive_name]
    assert (setup.live / "saves" / "slot1.sav").read_bytes() == b"\x00slot-one\xff"
    assert _events(setup).count("restore_completed") == 2
