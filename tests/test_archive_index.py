from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

import savekeep_engine.archive_index as archive_index
from savekeep_engine.archive_index import list_archives, remove_archive, rename_archive
from savekeep_engine.clock import FixedClock
from savekeep_engine.errors import ArchiveIndexError
from savekeep_engine.paths_and_safety import SafetyViolationError

CLOCK = FixedClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


def _profile(tmp_path: Path, name: str = "p") -> Path:
    root = tmp_path / name
    root.mkdir()
    return root


def _archive(profile_root: Path, name: str, *, mtime: float, data: bytes = b"zip") -> Path:
    path = profile_root / name
    path.write_bytes(data)
    os.utime(path, (mtime, mtime))
    return path


def test_list_archives_newest_first(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "p_old.zip", mtime=1_000)
    _archive(root, "p_new_auto.zip", mtime=3_000)
    _archive(root, "p_mid.zip", mtime=2_000)

    summaries = list_archives("p", data_root=tmp_path)

    assert [s.name for s in summaries] == ["p_new_auto.zip", "p_mid.zip", "p_old.zip"]
    assert [s.auto for s in summaries] == [True, False, False]
    assert summaries[0].path == root.resolve() / "p_new_auto.zip"
    assert summaries[0].size_bytes == 3
    assert summaries[0].modified_epoch_seconds == 3_000


def test_list_archives_ignores_other_files(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "p_1.zip", mtime=1_000)
    (root / "config").write_text("/a", encoding="utf-8")
    (root / "restore_journal.jsonl").write_text("{}\n", encoding="utf-8")
    (root / "folder.zip").mkdir()

    assert [s.name for s in list_archives("p", data_root=tmp_path)] == ["p_1.zip"]


def test_list_archives_of_unknown_profile_fails(tmp_path: Path) -> None:
    with pytest.raises(ArchiveIndexError):
        list_archives("missing", data_root=tmp_path)


def test_rename_appends_extension(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "p_1.zip", mtime=1_000, data=b"payload")

    final = rename_archive("p", "p_1.zip", "before boss", data_root=tmp_path, clock=CLOCK)

    assert final == "before boss.zip"
    assert not (root / "p_1.zip").exists()
    assert (root / "before boss.zip").read_bytes() == b"payload"


def test_rename_to_same_name_is_a_no_op(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "keep.zip", mtime=1_000)

    assert rename_archive("p", "keep.zip", "keep", data_root=tmp_path, clock=CLOCK) == "keep.zip"
    assert (root / "keep.zip").exists()


def test_rename_never_overwrites_existing_archive(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "a.zip", mtime=1_000, data=b"A")
    _archive(root, "b.zip", mtime=2_000, data=b"B")
    _archive(root, "c.zip", mtime=3_000, data=b"C")

    first = rename_archive("p", "a.zip", "b.zip", data_root=tmp_path, clock=CLOCK)
    second = rename_archive("p", "c.zip", "b", data_root=tmp_path, clock=CLOCK)

    assert first == "b_20260101_120000.zip"
    assert second == "b_20260101_120000_1.zip"
    assert (root / "b.zip").read_bytes() == b"B"
    assert (root / first).read_bytes() == b"A"
    assert (root / second).read_bytes() == b"C"
    assert len(list_archives("p", data_root=tmp_path)) == 3


def test_rename_gives_up_after_bounded_attempts(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(archive_index, "MAX_RENAME_ATTEMPTS", 3)
    root = _profile(tmp_path)
    _archive(root, "src.zip", mtime=1_000)
    for taken in ("b.zip", "b_20260101_120000.zip", "b_20260101_120000_1.zip"):
        _archive(root, taken, mtime=1_000)

    with pytest.raises(ArchiveIndexError):
        rename_archive("p", "src.zip", "b", data_root=tmp_path, clock=CLOCK)

    assert (root / "src.zip").exists()


def test_rename_missing_archive_fails(tmp_path: Path) -> None:
    _profile(tmp_path)
    with pytest.raises(ArchiveIndexError):
        rename_archive("p", "nope.zip", "x", data_root=tmp_path, clock=CLOCK)


@pytest.mark.parametrize("bad_name", ["", "  ", "../x", "sub/x"])
def test_rename_rejects_unsafe_names(bad_name: str, tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "a.zip", mtime=1_000)

    with pytest.raises(SafetyViolationError):
        rename_archive("p", "a.zip", bad_name, data_root=tmp_path, clock=CLOCK)

    assert (root / "a.zip").exists()


def test_remove_archive(tmp_path: Path) -> None:
    root = _profile(tmp_path)
    _archive(root, "a.zip", mtime=1_000)
    _archive(root, "b.zip", mtime=2_000)

    remove_archive("p", "a.zip", data_root=tmp_path)

    assert [s.name for s in list_archives("p", data_root=tmp_path)] == ["b.zip"]


def test_remove_missing_archive_fails(tmp_path: Path) -> None:
    _profile(tmp_path)
    with pytest.raises(ArchiveIndexError):
        remove_archive("p", "a.zip", data_root=tmp_path)
