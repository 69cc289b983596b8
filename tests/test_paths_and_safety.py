from __future__ import annotations

from pathlib import Path

import pytest

from savekeep_engine.paths_and_safety import (
    DATA_ROOT_ENV_VAR,
    SafetyViolationError,
    default_data_root,
    ensure_data_root,
    resolve_archive_path,
    resolve_profile_paths,
)


def test_default_data_root_prefers_environment_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv(DATA_ROOT_ENV_VAR, str(tmp_path / "saves"))

    assert default_data_root() == tmp_path / "saves"


def test_default_data_root_falls_back_to_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv(DATA_ROOT_ENV_VAR, raising=False)
    monkeypatch.setattr("savekeep_engine.paths_and_safety.Path.home", lambda: tmp_path)

    assert default_data_root() == tmp_path / "game_saves"


def test_blank_environment_override_is_ignored(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv(DATA_ROOT_ENV_VAR, "   ")
    monkeypatch.setattr("savekeep_engine.paths_and_safety.Path.home", lambda: tmp_path)

    assert default_data_root() == tmp_path / "game_saves"


def test_ensure_data_root_creates_directory(tmp_path: Path) -> None:
    root = ensure_data_root(tmp_path / "a" / "b")
    assert root.is_dir()
    assert root == (tmp_path / "a" / "b").resolve()


def test_profile_paths_resolve_within_data_root(tmp_path: Path) -> None:
    paths = resolve_profile_paths("  default ", data_root=tmp_path)
    root = tmp_path.resolve()

    assert paths.data_root == root
    assert paths.profile_root == root / "default"
    assert paths.config_path == root / "default" / "config"
    assert paths.journal_path.parent == paths.profile_root
    assert paths.lock_path.parent == paths.profile_root
    # Resolution never touches the filesystem.
    assert not paths.profile_root.exists()


@pytest.mark.parametrize("bad_name", ["", " ", ".", "..", "a/b", r"a\b", "a:b", "a|b", "a*"])
def test_profile_name_rejected(bad_name: str, tmp_path: Path) -> None:
    with pytest.raises(SafetyViolationError):
        resolve_profile_paths(bad_name, data_root=tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_resolve_archive_path_accepts_plain_file_name(tmp_path: Path) -> None:
    paths = resolve_profile_paths("p", data_root=tmp_path)
    assert resolve_archive_path(paths, "p_x.zip") == paths.profile_root / "p_x.zip"


@pytest.mark.parametrize("bad_name", ["", "..", "../escape.zip", r"..\escape.zip", "c:x.zip"])
def test_resolve_archive_path_rejects_unsafe_names(bad_name: str, tmp_path: Path) -> None:
    paths = resolve_profile_paths("p", data_root=tmp_path)
    with pytest.raises(SafetyViolationError):
        resolve_archive_path(paths, bad_name)
