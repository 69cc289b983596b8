"""Qt adapter for the SaveKeep engine.

The GUI talks to this adapter via signals/slots so engine calls never block the
UI thread.

Threading model
--------------
- A single worker QObject lives on a dedicated QThread.
- Requests are queued onto that thread, so engine operations run one at a time;
  this is the serialization the engine expects from its callers.
- After every mutation the worker re-emits the affected listing so views stay
  in sync with disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import cast

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from savekeep_engine.archive_index import list_archives, remove_archive, rename_archive
from savekeep_engine.backup.service import run_backup
from savekeep_engine.errors import SaveKeepError
from savekeep_engine.profile_store.config_store import open_profile_store
from savekeep_engine.restore.service import run_restore


class EngineWorker(QObject):
    """Worker that owns the profile store and runs in a background thread."""

    profiles_loaded = Signal(object)  # list[str]
    paths_loaded = Signal(str, object)  # profile, list[str]
    archives_loaded = Signal(str, object)  # profile, list[ArchiveSummary]
    message = Signal(str)
    error = Signal(str)

    def __init__(self, data_root: Path | None) -> None:
        super().__init__()
        self._store = open_profile_store(data_root)
        self._data_root = self._store.data_root

    @property
    def data_root(self) -> Path:
        """Resolved data root the worker operates on."""
        return self._data_root

    @Slot()
    def list_profiles(self) -> None:
        """List profiles and emit results."""
        try:
            profiles = list(self._store.list_profiles())
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.profiles_loaded.emit(profiles)

    @Slot(str)
    def create_profile(self, profile: str) -> None:
        """Create a profile and refresh the profile list."""
        try:
            self._store.create_profile(profile)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.list_profiles()

    @Slot(str)
    def delete_profile(self, profile: str) -> None:
        """Delete a profile and refresh the profile list."""
        try:
            self._store.delete_profile(profile)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.list_profiles()

    @Slot(str)
    def load_profile(self, profile: str) -> None:
        """Emit the tracked paths and archives of a profile."""
        try:
            paths = list(self._store.load_tracked_paths(profile))
            archives = list_archives(profile, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.paths_loaded.emit(profile, paths)
        self.archives_loaded.emit(profile, archives)

    @Slot(str, object)
    def add_paths(self, profile: str, paths: object) -> None:
        """Track additional paths."""
        try:
            updated = list(self._store.add_tracked_paths(profile, cast("list[str]", paths)))
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.paths_loaded.emit(profile, updated)

    @Slot(str, str)
    def remove_path(self, profile: str, path: str) -> None:
        """Stop tracking a path."""
        try:
            updated = list(self._store.remove_tracked_path(profile, path))
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.paths_loaded.emit(profile, updated)

    @Slot(str)
    def backup(self, profile: str) -> None:
        """Snapshot a profile."""
        try:
            result = run_backup(profile, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.message.emit(f"Backup written: {result.archive_name}")
        self._emit_archives(profile)

    @Slot(str, str)
    def restore(self, profile: str, archive: str) -> None:
        """Restore an archive; a safeguard archive is written first."""
        try:
            result = run_restore(profile, archive, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            self._emit_archives(profile)
            return
        self.message.emit(
            f"Restored {len(result.restored)} file(s). "
            f"Previous state saved as {result.safeguard.archive_name}"
        )
        self._emit_archives(profile)

    @Slot(str, str, str)
    def rename(self, profile: str, archive: str, new_name: str) -> None:
        """Rename an archive."""
        try:
            final = rename_archive(profile, archive, new_name, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.message.emit(f"Renamed to {final}")
        self._emit_archives(profile)

    @Slot(str, str)
    def remove(self, profile: str, archive: str) -> None:
        """Delete an archive."""
        try:
            remove_archive(profile, archive, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self._emit_archives(profile)

    def _emit_archives(self, profile: str) -> None:
        try:
            archives = list_archives(profile, data_root=self._data_root)
        except (SaveKeepError, OSError) as e:
            self.error.emit(str(e))
            return
        self.archives_loaded.emit(profile, archives)


class EngineAdapter(QObject):
    """Qt adapter that marshals engine calls onto a worker thread."""

    # Requests (GUI emits these; wired as queued connections to worker slots)
    request_list_profiles = Signal()
    request_create_profile = Signal(str)
    request_delete_profile = Signal(str)
    request_load_profile = Signal(str)
    request_add_paths = Signal(str, object)
    request_remove_path = Signal(str, str)
    request_backup = Signal(str)
    request_restore = Signal(str, str)
    request_rename = Signal(str, str, str)
    request_remove = Signal(str, str)

    # Results (worker emits; adapter forwards)
    profiles_loaded = Signal(object)
    paths_loaded = Signal(str, object)
    archives_loaded = Signal(str, object)
    message = Signal(str)
    error = Signal(str)

    def __init__(self, data_root: Path | None = None) -> None:
        super().__init__()

        self._thread = QThread()
        self._worker = EngineWorker(data_root=data_root)
        self._worker.moveToThread(self._thread)

        queued = Qt.ConnectionType.QueuedConnection
        self.request_list_profiles.connect(self._worker.list_profiles, type=queued)
        self.request_create_profile.connect(self._worker.create_profile, type=queued)
        self.request_delete_profile.connect(self._worker.delete_profile, type=queued)
        self.request_load_profile.connect(self._worker.load_profile, type=queued)
        self.request_add_paths.connect(self._worker.add_paths, type=queued)
        self.request_remove_path.connect(self._worker.remove_path, type=queued)
        self.request_backup.connect(self._worker.backup, type=queued)
        self.request_restore.connect(self._worker.restore, type=queued)
        self.request_rename.connect(self._worker.rename, type=queued)
        self.request_remove.connect(self._worker.remove, type=queued)

        self._worker.profiles_loaded.connect(self.profiles_loaded)
        self._worker.paths_loaded.connect(self.paths_loaded)
        self._worker.archives_loaded.connect(self.archives_loaded)
        self._worker.message.connect(self.message)
        self._worker.error.connect(self.error)

        self._thread.start()

    @property
    def data_root(self) -> Path:
        """Resolved data root."""
        return self._worker.data_root

    def shutdown(self) -> None:
        """Stop the worker thread cleanly."""
        self._thread.quit()
        self._thread.wait()
