"""
SaveKeep GUI app.

Three panes backed by the engine adapter: profiles, the selected profile's
tracked paths, and its archives (newest first).
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QGroupBox,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from gui.adapters.engine_adapter import EngineAdapter
from gui.collaborators import choose_directory, choose_files, reveal_in_file_manager
from savekeep_engine.logging_setup import configure_logging
from savekeep_engine.paths_and_safety import LOG_FILE_NAME, ensure_data_root


def _format_mtime(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


class AppWindow(QWidget):
    """
    Main window for the SaveKeep GUI.

    Responsibilities
    ----------------
    - Manage profiles and their tracked paths
    - Back up, restore, rename and delete archives
    - Shut down the engine worker thread on close
    """

    def __init__(self, data_root: Path | None = None) -> None:
        super().__init__()
        self.setWindowTitle("SaveKeep")
        self.resize(1100, 640)

        self._engine = EngineAdapter(data_root=data_root)
        self._engine.profiles_loaded.connect(self._on_profiles_loaded)
        self._engine.paths_loaded.connect(self._on_paths_loaded)
        self._engine.archives_loaded.connect(self._on_archives_loaded)
        self._engine.message.connect(self._on_message)
        self._engine.error.connect(self._on_error)

        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)

        splitter = QSplitter(Qt.Horizontal)

        # Profiles
        profiles_box = QGroupBox("Profiles")
        profiles_layout = QVBoxLayout(profiles_box)
        self.profiles = QListWidget()
        self.profiles.currentItemChanged.connect(self._on_profile_selected)
        profiles_layout.addWidget(self.profiles, 1)
        profiles_layout.addLayout(
            _button_row(
                ("New…", self._create_profile),
                ("Delete", self._delete_profile),
                ("Open root", self._reveal_root),
            )
        )
        splitter.addWidget(profiles_box)

        # Tracked paths
        paths_box = QGroupBox("Tracked paths")
        paths_layout = QVBoxLayout(paths_box)
        self.paths = QListWidget()
        paths_layout.addWidget(self.paths, 1)
        paths_layout.addLayout(
            _button_row(
                ("Add files…", self._add_files),
                ("Add folder…", self._add_directory),
                ("Remove", self._remove_path),
            )
        )
        splitter.addWidget(paths_box)

        # Archives
        archives_box = QGroupBox("Archives")
        archives_layout = QVBoxLayout(archives_box)
        self.archives = QListWidget()
        archives_layout.addWidget(self.archives, 1)
        archives_layout.addLayout(
            _button_row(
                ("Back up now", self._backup),
                ("Restore", self._restore),
                ("Rename…", self._rename),
                ("Delete", self._remove_archive),
                ("Reveal", self._reveal_profile),
            )
        )
        splitter.addWidget(archives_box)

        splitter.setSizes([220, 380, 500])
        root.addWidget(splitter, 1)

        self.status = QLabel(f"Data root: {self._engine.data_root}")
        self.status.setStyleSheet("color: #666;")
        root.addWidget(self.status)

        self._engine.request_list_profiles.emit()

    def _selected_profile(self) -> str | None:
        item = self.profiles.currentItem()
        return item.text() if item is not None else None

    def _selected_archive(self) -> str | None:
        item = self.archives.currentItem()
        return str(item.data(Qt.UserRole)) if item is not None else None

    def _require_profile(self) -> str | None:
        profile = self._selected_profile()
        if profile is None:
            QMessageBox.information(self, "SaveKeep", "Select a profile first.")
        return profile

    def _require_archive(self) -> tuple[str, str] | None:
        profile = self._require_profile()
        if profile is None:
            return None
        archive = self._selected_archive()
        if archive is None:
            QMessageBox.information(self, "SaveKeep", "Select an archive first.")
            return None
        return profile, archive

    # Engine results

    def _on_profiles_loaded(self, profiles_obj: object) -> None:
        previous = self._selected_profile()
        self.profiles.blockSignals(True)
        try:
            self.profiles.clear()
            for name in list(profiles_obj):  # type: ignore[call-overload]
                self.profiles.addItem(str(name))
        finally:
            self.profiles.blockSignals(False)

        self.paths.clear()
        self.archives.clear()
        matches = self.profiles.findItems(previous or "", Qt.MatchExactly)
        if matches:
            self.profiles.setCurrentItem(matches[0])
        elif self.profiles.count() > 0:
            self.profiles.setCurrentRow(0)

    def _on_profile_selected(
        self, current: QListWidgetItem | None, _prev: QListWidgetItem | None
    ) -> None:
        self.paths.clear()
        self.archives.clear()
        if current is not None:
            self._engine.request_load_profile.emit(current.text())

    def _on_paths_loaded(self, profile: str, paths_obj: object) -> None:
        if profile != self._selected_profile():
            return
        self.paths.clear()
        for path in list(paths_obj):  # type: ignore[call-overload]
            self.paths.addItem(str(path))

    def _on_archives_loaded(self, profile: str, archives_obj: object) -> None:
        if profile != self._selected_profile():
            return
        self.archives.clear()
        for summary in list(archives_obj):  # type: ignore[call-overload]
            marker = "  [auto]" if summary.auto else ""
            item = QListWidgetItem(
                f"{_format_mtime(summary.modified_epoch_seconds)}  {summary.name}{marker}"
            )
            item.setData(Qt.UserRole, summary.name)
            self.archives.addItem(item)

    def _on_message(self, message: str) -> None:
        self.setEnabled(True)
        self.status.setText(message)

    def _on_error(self, message: str) -> None:
        self.setEnabled(True)
        QMessageBox.critical(self, "SaveKeep", message)

    # Profile actions

    def _create_profile(self) -> None:
        name, ok = QInputDialog.getText(self, "New profile", "Profile name:")
        if ok and name.strip():
            self._engine.request_create_profile.emit(name.strip())

    def _delete_profile(self) -> None:
        profile = self._require_profile()
        if profile is None:
            return
        answer = QMessageBox.question(
            self,
            "Delete profile",
            f"Delete profile {profile!r} and all of its archives?",
        )
        if answer == QMessageBox.Yes:
            self._engine.request_delete_profile.emit(profile)

    def _reveal_root(self) -> None:
        reveal_in_file_manager(self._engine.data_root)

    # Tracked path actions

    def _add_files(self) -> None:
        profile = self._require_profile()
        if profile is None:
            return
        files = choose_files(self)
        if files:
            self._engine.request_add_paths.emit(profile, files)

    def _add_directory(self) -> None:
        profile = self._require_profile()
        if profile is None:
            return
        directory = choose_directory(self)
        if directory:
            self._engine.request_add_paths.emit(profile, [directory])

    def _remove_path(self) -> None:
        profile = self._require_profile()
        item = self.paths.currentItem()
        if profile is None or item is None:
            return
        self._engine.request_remove_path.emit(profile, item.text())

    # Archive actions

    def _backup(self) -> None:
        profile = self._require_profile()
        if profile is None:
            return
        self.status.setText("Backing up…")
        self.setEnabled(False)
        self._engine.request_backup.emit(profile)

    def _restore(self) -> None:
        selected = self._require_archive()
        if selected is None:
            return
        profile, archive = selected
        answer = QMessageBox.question(
            self,
            "Restore",
            f"Replace the tracked files of {profile!r} with {archive}?\n\n"
            "The current state is saved as an [auto] archive first.",
        )
        if answer != QMessageBox.Yes:
            return
        self.status.setText("Restoring…")
        self.setEnabled(False)
        self._engine.request_restore.emit(profile, archive)

    def _rename(self) -> None:
        selected = self._require_archive()
        if selected is None:
            return
        profile, archive = selected
        new_name, ok = QInputDialog.getText(self, "Rename archive", "New name:", text=archive)
        if ok and new_name.strip() and new_name.strip() != archive:
            self._engine.request_rename.emit(profile, archive, new_name.strip())

    def _remove_archive(self) -> None:
        selected = self._require_archive()
        if selected is None:
            return
        profile, archive = selected
        answer = QMessageBox.question(self, "Delete archive", f"Delete {archive}?")
        if answer == QMessageBox.Yes:
            self._engine.request_remove.emit(profile, archive)

    def _reveal_profile(self) -> None:
        profile = self._require_profile()
        if profile is not None:
            reveal_in_file_manager(self._engine.data_root / profile)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        """
        Handle window close by shutting down the engine worker.

        Parameters
        ----------
        event:
            Qt close event.
        """
        try:
            self._engine.shutdown()
        finally:
            super().closeEvent(event)


def _button_row(*buttons: tuple[str, object]) -> QHBoxLayout:
    row = QHBoxLayout()
    for label, slot in buttons:
        button = QPushButton(label)
        button.clicked.connect(slot)
        row.addWidget(button)
    row.addStretch(1)
    return row


def main() -> int:
    """
    Run the SaveKeep GUI application.

    Returns
    -------
    int
        Qt application exit code.
    """
    data_root = ensure_data_root()
    configure_logging(log_file=data_root / LOG_FILE_NAME)

    app = QApplication(sys.argv)
    w = AppWindow(data_root)
    w.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
