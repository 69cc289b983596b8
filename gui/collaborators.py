"""
Desktop collaborators used by the SaveKeep window.

These are the OS-facing pieces the engine deliberately knows nothing about:
native file and directory choosers, and "reveal in file manager".
"""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import QFileDialog, QWidget


def choose_files(parent: QWidget | None = None) -> list[str]:
    """
    Ask the user for one or more files.

    Returns
    -------
    list[str]
        Absolute paths; empty if the dialog was cancelled.
    """
    files, _selected_filter = QFileDialog.getOpenFileNames(parent, "Choose files to track")
    return [str(Path(f).absolute()) for f in files]


def choose_directory(parent: QWidget | None = None) -> str | None:
    """
    Ask the user for a directory.

    Returns
    -------
    str | None
        Absolute path, or None if the dialog was cancelled.
    """
    chosen = QFileDialog.getExistingDirectory(parent, "Choose a directory to track")
    if not chosen:
        return None
    return str(Path(chosen).absolute())


def reveal_in_file_manager(path: Path) -> bool:
    """
    Open ``path`` (a directory, or the directory containing a file) in the OS file manager.

    Returns
    -------
    bool
        True if the desktop accepted the request.
    """
    folder = path if path.is_dir() else path.parent
    return QDesktopServices.openUrl(QUrl.fromLocalFile(str(folder)))
