"""Qt signals for cross-component updates."""

from PySide6.QtCore import QObject, Signal


class ProjectSignals(QObject):
    """Signals emitted when editor state changes."""

    media_changed = Signal()
    clips_changed = Signal()
    tracks_changed = Signal()
    selection_changed = Signal()
    preview_changed = Signal()
    metadata_changed = Signal(str)  # file path
    project_loaded = Signal(str)  # project name
    project_closed = Signal()
