"""Project directory watcher that reports session files once writes settle."""

import logging
import time
from pathlib import Path

from PySide6.QtCore import QObject, Signal, QFileSystemWatcher, QTimer

from claude_session_reader.services.line_scanner import get_file_stats

logger = logging.getLogger(__name__)

STABILITY_THRESHOLD_MS = 300
POLL_INTERVAL_MS = 100


class ProjectFileWatcher(QObject):
    """Watches ``*.jsonl`` files in one project directory.

    A file that is added or changed becomes pending. It is polled every
    ``poll_interval_ms`` and ``file_settled`` fires once its size and mtime
    have held still for ``stability_threshold_ms``. Files present when
    ``start()`` is called do not fire until they change.
    """

    file_settled = Signal(str)  # file_path

    def __init__(
        self,
        directory: str | Path,
        stability_threshold_ms: int = STABILITY_THRESHOLD_MS,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._directory = Path(directory)
        self._stability_threshold = stability_threshold_ms / 1000.0
        self._watcher = QFileSystemWatcher(self)
        self._known: dict[str, tuple[int, float] | None] = {}
        # path -> (snapshot, time the snapshot was last seen to change)
        self._pending: dict[str, tuple[tuple[int, float] | None, float]] = {}
        self._running = False

        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(poll_interval_ms)
        self._poll_timer.timeout.connect(self._poll_pending)

        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        """Start watching; existing session files are recorded but not reported.

        If the directory does not exist yet its parent is watched instead, and
        the directory is picked up once it is created. Files found in it then
        are reported as new.
        """
        self.stop()
        if self._directory.is_dir():
            self._attach()
        elif self._directory.parent.is_dir():
            logger.debug("Watch directory does not exist yet, waiting for it: %s", self._directory)
            self._watcher.addPath(str(self._directory.parent))
        else:
            logger.debug("Watch directory and its parent do not exist: %s", self._directory)
        self._running = True

    def _attach(self):
        self._watcher.addPath(str(self._directory))
        for path in self._list_session_files():
            self._known[path] = self._snapshot(path)
            self._watcher.addPath(path)

    def stop(self):
        """Stop all watching and drop pending changes."""
        if self._watcher.files():
            self._watcher.removePaths(self._watcher.files())
        if self._watcher.directories():
            self._watcher.removePaths(self._watcher.directories())
        self._poll_timer.stop()
        self._known.clear()
        self._pending.clear()
        self._running = False

    def _list_session_files(self) -> list[str]:
        try:
            return sorted(str(p) for p in self._directory.glob("*.jsonl") if p.is_file())
        except OSError as e:
            logger.debug("Failed to list %s: %s", self._directory, e)
            return []

    @staticmethod
    def _snapshot(path: str) -> tuple[int, float] | None:
        stats = get_file_stats(path)
        return (stats.size, stats.mtime) if stats else None

    def _on_file_changed(self, path: str):
        if not self._running:
            return
        snapshot = self._snapshot(path)
        if snapshot is None:
            # Deleted or renamed away
            self._known.pop(path, None)
            self._pending.pop(path, None)
            return
        # Qt drops some files from the watch list after an atomic replace
        if path not in self._watcher.files():
            self._watcher.addPath(path)
        self._mark_pending(path, snapshot)

    def _on_directory_changed(self, path: str):
        if not self._running:
            return
        if path != str(self._directory):
            # Parent changed while waiting for the project directory
            watching = str(self._directory) in self._watcher.directories()
            if not watching and self._directory.is_dir():
                logger.debug("Watch directory appeared: %s", self._directory)
                self._watcher.removePath(path)
                self._watcher.addPath(str(self._directory))
                self._on_directory_changed(str(self._directory))
            return
        current = set(self._list_session_files())
        for removed in set(self._known) - current:
            self._known.pop(removed, None)
            self._pending.pop(removed, None)
        for added in current - set(self._known):
            snapshot = self._snapshot(added)
            self._known[added] = snapshot
            self._watcher.addPath(added)
            self._mark_pending(added, snapshot)

    def _mark_pending(self, path: str, snapshot: tuple[int, float] | None):
        self._pending[path] = (snapshot, time.monotonic())
        if not self._poll_timer.isActive():
            self._poll_timer.start()

    def _poll_pending(self):
        now = time.monotonic()
        settled = []
        for path, (snapshot, since) in list(self._pending.items()):
            current = self._snapshot(path)
            if current is None:
                del self._pending[path]
                self._known.pop(path, None)
            elif current != snapshot:
                self._pending[path] = (current, now)
            elif now - since >= self._stability_threshold:
                del self._pending[path]
                self._known[path] = current
                settled.append(path)

        if not self._pending:
            self._poll_timer.stop()

        for path in settled:
            logger.debug("Session file settled: %s", path)
            self.file_settled.emit(path)
