"""Reader configuration manager wrapping QSettings."""

import logging
from dataclasses import dataclass

from PySide6.QtCore import QObject, Signal, Slot, QSettings

from claude_session_reader.services.line_scanner import MAX_LINES_PER_SCAN, SCAN_TIMEOUT_SECONDS
from claude_session_reader.services.stat_cache import STAT_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "claude_session_reader"

# Default values
DEFAULTS = {
    "general/configDir": "",
    "reader/maxLinesPerScan": MAX_LINES_PER_SCAN,
    "reader/scanTimeoutSeconds": int(SCAN_TIMEOUT_SECONDS),
    "reader/statCacheTtlSeconds": int(STAT_CACHE_TTL_SECONDS),
    "reader/maxConcurrentScans": 8,
    "watcher/stabilityThresholdMs": 300,
    "watcher/pollIntervalMs": 100,
    "advanced/debugLogging": False,
}


@dataclass(frozen=True)
class ReaderSettings:
    """Snapshot of the settings consumed by ClaudeSessionReader."""

    config_dir: str | None = None
    max_lines_per_scan: int = DEFAULTS["reader/maxLinesPerScan"]
    scan_timeout_seconds: float = DEFAULTS["reader/scanTimeoutSeconds"]
    stat_cache_ttl_seconds: float = DEFAULTS["reader/statCacheTtlSeconds"]
    max_concurrent_scans: int = DEFAULTS["reader/maxConcurrentScans"]
    stability_threshold_ms: int = DEFAULTS["watcher/stabilityThresholdMs"]
    poll_interval_ms: int = DEFAULTS["watcher/pollIntervalMs"]
    debug_logging: bool = DEFAULTS["advanced/debugLogging"]


def configure_logging(debug: bool):
    """Set the package logger level; handlers are left to the host application."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if debug else logging.INFO)


class ConfigManager(QObject):
    """Persistent reader settings with change notification."""

    settings_changed = Signal(str)  # key

    def __init__(self, settings: QSettings | None = None, parent=None):
        super().__init__(parent)
        self._settings = settings if settings is not None else QSettings()

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._settings.value(key, DEFAULTS.get(key, "")))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        val = self._settings.value(key, DEFAULTS.get(key, 0))
        try:
            return int(val)
        except (ValueError, TypeError):
            logger.debug("Invalid integer for %s: %r, using default", key, val)
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        val = self._settings.value(key, DEFAULTS.get(key, False))
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ("true", "1", "yes")
        return bool(val)

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    def reader_settings(self) -> ReaderSettings:
        """Build a ReaderSettings snapshot from the stored values.

        Non-positive numeric values fall back to their defaults.
        """
        return ReaderSettings(
            config_dir=self.get_string("general/configDir") or None,
            max_lines_per_scan=self._positive_int("reader/maxLinesPerScan"),
            scan_timeout_seconds=float(self._positive_int("reader/scanTimeoutSeconds")),
            stat_cache_ttl_seconds=float(self._positive_int("reader/statCacheTtlSeconds")),
            max_concurrent_scans=self._positive_int("reader/maxConcurrentScans"),
            stability_threshold_ms=self._positive_int("watcher/stabilityThresholdMs"),
            poll_interval_ms=self._positive_int("watcher/pollIntervalMs"),
            debug_logging=self.get_bool("advanced/debugLogging"),
        )

    def _positive_int(self, key: str) -> int:
        value = self.get_int(key)
        if value <= 0:
            logger.warning("Setting %s must be positive, got %d; using %d", key, value, DEFAULTS[key])
            return DEFAULTS[key]
        return value
