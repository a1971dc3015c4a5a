"""Tests for claude_session_reader.services.config_manager."""

import logging

import pytest

from claude_session_reader.services.config_manager import (
    DEFAULTS,
    ConfigManager,
    ReaderSettings,
    configure_logging,
)


@pytest.fixture
def config(qapp, tmp_path):
    """Create a ConfigManager with isolated QSettings."""
    from PySide6.QtCore import QSettings
    settings = QSettings(str(tmp_path / "config.ini"), QSettings.IniFormat)
    return ConfigManager(settings)


# ---------------------------------------------------------------------------
# 1. Defaults
# ---------------------------------------------------------------------------

def test_defaults(config):
    """Unset keys return the DEFAULTS value."""
    assert config.get_string("general/configDir") == ""
    assert config.get_int("reader/maxLinesPerScan") == 100_000
    assert config.get_int("watcher/stabilityThresholdMs") == 300
    assert config.get_bool("advanced/debugLogging") is False


def test_reader_settings_defaults_match_table():
    settings = ReaderSettings()
    assert settings.config_dir is None
    assert settings.max_lines_per_scan == DEFAULTS["reader/maxLinesPerScan"]
    assert settings.scan_timeout_seconds == 30
    assert settings.stat_cache_ttl_seconds == 30
    assert settings.max_concurrent_scans == 8
    assert settings.poll_interval_ms == 100


# ---------------------------------------------------------------------------
# 2. Set and get
# ---------------------------------------------------------------------------

def test_set_get_string(config):
    config.set_string("general/configDir", "/custom/path")
    assert config.get_string("general/configDir") == "/custom/path"


def test_set_get_int(config):
    config.set_int("reader/maxConcurrentScans", 2)
    assert config.get_int("reader/maxConcurrentScans") == 2


def test_set_get_bool(config):
    config.set_bool("advanced/debugLogging", True)
    assert config.get_bool("advanced/debugLogging") is True


def test_invalid_int_falls_back(config):
    config.set_string("reader/scanTimeoutSeconds", "soon")
    assert config.get_int("reader/scanTimeoutSeconds") == 30


# ---------------------------------------------------------------------------
# 3. Settings changed signal
# ---------------------------------------------------------------------------

def test_settings_changed_signal(config):
    """settings_changed emits the key that was changed."""
    keys = []
    config.settings_changed.connect(lambda k: keys.append(k))
    config.set_int("watcher/pollIntervalMs", 50)
    assert keys == ["watcher/pollIntervalMs"]


# ---------------------------------------------------------------------------
# 4. ReaderSettings snapshot
# ---------------------------------------------------------------------------

def test_reader_settings_overrides(config):
    config.set_string("general/configDir", "/data/claude")
    config.set_int("reader/maxLinesPerScan", 500)
    config.set_int("reader/scanTimeoutSeconds", 5)
    config.set_int("watcher/stabilityThresholdMs", 50)
    config.set_bool("advanced/debugLogging", True)

    settings = config.reader_settings()
    assert settings.config_dir == "/data/claude"
    assert settings.max_lines_per_scan == 500
    assert settings.scan_timeout_seconds == 5.0
    assert settings.stability_threshold_ms == 50
    assert settings.debug_logging is True


def test_reader_settings_rejects_non_positive(config):
    config.set_int("reader/maxConcurrentScans", 0)
    assert config.reader_settings().max_concurrent_scans == 8


def test_reader_settings_is_frozen():
    settings = ReaderSettings()
    with pytest.raises(AttributeError):
        settings.max_lines_per_scan = 1


# ---------------------------------------------------------------------------
# 5. Logging level
# ---------------------------------------------------------------------------

def test_configure_logging():
    package_logger = logging.getLogger("claude_session_reader")
    original = package_logger.level
    try:
        configure_logging(True)
        assert package_logger.level == logging.DEBUG
        configure_logging(False)
        assert package_logger.level == logging.INFO
    finally:
        package_logger.setLevel(original)
