"""Shared test fixtures for the Claude session reader."""

import os
import sys
from pathlib import Path

import pytest

from claude_session_reader.services.config_manager import ReaderSettings
from claude_session_reader.services.session_reader import ClaudeSessionReader

from helpers import ENCODED_PROJECT, PROJECT_PATH, write_jsonl


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication for tests that need a Qt event loop."""
    os.environ["QT_QPA_PLATFORM"] = "offscreen"
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv or ["test"])
    yield app


@pytest.fixture
def config_dir(tmp_path) -> Path:
    """A Claude config directory with an empty ``projects`` folder."""
    root = tmp_path / ".claude"
    (root / "projects").mkdir(parents=True)
    return root


@pytest.fixture
def project_dir(config_dir) -> Path:
    """Encoded project directory for PROJECT_PATH."""
    path = config_dir / "projects" / ENCODED_PROJECT
    path.mkdir()
    return path


@pytest.fixture
def reader(config_dir) -> ClaudeSessionReader:
    return ClaudeSessionReader(ReaderSettings(), config_dir=config_dir, platform="linux")


@pytest.fixture
def simple_session_file(project_dir) -> Path:
    """Three-message session: user, assistant with usage, assistant."""
    return write_jsonl(project_dir / "s1.jsonl", [
        {
            "type": "user",
            "message": {"role": "user", "content": "Hello, can you help me with a Python script?"},
            "timestamp": "2024-01-01T00:00:00.100Z",
            "sessionId": "s1",
            "gitBranch": "main",
            "cwd": "/home/wiz/projects/myapp",
        },
        {
            "type": "assistant",
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "text": "Sure, what does it need to do?"}],
                "usage": {"input_tokens": 10, "output_tokens": 5, "service_tier": "standard"},
            },
            "timestamp": "2024-01-01T00:00:00.200Z",
            "sessionId": "s1",
        },
        {
            "type": "assistant",
            "message": {"role": "assistant", "content": "Done."},
            "timestamp": "2024-01-01T00:00:00.300Z",
            "sessionId": "s1",
        },
    ])
