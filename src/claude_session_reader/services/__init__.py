"""Services for the Claude session reader."""

from claude_session_reader.services.config_manager import ConfigManager, ReaderSettings, configure_logging
from claude_session_reader.services.file_watcher import ProjectFileWatcher
from claude_session_reader.services.jsonl_parser import parse_line, read_jsonl_file, stream_messages
from claude_session_reader.services.session_reader import ClaudeSessionReader

__all__ = [
    "ClaudeSessionReader",
    "ConfigManager",
    "ReaderSettings",
    "configure_logging",
    "ProjectFileWatcher",
    "parse_line",
    "read_jsonl_file",
    "stream_messages",
]
