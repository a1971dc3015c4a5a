"""Read-only access to Claude Code session transcripts on disk."""

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Callable, Mapping

from claude_session_reader.errors import ChatHistoryReadError, FileScanError
from claude_session_reader.services.config_manager import ConfigManager, ReaderSettings, configure_logging
from claude_session_reader.services.file_watcher import ProjectFileWatcher
from claude_session_reader.services.jsonl_parser import read_jsonl_file
from claude_session_reader.services.line_scanner import (
    get_file_stats,
    is_session_file,
    scan_first_last_lines,
)
from claude_session_reader.services.session_builder import (
    create_session_from_messages,
    create_session_from_metadata,
    create_session_metadata_from_lines,
)
from claude_session_reader.services.stat_cache import ttl_cached
from claude_session_reader.types.messages import Message
from claude_session_reader.types.sessions import (
    CursorPage,
    CursorQuery,
    PaginationOptions,
    ProjectData,
    Session,
    SessionMetadata,
    SessionPage,
    SortBy,
    SortOrder,
)
from claude_session_reader.utils.config_paths import get_config_dir, get_projects_dir
from claude_session_reader.utils.cursor import (
    decode_cursor,
    encode_cursor,
    resume_index,
    sort_metadata,
    sort_value,
)
from claude_session_reader.utils.path_codec import decode_path, encode_path, find_matching_project
from claude_session_reader.utils.timestamps import sort_key_ms, timestamp_ms

logger = logging.getLogger(__name__)

SESSION_FILE_SUFFIX = ".jsonl"
RECENT_SESSIONS_LIMIT = 10


class ClaudeSessionReader:
    """Lists, summarizes and loads sessions from ``<configDir>/projects``.

    Every operation re-reads the filesystem; only file stats are cached (for
    ``stat_cache_ttl_seconds``). Per-file scans run on a thread pool bounded
    by ``max_concurrent_scans``, and a file that fails to scan is logged and
    left out without affecting the others.
    """

    def __init__(
        self,
        settings: ReaderSettings | None = None,
        config_dir: str | Path | None = None,
        platform: str | None = None,
        home: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._settings = settings or ReaderSettings()
        self._platform = platform or sys.platform
        override = config_dir or self._settings.config_dir
        if override:
            self._config_dir = Path(override).expanduser()
        else:
            self._config_dir = get_config_dir(self._platform, home, environ)
        self._file_stats = ttl_cached(self._settings.stat_cache_ttl_seconds)(get_file_stats)
        self._watchers: set[ProjectFileWatcher] = set()

    @classmethod
    def from_config(cls, config: ConfigManager, **kwargs) -> "ClaudeSessionReader":
        """Create a reader from persisted settings and apply the logging level."""
        settings = config.reader_settings()
        configure_logging(settings.debug_logging)
        return cls(settings, **kwargs)

    @property
    def settings(self) -> ReaderSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def get_claude_config_dir(self) -> Path:
        return self._config_dir

    def is_claude_code_installed(self) -> bool:
        return os.access(self._config_dir, os.F_OK)

    def get_claude_projects(self) -> list[str]:
        """Encoded names of all project directories, sorted."""
        projects_dir = get_projects_dir(self._config_dir)
        try:
            return sorted(entry.name for entry in os.scandir(projects_dir) if entry.is_dir())
        except OSError as e:
            logger.debug("Failed to read Claude projects directory %s: %s", projects_dir, e)
            return []

    def encode_project_path(self, project_path: str) -> str:
        return encode_path(project_path)

    def decode_project_path(self, encoded_path: str) -> str:
        return decode_path(encoded_path, self._platform)

    def find_project_by_path(self, target_path: str) -> str | None:
        return find_matching_project(target_path, self.get_claude_projects(), self._platform)

    def get_project_dir(self, project_path: str) -> Path:
        return get_projects_dir(self._config_dir) / self.encode_project_path(project_path)

    @staticmethod
    def _list_session_files(project_dir: Path) -> list[Path]:
        # Sorted so ties in later sorts resolve the same way on every run
        return sorted(
            project_dir / entry.name
            for entry in os.scandir(project_dir)
            if entry.name.endswith(SESSION_FILE_SUFFIX)
        )

    # ------------------------------------------------------------------
    # Full message reads
    # ------------------------------------------------------------------

    def read_chat_history(self, project_path: str) -> list[Message]:
        """All recoverable messages of a project, oldest first.

        Raises ChatHistoryReadError if the project directory or one of its
        files cannot be read.
        """
        project_dir = self.get_project_dir(project_path)
        if not project_dir.exists():
            logger.debug("No Claude data found for project: %s", project_path)
            return []

        messages: list[Message] = []
        try:
            for file_path in self._list_session_files(project_dir):
                messages.extend(read_jsonl_file(file_path))
        except OSError as e:
            logger.error("Failed to read chat history for %s: %s", project_path, e)
            raise ChatHistoryReadError() from e

        messages.sort(key=lambda m: sort_key_ms(m.timestamp))
        return messages

    def get_session_messages(self, project_path: str, session_id: str) -> list[Message]:
        return [m for m in self.read_chat_history(project_path) if m.session_id == session_id]

    def get_session_with_messages(self, project_path: str, session_id: str) -> Session | None:
        """Full session view built from every message of ``session_id``."""
        messages = self.get_session_messages(project_path, session_id)
        if not messages:
            return None
        return create_session_from_messages(session_id, project_path, messages)

    def get_sessions(self, project_path: str) -> list[Session]:
        """Full session views for every session in the project, newest first."""
        metadata = self.get_sessions_metadata(project_path)
        if not metadata:
            return []

        try:
            history = self.read_chat_history(project_path)
        except ChatHistoryReadError as e:
            logger.debug("Failed to load sessions for %s: %s", project_path, e)
            return []

        by_session: dict[str, list[Message]] = {}
        for msg in history:
            by_session.setdefault(msg.session_id, []).append(msg)

        sessions = []
        for meta in metadata:
            session = create_session_from_messages(
                meta.session_id, project_path, by_session.get(meta.session_id, [])
            )
            if session is not None:
                sessions.append(session)

        sessions.sort(key=lambda s: sort_key_ms(s.last_update), reverse=True)
        return sessions

    def get_project_data(self, project_path: str) -> ProjectData:
        messages = self.read_chat_history(project_path)
        sessions = self.get_sessions(project_path)

        branches = {m.git_branch for m in messages if m.git_branch}
        working_directories = {m.cwd for m in messages if m.cwd}

        return ProjectData(
            project_path=project_path,
            encoded_path=self.encode_project_path(project_path),
            sessions=sessions,
            total_messages=len(messages),
            # read_chat_history returns messages oldest first
            first_message_time=messages[0].timestamp if messages else None,
            last_message_time=messages[-1].timestamp if messages else None,
            branches=sorted(branches),
            working_directories=sorted(working_directories),
        )

    # ------------------------------------------------------------------
    # Metadata fast path
    # ------------------------------------------------------------------

    def get_sessions_metadata(self, project_path: str) -> list[SessionMetadata]:
        """Summaries of every session file in the project, newest first.

        Only the first and last lines of each file are parsed. Summary files
        are skipped, as are files that fail to scan.
        """
        project_dir = self.get_project_dir(project_path)
        if not project_dir.exists():
            logger.debug("No Claude data found for project: %s", project_path)
            return []

        try:
            jsonl_files = self._list_session_files(project_dir)
        except OSError as e:
            logger.warning("Failed to read directory %s: %s", project_dir, e)
            return []

        if not jsonl_files:
            logger.debug("No JSONL files found in directory: %s", project_dir)
            return []

        logger.debug("Found %d JSONL files in %s", len(jsonl_files), project_dir)

        metadata_list: list[SessionMetadata] = []
        error_count = 0
        with ThreadPoolExecutor(max_workers=self._settings.max_concurrent_scans) as pool:
            check = partial(is_session_file, timeout=self._settings.scan_timeout_seconds)
            checks = list(pool.map(check, jsonl_files))
            session_files = [path for path, is_session in zip(jsonl_files, checks) if is_session]
            logger.debug(
                "File filtering results: total=%d sessions=%d summaries=%d project=%s",
                len(jsonl_files), len(session_files), len(jsonl_files) - len(session_files), project_path,
            )

            futures = [
                (path, pool.submit(self._metadata_for_file, project_path, path))
                for path in session_files
            ]
            for path, future in futures:
                try:
                    metadata = future.result()
                except FileScanError as e:
                    error_count += 1
                    logger.debug("Error processing file %s: %s", path, e)
                    continue
                except Exception:
                    error_count += 1
                    logger.exception("Unexpected error processing file %s", path)
                    continue
                if metadata is None:
                    error_count += 1
                    logger.debug("Failed to create metadata for file: %s", path)
                else:
                    metadata_list.append(metadata)

        logger.debug(
            "Metadata processing complete: files=%d success=%d errors=%d project=%s",
            len(jsonl_files), len(metadata_list), error_count, project_path,
        )

        if not metadata_list:
            logger.warning(
                "No valid session metadata extracted from %d JSONL files in %s. "
                "This may indicate malformed data or parsing issues.",
                len(jsonl_files), project_dir,
            )
            return []

        return sort_metadata(metadata_list, SortBy.LAST_UPDATE, SortOrder.DESC)

    def _metadata_for_file(self, project_path: str, file_path: Path) -> SessionMetadata | None:
        stats = self._file_stats(str(file_path))
        if stats is None:
            logger.debug("Failed to get stats for file: %s", file_path)
            return None

        scan = scan_first_last_lines(
            file_path,
            max_lines=self._settings.max_lines_per_scan,
            timeout=self._settings.scan_timeout_seconds,
        )
        if scan.line_count == 0:
            return None

        return create_session_metadata_from_lines(
            project_path, scan.first_line, scan.last_line, scan.line_count, stats.size
        )

    def get_recent_sessions(self, project_path: str, limit: int = RECENT_SESSIONS_LIMIT) -> list[Session]:
        """Most recently updated sessions, built from metadata only."""
        metadata = self.get_sessions_metadata(project_path)
        return [create_session_from_metadata(meta) for meta in metadata[:limit]]

    def get_sessions_paginated(
        self,
        project_path: str,
        options: PaginationOptions | None = None,
    ) -> SessionPage:
        options = options or PaginationOptions()
        metadata = _search_metadata(self.get_sessions_metadata(project_path), options.search)
        metadata = sort_metadata(metadata, options.sort_by, options.sort_order)

        total = len(metadata)
        page = metadata[options.offset:options.offset + options.limit]
        return SessionPage(
            sessions=[create_session_from_metadata(meta) for meta in page],
            total=total,
            has_more=options.offset + options.limit < total,
        )

    def get_sessions_cursor(
        self,
        project_path: str,
        query: CursorQuery | None = None,
    ) -> CursorPage:
        """Cursor pagination; a cursor we cannot decode restarts from the top."""
        query = query or CursorQuery()
        metadata = _search_metadata(self.get_sessions_metadata(project_path), query.search)
        metadata = _filter_by_date(metadata, query.start_date, query.end_date)
        metadata = sort_metadata(metadata, query.sort_by, query.sort_order)

        start = 0
        if query.cursor:
            token = decode_cursor(query.cursor)
            if token is not None:
                start = resume_index(
                    metadata, token.value, query.sort_by, query.sort_order, token.session_id
                )

        page = metadata[start:start + query.limit]
        has_more = start + query.limit < len(metadata)

        next_cursor = None
        if has_more and page:
            last = page[-1]
            next_cursor = encode_cursor(
                sort_value(last, query.sort_by), query.sort_by, query.sort_order, last.session_id
            )

        return CursorPage(
            sessions=[create_session_from_metadata(meta) for meta in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def watch_chat_history(
        self,
        project_path: str,
        on_update: Callable[[list[Message]], None],
    ) -> Callable[[], None]:
        """Call ``on_update`` with the full history whenever a session file settles.

        Needs a running Qt event loop. A project directory that does not exist
        yet is picked up once it is created under ``projects/``. Returns a
        function that stops watching.
        """
        watcher = ProjectFileWatcher(
            self.get_project_dir(project_path),
            stability_threshold_ms=self._settings.stability_threshold_ms,
            poll_interval_ms=self._settings.poll_interval_ms,
        )

        def handle_update(file_path: str):
            try:
                messages = self.read_chat_history(project_path)
                on_update(messages)
            except Exception:
                logger.exception("Error in file watcher for %s (%s)", project_path, file_path)

        watcher.file_settled.connect(handle_update)
        watcher.start()
        self._watchers.add(watcher)

        def unsubscribe():
            if watcher not in self._watchers:
                return
            self._watchers.discard(watcher)
            watcher.stop()
            watcher.file_settled.disconnect(handle_update)

        return unsubscribe

    def close(self):
        """Stop every active watcher."""
        for watcher in list(self._watchers):
            watcher.stop()
        self._watchers.clear()


def _search_metadata(metadata: list[SessionMetadata], search: str | None) -> list[SessionMetadata]:
    if not search:
        return list(metadata)
    needle = search.lower()
    return [
        meta for meta in metadata
        if needle in meta.session_id.lower()
        or (meta.first_message_preview and needle in meta.first_message_preview.lower())
        or (meta.last_message_preview and needle in meta.last_message_preview.lower())
    ]


def _filter_by_date(
    metadata: list[SessionMetadata],
    start_date: str | None,
    end_date: str | None,
) -> list[SessionMetadata]:
    """Keep sessions whose lastUpdate lies within the bounds.

    Bounds that do not parse are ignored. Sessions whose lastUpdate does not
    parse are kept.
    """
    start_ms = timestamp_ms(start_date) if start_date else None
    end_ms = timestamp_ms(end_date) if end_date else None
    if start_date and start_ms is None:
        logger.debug("Ignoring unparseable start date: %r", start_date)
    if end_date and end_ms is None:
        logger.debug("Ignoring unparseable end date: %r", end_date)
    if start_ms is None and end_ms is None:
        return metadata

    kept = []
    for meta in metadata:
        updated = timestamp_ms(meta.last_update)
        if updated is not None:
            if start_ms is not None and updated < start_ms:
                continue
            if end_ms is not None and updated > end_ms:
                continue
        kept.append(meta)
    return kept
