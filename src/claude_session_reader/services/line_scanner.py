"""Bounded line scans over JSONL files for metadata extraction."""

import logging
import os
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

import orjson

from claude_session_reader.errors import FileScanError, ScanTimeoutError

logger = logging.getLogger(__name__)

MAX_LINES_PER_SCAN = 100_000
SCAN_TIMEOUT_SECONDS = 30.0

# Read buffer for line scans (64KB)
READ_BUFFER_SIZE = 64 * 1024

T = TypeVar("T")


@dataclass
class LineScan:
    first_line: str | None = None
    last_line: str | None = None
    line_count: int = 0


@dataclass
class FileStats:
    size: int
    mtime: float


def _run_with_deadline(func: Callable[[], T], path: str, timeout: float) -> T:
    """Run ``func`` on a daemon thread and wait at most ``timeout`` seconds for it.

    A read blocked inside the OS cannot be interrupted, so on timeout the
    thread is left to finish (or stay blocked) on its own and
    ScanTimeoutError is raised to the caller.
    """
    future: Future = Future()

    def run():
        future.set_running_or_notify_cancel()
        try:
            future.set_result(func())
        except Exception as e:
            future.set_exception(e)

    threading.Thread(target=run, name=f"scan-{os.path.basename(path)}", daemon=True).start()
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning("Timeout reading file: %s", path)
        raise ScanTimeoutError(path, timeout) from None


def scan_first_last_lines(
    file_path: str | Path,
    max_lines: int = MAX_LINES_PER_SCAN,
    timeout: float = SCAN_TIMEOUT_SECONDS,
    clock: Callable[[], float] = time.monotonic,
) -> LineScan:
    """Find the first and last non-empty lines of a file in a single pass.

    Only those two lines and a running count of non-empty lines are kept, so
    memory stays flat regardless of file size. After ``max_lines`` lines the
    scan stops early and returns what it has. Running past ``timeout`` seconds
    raises ScanTimeoutError, whether the file is slow to read or a read never
    returns. I/O failures raise FileScanError.
    """
    path = str(file_path)
    return _run_with_deadline(lambda: _scan_lines(path, max_lines, timeout, clock), path, timeout)


def _scan_lines(path: str, max_lines: int, timeout: float, clock: Callable[[], float]) -> LineScan:
    scan = LineScan()
    deadline = clock() + timeout
    lines_processed = 0

    try:
        with open(path, "r", encoding="utf-8", errors="replace", buffering=READ_BUFFER_SIZE) as f:
            for line in f:
                lines_processed += 1
                if lines_processed > max_lines:
                    logger.warning("File %s has too many lines, stopping at %d", path, max_lines)
                    break
                if clock() > deadline:
                    logger.warning("Timeout reading file: %s", path)
                    raise ScanTimeoutError(path, timeout)

                trimmed = line.strip()
                if trimmed:
                    if scan.first_line is None:
                        scan.first_line = trimmed
                    scan.last_line = trimmed
                    scan.line_count += 1
    except OSError as e:
        logger.debug("Error reading lines from file %s: %s", path, e)
        raise FileScanError(path, str(e)) from e

    if scan.line_count == 0:
        logger.debug("No valid lines found in file: %s", path)
    return scan


def _read_first_line(path: str) -> str | None:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            trimmed = line.strip()
            if trimmed:
                return trimmed
    return None


def is_session_file(file_path: str | Path, timeout: float = SCAN_TIMEOUT_SECONDS) -> bool:
    """Check whether a JSONL file holds session messages rather than a summary.

    Only the first non-empty line is read. Summary files, files whose first
    line is not a JSON object and files whose first line does not arrive
    within ``timeout`` seconds are rejected.
    """
    path = str(file_path)
    try:
        first_line = _run_with_deadline(lambda: _read_first_line(path), path, timeout)
    except ScanTimeoutError:
        return False
    except OSError as e:
        logger.debug("Failed to check file type for %s: %s", path, e)
        return False
    if first_line is None:
        return False

    try:
        first = orjson.loads(first_line)
    except orjson.JSONDecodeError:
        logger.debug("First line of %s is not valid JSON, skipping", path)
        return False

    if not isinstance(first, dict):
        return False
    if first.get("type") == "summary":
        return False
    return bool(first.get("sessionId") or first.get("message"))


def get_file_stats(file_path: str | Path) -> FileStats | None:
    """Size and modification time of a file, or None if it cannot be stat'ed."""
    try:
        st = os.stat(file_path)
    except OSError:
        return None
    return FileStats(size=st.st_size, mtime=st.st_mtime)
