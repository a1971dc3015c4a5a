"""Tests for claude_session_reader.services.line_scanner."""

import itertools
import os
import time

import pytest

from claude_session_reader.errors import FileScanError, ScanTimeoutError
from claude_session_reader.services.line_scanner import (
    get_file_stats,
    is_session_file,
    scan_first_last_lines,
)

from helpers import make_record, stalled_fifo, write_jsonl

needs_fifo = pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs POSIX FIFOs")


class TestScanFirstLastLines:
    def test_first_and_last_non_empty_lines(self, tmp_path):
        path = tmp_path / "s.jsonl"
        path.write_text("\n  \nfirst\nmiddle\n\nlast  \n\n")
        scan = scan_first_last_lines(path)
        assert scan.first_line == "first"
        assert scan.last_line == "last"
        assert scan.line_count == 3

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.jsonl"
        path.write_text("")
        scan = scan_first_last_lines(path)
        assert scan.first_line is None
        assert scan.last_line is None
        assert scan.line_count == 0

    def test_single_line_file(self, tmp_path):
        path = tmp_path / "one.jsonl"
        path.write_text("only line")
        scan = scan_first_last_lines(path)
        assert scan.first_line == scan.last_line == "only line"
        assert scan.line_count == 1

    def test_line_cap_stops_early(self, tmp_path, caplog):
        path = tmp_path / "big.jsonl"
        path.write_text("".join(f"line {i}\n" for i in range(50)))
        scan = scan_first_last_lines(path, max_lines=10)
        assert scan.first_line == "line 0"
        assert scan.last_line == "line 9"
        assert scan.line_count == 10
        assert "too many lines" in caplog.text

    def test_timeout_raises(self, tmp_path):
        path = tmp_path / "slow.jsonl"
        path.write_text("a\nb\nc\n")
        # Each clock call advances one second
        ticks = itertools.count(0.0, 1.0)
        with pytest.raises(ScanTimeoutError) as exc_info:
            scan_first_last_lines(path, timeout=1.5, clock=lambda: next(ticks))
        assert exc_info.value.path == str(path)
        assert isinstance(exc_info.value, FileScanError)

    def test_missing_file_raises_scan_error(self, tmp_path):
        with pytest.raises(FileScanError):
            scan_first_last_lines(tmp_path / "missing.jsonl")

    @needs_fifo
    def test_timeout_on_read_that_never_returns(self, tmp_path):
        with stalled_fifo(tmp_path / "live.jsonl", '{"sessionId": "s1"}') as fifo:
            started = time.monotonic()
            with pytest.raises(ScanTimeoutError):
                scan_first_last_lines(fifo, timeout=0.5)
            assert time.monotonic() - started < 1.5


class TestIsSessionFile:
    def test_session_file(self, tmp_path):
        path = write_jsonl(tmp_path / "s.jsonl", [make_record("s1", "2024-01-01T00:00:00Z")])
        assert is_session_file(path) is True

    def test_summary_file(self, tmp_path):
        path = write_jsonl(tmp_path / "sum.jsonl", [
            {"type": "summary", "summary": "Title", "leafUuid": "x"},
            make_record("s1", "2024-01-01T00:00:00Z"),
        ])
        assert is_session_file(path) is False

    def test_message_without_session_id(self, tmp_path):
        path = write_jsonl(tmp_path / "m.jsonl", [{"type": "user", "message": {"role": "user", "content": "x"}}])
        assert is_session_file(path) is True

    def test_object_without_session_fields(self, tmp_path):
        path = write_jsonl(tmp_path / "o.jsonl", [{"type": "user"}])
        assert is_session_file(path) is False

    def test_leading_blank_lines_are_skipped(self, tmp_path):
        path = tmp_path / "b.jsonl"
        path.write_text('\n\n{"sessionId": "s1"}\n')
        assert is_session_file(path) is True

    def test_invalid_json_first_line(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{not json\n{"sessionId": "s1"}\n')
        assert is_session_file(path) is False

    def test_empty_and_missing(self, tmp_path):
        empty = tmp_path / "empty.jsonl"
        empty.write_text("")
        assert is_session_file(empty) is False
        assert is_session_file(tmp_path / "missing.jsonl") is False

    @needs_fifo
    def test_first_line_never_arrives(self, tmp_path):
        fifo = tmp_path / "pending.jsonl"
        os.mkfifo(fifo)
        started = time.monotonic()
        assert is_session_file(fifo, timeout=0.3) is False
        assert time.monotonic() - started < 1.0
        # Give the blocked open() a writer so the scan thread can finish
        os.close(os.open(fifo, os.O_RDWR))


class TestGetFileStats:
    def test_existing_file(self, tmp_path):
        path = tmp_path / "s.jsonl"
        path.write_text("12345")
        stats = get_file_stats(path)
        assert stats.size == 5
        assert stats.mtime > 0

    def test_missing_file(self, tmp_path):
        assert get_file_stats(tmp_path / "missing.jsonl") is None
