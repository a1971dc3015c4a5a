"""Tests for claude_session_reader.utils.timestamps."""

from datetime import datetime, timezone

from claude_session_reader.utils.timestamps import now_iso, parse_timestamp, sort_key_ms, timestamp_ms


class TestParseTimestamp:
    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-01T00:00:00.500Z") == datetime(2024, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)

    def test_plain_date_is_utc(self):
        assert parse_timestamp("2023-12-31") == datetime(2023, 12, 31, tzinfo=timezone.utc)

    def test_epoch_seconds_and_millis(self):
        assert timestamp_ms(1_700_000_000) == 1_700_000_000_000
        assert timestamp_ms(1_700_000_000_000) == 1_700_000_000_000

    def test_numeric_string(self):
        assert timestamp_ms("1700000000") == 1_700_000_000_000

    def test_invalid(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None


def test_sort_key_for_unparseable_is_zero():
    assert sort_key_ms("garbage") == 0.0
    assert sort_key_ms("2024-01-01T00:00:00Z") > 0


def test_now_iso_format():
    value = now_iso()
    assert value.endswith("Z")
    assert parse_timestamp(value) is not None
