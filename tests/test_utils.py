"""Tests for inkscribe.utils module."""

from __future__ import annotations

from inkscribe.utils import (
    TIMESTAMP_TAG_RE,
    format_duration,
    format_size,
    format_timestamp_ms,
    parse_timestamp_ms,
)


class TestFormatDuration:
    def test_seconds_only(self) -> None:
        assert format_duration(45.0) == "0:45"

    def test_minutes_and_seconds(self) -> None:
        assert format_duration(125.0) == "2:05"

    def test_minutes_not_wrapped_into_hours(self) -> None:
        assert format_duration(4500.0) == "75:00"

    def test_zero(self) -> None:
        assert format_duration(0.0) == "0:00"

    def test_float_seconds(self) -> None:
        assert format_duration(90.7) == "1:30"


class TestTimestamps:
    def test_format_zero(self) -> None:
        assert format_timestamp_ms(0) == "00:00:00"

    def test_format_truncates_milliseconds(self) -> None:
        assert format_timestamp_ms(61999) == "00:01:01"

    def test_format_hours(self) -> None:
        assert format_timestamp_ms(3_723_000) == "01:02:03"

    def test_parse(self) -> None:
        assert parse_timestamp_ms("01", "02", "03") == 3_723_000

    def test_tag_pattern(self) -> None:
        text = "[00:00:05] hello\n[00:01:30] world"
        assert TIMESTAMP_TAG_RE.findall(text) == [("00", "00", "05"), ("00", "01", "30")]


class TestFormatSize:
    def test_bytes(self) -> None:
        assert format_size(500) == "500.0 B"

    def test_kilobytes(self) -> None:
        assert format_size(1500) == "1.5 KB"

    def test_megabytes(self) -> None:
        assert format_size(1572864) == "1.5 MB"

    def test_gigabytes(self) -> None:
        assert format_size(1610612736) == "1.5 GB"
