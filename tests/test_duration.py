"""Tests for duration parsing."""

import pytest

from swr_fetch import parse_duration


class TestParseDuration:
    """Tests for parse_duration function."""

    def test_milliseconds(self) -> None:
        """Test parsing milliseconds."""
        assert parse_duration("500ms") == pytest.approx(0.5)
        assert parse_duration("1ms") == pytest.approx(0.001)
        assert parse_duration("0ms") == 0

    def test_seconds(self) -> None:
        """Test parsing seconds."""
        assert parse_duration("1s") == 1
        assert parse_duration("30s") == 30
        assert parse_duration("1.5s") == 1.5

    def test_minutes_hours_days(self) -> None:
        """Test parsing larger units."""
        assert parse_duration("5m") == 300
        assert parse_duration("2h") == 7_200
        assert parse_duration("1d") == 86_400

    def test_numbers_are_seconds(self) -> None:
        """Test that numbers pass through as seconds."""
        assert parse_duration(5) == 5.0
        assert parse_duration(0) == 0.0
        assert parse_duration(0.25) == 0.25
        assert isinstance(parse_duration(5), float)

    def test_invalid_format(self) -> None:
        """Test that invalid formats raise ValueError."""
        for bad in ("invalid", "10x", "s10", "", "10", "-5s"):
            with pytest.raises(ValueError, match="Invalid duration"):
                parse_duration(bad)

    def test_rejects_negative_and_bool(self) -> None:
        """Test that negative numbers and booleans are rejected."""
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(-1)
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(True)
