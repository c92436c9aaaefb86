"""Tests for time parsing and formatting."""
from __future__ import annotations

import pytest

from app.services.time_parser import (
    MAX_MINUTES,
    format_time_minutes,
    parse_time_input,
    parse_time_input_or_number,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("45", 45),
        ("45m", 45),
        ("45 mins", 45),
        ("2h", 120),
        ("1.5 hours", 90),
        ("  3 HRS ", 180),
        ("1d", 1440),
        ("2 days", 2880),
        ("0.5m", 1),
        ("0.4m", None),
        ("1h 30m", 90),
        ("2hrs 5min", 125),
        ("1h30m", 90),
    ],
)
def test_parse_time_input_accepts_units(text: str, expected) -> None:
    assert parse_time_input(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "0", "0h", "-5m", "abc", "5 weeks", "1h 30", "٤٥m", "nan"])
def test_parse_time_input_rejects_invalid(text: str) -> None:
    assert parse_time_input(text) is None


def test_parse_time_input_clamps_to_thirty_days() -> None:
    assert parse_time_input("31d") == MAX_MINUTES
    assert parse_time_input("100000") == MAX_MINUTES


def test_parse_time_input_or_number_handles_numbers_and_strings() -> None:
    assert parse_time_input_or_number(30) == 30
    assert parse_time_input_or_number(29.5) == 30
    assert parse_time_input_or_number("2h") == 120
    assert parse_time_input_or_number(None) is None
    assert parse_time_input_or_number(True) is None
    assert parse_time_input_or_number(0) is None
    assert parse_time_input_or_number(-10) is None
    assert parse_time_input_or_number(float("inf")) is None


@pytest.mark.parametrize(
    "minutes,expected",
    [(0, "0m"), (45, "45m"), (60, "1h"), (90, "1h 30m"), (120, "2h"), (-1, "0m"), (float("nan"), "0m")],
)
def test_format_time_minutes(minutes, expected: str) -> None:
    assert format_time_minutes(minutes) == expected


def test_huge_numbers_clamp_instead_of_overflowing() -> None:
    assert parse_time_input_or_number(10**400) == MAX_MINUTES
    assert parse_time_input_or_number(1e308) == MAX_MINUTES
    assert parse_time_input("9" * 400 + "d") is None
    assert parse_time_input("9" * 300 + "d") == MAX_MINUTES
    assert parse_time_input("9" * 400 + "h 5m") == MAX_MINUTES


@pytest.mark.parametrize("text", ["45m", "90", "1.5h", "2h", "0.75 hours", "1d", "26h", "3 days", "1h 30m", "59.6"])
def test_formatted_minutes_parse_back_to_same_value(text: str) -> None:
    minutes = parse_time_input(text)
    assert minutes is not None
    assert parse_time_input(format_time_minutes(minutes)) == minutes
