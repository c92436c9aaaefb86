"""Parse and format human time expressions ("45m", "2h", "1.5 days")."""
from __future__ import annotations

import math
import re
from numbers import Real
from typing import Optional, Union

MAX_MINUTES = 24 * 60 * 30

_TIME_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(m|min|mins|h|hr|hrs|hour|hours|d|day|days)?$", re.ASCII)
# The two-part form format_time_minutes emits, e.g. "1h 30m".
_HOURS_MINUTES_PATTERN = re.compile(r"^(\d+)\s*(?:h|hr|hrs|hour|hours)\s*(\d+)\s*(?:m|min|mins)$", re.ASCII)

_UNIT_MINUTES = {
    "m": 1,
    "min": 1,
    "mins": 1,
    "h": 60,
    "hr": 60,
    "hrs": 60,
    "hour": 60,
    "hours": 60,
    "d": 60 * 24,
    "day": 60 * 24,
    "days": 60 * 24,
}


def parse_time_input(text: str) -> Optional[int]:
    """
    Convert flexible time input to whole minutes.

    A bare number means minutes. Returns None for zero, negative or unparseable
    input; values above MAX_MINUTES are clamped rather than rejected.
    """
    trimmed = (text or "").strip().lower()
    if not trimmed:
        return None

    compound = _HOURS_MINUTES_PATTERN.match(trimmed)
    if compound:
        hours, minutes = (float(group) for group in compound.groups())
        return _clamp_minutes(hours * 60 + minutes)

    match = _TIME_PATTERN.match(trimmed)
    if not match:
        return None

    value = float(match.group(1))
    if not math.isfinite(value) or value <= 0:
        return None

    unit = match.group(2) or "m"
    return _clamp_minutes(value * _UNIT_MINUTES[unit])


def parse_time_input_or_number(value: Union[str, int, float, None]) -> Optional[int]:
    """Accept a raw minute count or a time string and normalize both the same way."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        # Compared as an int; float() overflows on very large values.
        return _clamp_minutes(value) if value > 0 else None
    if isinstance(value, Real):
        number = float(value)
        if not math.isfinite(number) or number <= 0:
            return None
        return _clamp_minutes(number)
    if isinstance(value, str):
        return parse_time_input(value)
    return None


def format_time_minutes(total_minutes: Union[int, float]) -> str:
    """Render minutes compactly: 45 -> "45m", 120 -> "2h", 90 -> "1h 30m"."""
    if not math.isfinite(total_minutes) or total_minutes < 0:
        return "0m"
    minutes = _round_half_up(total_minutes)
    if minutes < 60:
        return f"{minutes}m"
    hours, remainder = divmod(minutes, 60)
    if remainder == 0:
        return f"{hours}h"
    return f"{hours}h {remainder}m"


def _clamp_minutes(minutes: float) -> Optional[int]:
    if minutes >= MAX_MINUTES:
        return MAX_MINUTES
    rounded = _round_half_up(minutes)
    return rounded if rounded > 0 else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
