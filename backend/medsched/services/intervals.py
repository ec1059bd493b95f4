"""Time normalization and the half-open overlap rule.

Schedule times arrive as ``HH:MM``, ``HH:MM:SS`` or the locale form ``HH.MM``
(single-digit hours allowed). Everything is normalized to ``HH:MM`` before it
is stored or compared, so two spellings of the same minute always agree.
"""

from __future__ import annotations

from datetime import date, time
import re

TIME_INPUT_PATTERN = re.compile(r"^\s*(\d{1,2})[:.](\d{2})(?:[:.](\d{2}))?\s*$")


def normalize_time(value: str | time) -> str:
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if not isinstance(value, str):
        raise ValueError(f"Unsupported time value: {value!r}")
    match = TIME_INPUT_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Time must be HH:MM, HH:MM:SS or HH.MM, got {value!r}")
    hours, minutes, seconds = match.groups()
    hour, minute = int(hours), int(minutes)
    if hour > 23 or minute > 59 or (seconds is not None and int(seconds) > 59):
        raise ValueError(f"Time out of range: {value!r}")
    return f"{hour:02d}:{minute:02d}"


def parse_time_to_minutes(value: str | time) -> int:
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


def display_time(value: str | time) -> str:
    """``07:20`` -> ``07.20``, the form used in user-facing messages."""
    return normalize_time(value).replace(":", ".")


def spans_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and end_a > start_b


def intervals_overlap(
    date_a: date,
    start_a: str | time,
    end_a: str | time,
    date_b: date,
    start_b: str | time,
    end_b: str | time,
) -> bool:
    if date_a != date_b:
        return False
    return spans_overlap(
        parse_time_to_minutes(start_a),
        parse_time_to_minutes(end_a),
        parse_time_to_minutes(start_b),
        parse_time_to_minutes(end_b),
    )
