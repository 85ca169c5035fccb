"""Utility functions for formatting Discord messages."""

from __future__ import annotations

import re
from functools import cache

_INDEX_SEPARATOR = re.compile(r"[\s,]+")


@cache
def format_duration(seconds: int | float | None) -> str:
    if seconds is None:
        return "–"

    total_seconds = int(seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_positions(value: str) -> tuple[int, ...] | None:
    """Parse 1-based queue positions into 0-based indices.

    Accepts comma or whitespace separated numbers and inclusive ranges, e.g.
    "1, 3 5-7". Returns None if the input is empty or invalid.
    """
    value = value.strip()
    if not value:
        return None

    indices: list[int] = []
    for part in _INDEX_SEPARATOR.split(value):
        if not part:
            continue
        start, sep, end = part.partition("-")
        try:
            first = int(start)
            last = int(end) if sep else first
        except ValueError:
            return None

        if first < 1 or last < first:
            return None
        indices.extend(range(first - 1, last))

    return tuple(dict.fromkeys(indices)) or None


@cache
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"
