"""Text helpers shared by the row parsers."""

import re

from bs4 import Tag

_WHITESPACE = re.compile(r"\s+")
# A time token must not be glued to a date like "05.02.2024"
_TIME = re.compile(r"(?<![\d.:])(\d{1,2})[:.](\d{2})(?!\d|\.\d)")


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace (including nbsp) and strip the ends."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text.replace("\xa0", " ")).strip()


def cell_text(element: Tag) -> str:
    """Visible text of an element with whitespace collapsed."""
    return normalize_whitespace(element.get_text(" "))


def find_times(text: str) -> list[str]:
    """Extract clock times as zero-padded "HH:MM", e.g. "8.00" -> "08:00".

    Tokens with an hour above 23 or minutes above 59 are skipped.
    """
    times = []
    for hours, minutes in _TIME.findall(text or ""):
        if int(hours) > 23 or int(minutes) > 59:
            continue
        times.append(f"{int(hours):02d}:{minutes}")
    return times


def normalize_time(text: str) -> str | None:
    """First clock time in text as "HH:MM", or None."""
    times = find_times(text)
    return times[0] if times else None


def minutes_between(start: str, end: str) -> int | None:
    """Minutes from start to end ("HH:MM" strings); None if end is not after start."""
    start_h, start_m = (int(part) for part in start.split(":"))
    end_h, end_m = (int(part) for part in end.split(":"))
    minutes = (end_h * 60 + end_m) - (start_h * 60 + start_m)
    return minutes if minutes > 0 else None


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    """Case-insensitive substring test against several keywords."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def has_marker(text: str, positive: tuple[str, ...], negative: tuple[str, ...] = ()) -> bool:
    """Case-insensitive keyword test that ignores negated forms.

    Negative phrases are removed first, so "unentschuldigt" does not count as
    "entschuldigt" and "unwichtig" does not count as "wichtig".
    """
    lowered = text.lower()
    for phrase in negative:
        lowered = lowered.replace(phrase, "")
    return any(phrase in lowered for phrase in positive)
