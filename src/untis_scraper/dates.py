"""Date parsing for the formats the portal has been seen to render.

Pure functions only; no formatter state is shared between calls.
"""

import re
from datetime import date, datetime

# Tried in order, first success wins. dd/MM/yyyy precedes MM/dd/yyyy, so an
# ambiguous "03/04/2024" is read as 3 April.
DATE_FORMATS: tuple[str, ...] = (
    "%d.%m.%Y",
    "%d.%m.%y",
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
)

_DATE_TOKEN = re.compile(r"\d{1,4}[./-]\d{1,2}[./-]\d{1,4}")


def _parse_exact(text: str) -> date | None:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date(text: str | None) -> date | None:
    """Parse a date cell.

    The stripped text is tried against every format first; when that fails,
    each date-shaped token inside the text is tried, so "Mo 05.02.2024" works.

    Returns:
        The parsed date, or None for empty or unparseable text.
    """
    if not text:
        return None
    text = text.strip()
    if not text:
        return None

    parsed = _parse_exact(text)
    if parsed is not None:
        return parsed

    for token in _DATE_TOKEN.findall(text):
        parsed = _parse_exact(token)
        if parsed is not None:
            return parsed
    return None


def find_dates(text: str) -> list[date]:
    """All parseable date tokens in text, in order of appearance."""
    dates = []
    for token in _DATE_TOKEN.findall(text or ""):
        parsed = _parse_exact(token)
        if parsed is not None:
            dates.append(parsed)
    return dates


def format_compact(value: date) -> str:
    """Format a date as yyyyMMdd for portal query parameters."""
    return value.strftime("%Y%m%d")
