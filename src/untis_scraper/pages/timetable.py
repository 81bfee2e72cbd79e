"""Timetable periods with status markers from timetable.do.

Each period cell carries its times in the text ("08:00 - 08:45 M Mül R101"),
plus status words the portal adds for cancelled, exam or absent lessons.
There is no keyword fallback: a period without times is not useful.
"""

import re
from datetime import date

from bs4 import Tag

from untis_scraper.cascade import Cascade
from untis_scraper.dates import find_dates
from untis_scraper.models import Period, RecordKind, status_from_flags
from untis_scraper.utils import cell_text, contains_any, find_times

SELECTORS: tuple[str, ...] = (
    ".timetable-period",
    ".period",
    ".lesson",
    "td[class*='period']",
    "tr.datarow td",
)

ABSENCE_KEYWORDS: tuple[str, ...] = ("abwesen", "absent")
CANCELLATION_KEYWORDS: tuple[str, ...] = ("entfällt", "cancelled")
EXAM_KEYWORDS: tuple[str, ...] = ("klausur", "exam")

_SUBJECT_CODE = re.compile(r"\b[A-Z]{1,4}\b")
_SUBJECT_NAMES = re.compile(r"Mathematik|Deutsch|Englisch|Physik|Chemie|Biologie")


def extract_subject(text: str) -> str | None:
    """Short subject code such as "M" or "PH", else a full German subject name."""
    for pattern in (_SUBJECT_CODE, _SUBJECT_NAMES):
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def parse_period(element: Tag) -> Period | None:
    text = cell_text(element)
    times = find_times(text)
    if len(times) < 2:
        return None

    is_absent = contains_any(text, ABSENCE_KEYWORDS)
    is_cancelled = contains_any(text, CANCELLATION_KEYWORDS)
    has_exam = contains_any(text, EXAM_KEYWORDS)
    dates = find_dates(text)

    return Period(
        date=dates[0] if dates else date.today(),
        start_time=times[0],
        end_time=times[1],
        subject=extract_subject(text),
        status=status_from_flags(
            is_absent=is_absent, is_cancelled=is_cancelled, has_exam=has_exam
        ),
        status_text=text or None,
        is_absent=is_absent,
        is_cancelled=is_cancelled,
        has_exam=has_exam,
    )


PERIOD_CASCADE: Cascade[Period] = Cascade(
    kind=RecordKind.PERIOD,
    selectors=SELECTORS,
    parse_row=parse_period,
)
