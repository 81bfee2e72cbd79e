"""Exam rows from the exams page or highlighted timetable cells.

Exams show up either as rows of exams.do (date | subject [| time | teacher |
room]) or as yellow-highlighted cells on timetable.do. Rows without a time
cell get the first double period of the day, 08:00-09:30.
"""

import re
from datetime import date

from bs4 import Tag

from untis_scraper.cascade import Cascade
from untis_scraper.dates import parse_date
from untis_scraper.models import Exam, RecordKind
from untis_scraper.utils import cell_text, find_times, minutes_between

SELECTORS: tuple[str, ...] = (
    ".exam-row",
    ".klausur",
    "tr[class*='exam']",
    ".yellow",
    "[style*='yellow']",
    ".highlight",
)

FALLBACK_KEYWORDS: tuple[str, ...] = (
    "klausur",
    "prüfung",
    "exam",
    "test",
)

MIN_CELLS = 2

DEFAULT_START_TIME = "08:00"
DEFAULT_END_TIME = "09:30"

# Whole words only, so "Ethik/Moral" is not an oral exam
_ORAL = re.compile(r"\b(?:mündlich|oral)\b", re.IGNORECASE)


def parse_exam_row(row: Tag) -> Exam | None:
    cells = row.select("td")
    if len(cells) < MIN_CELLS:
        return None

    exam_date = parse_date(cell_text(cells[0]))
    if exam_date is None:
        return None
    subject = cell_text(cells[1])

    times = find_times(cell_text(cells[2])) if len(cells) > 2 else []
    if len(times) >= 2:
        start_time, end_time = times[0], times[1]
    else:
        start_time, end_time = DEFAULT_START_TIME, DEFAULT_END_TIME

    teacher = cell_text(cells[3]) if len(cells) > 3 else ""
    room = cell_text(cells[4]) if len(cells) > 4 else ""
    is_oral = _ORAL.search(cell_text(row)) is not None

    return Exam(
        date=exam_date,
        start_time=start_time,
        end_time=end_time,
        subject=subject,
        teacher=teacher or None,
        room=room or None,
        duration=minutes_between(start_time, end_time),
        is_written=not is_oral,
        is_oral=is_oral,
    )


def build_exam_placeholder(keyword: str) -> Exam:
    return Exam(
        date=date.today(),
        start_time=DEFAULT_START_TIME,
        end_time=DEFAULT_END_TIME,
        subject=f"Exam found: {keyword}",
        exam_type=keyword,
    )


EXAM_CASCADE: Cascade[Exam] = Cascade(
    kind=RecordKind.EXAM,
    selectors=SELECTORS,
    parse_row=parse_exam_row,
    fallback_keywords=FALLBACK_KEYWORDS,
    build_fallback=build_exam_placeholder,
)
