"""Absence rows from the student absences page.

Observed layouts (classbook.do / studentabsences.do / main.do list views):

  table.list
    tr.header -> th (Datum, Grund, Status, ...)
    tr -> td date | td reason | td status [| td comment]

The date cell holds a single date ("05.02.2024") or a range
("05.02.2024 - 07.02.2024", "05.02.2024-07.02.2024"), optionally with times ("05.02.2024 08:00-09:30").
"""

from datetime import date

from bs4 import Tag

from untis_scraper.cascade import Cascade
from untis_scraper.dates import find_dates, parse_date
from untis_scraper.models import Absence, RecordKind
from untis_scraper.utils import cell_text, find_times, has_marker

SELECTORS: tuple[str, ...] = (
    "table.list tr:not(.header)",
    ".absence-row",
    ".datarow",
    "tbody tr",
    ".list-item",
)

FALLBACK_KEYWORDS: tuple[str, ...] = (
    "abwesen",
    "fehlzeit",
    "krank",
    "absent",
    "entschuldigt",
    "unentschuldigt",
)

MIN_CELLS = 3

_EXCUSED = ("entschuldigt", "excused")
_UNEXCUSED = ("unentschuldigt", "unexcused", "nicht entschuldigt", "not excused")
_APPROVED = ("genehmigt", "approved")
_UNAPPROVED = ("nicht genehmigt", "not approved", "unapproved")


def parse_date_range(text: str) -> tuple[date, date] | None:
    """Parse a single date or a range; None if no date is found.

    The first two date tokens form the range whatever separates them, so
    "05.02.2024 - 07.02.2024", "05.02.2024-07.02.2024" and
    "2024-02-05 bis 2024-02-07" all work.
    """
    dates = find_dates(text)
    if len(dates) >= 2:
        return dates[0], dates[1]
    start = parse_date(text)
    if start is None:
        return None
    return start, start


def parse_absence_row(row: Tag) -> Absence | None:
    cells = row.select("td")
    if len(cells) < MIN_CELLS:
        return None

    date_text = cell_text(cells[0])
    reason_text = cell_text(cells[1])
    status_text = cell_text(cells[2])

    dates = parse_date_range(date_text)
    if dates is None:
        return None
    start_date, end_date = dates
    if start_date > end_date:
        return None

    times = find_times(date_text)
    comment = cell_text(cells[3]) if len(cells) > 3 else ""

    return Absence(
        start_date=start_date,
        end_date=end_date,
        start_time=times[0] if times else None,
        end_time=times[1] if len(times) > 1 else None,
        reason=reason_text or None,
        is_excused=has_marker(status_text, _EXCUSED, _UNEXCUSED),
        is_approved=has_marker(status_text, _APPROVED, _UNAPPROVED),
        comment=comment or None,
    )


def build_absence_placeholder(keyword: str) -> Absence:
    today = date.today()
    return Absence(
        start_date=today,
        end_date=today,
        reason=f"Found absence indicator: {keyword}",
    )


ABSENCE_CASCADE: Cascade[Absence] = Cascade(
    kind=RecordKind.ABSENCE,
    selectors=SELECTORS,
    parse_row=parse_absence_row,
    fallback_keywords=FALLBACK_KEYWORDS,
    build_fallback=build_absence_placeholder,
)
