"""Per-kind cascades: selectors, row parsers and keyword fallbacks."""

from untis_scraper.cascade import Cascade
from untis_scraper.models import RecordKind
from untis_scraper.pages.absences import ABSENCE_CASCADE
from untis_scraper.pages.exams import EXAM_CASCADE
from untis_scraper.pages.homework import HOMEWORK_CASCADE
from untis_scraper.pages.timetable import PERIOD_CASCADE

CASCADES: dict[RecordKind, Cascade] = {
    RecordKind.ABSENCE: ABSENCE_CASCADE,
    RecordKind.EXAM: EXAM_CASCADE,
    RecordKind.HOMEWORK: HOMEWORK_CASCADE,
    RecordKind.PERIOD: PERIOD_CASCADE,
}

__all__ = [
    "CASCADES",
    "ABSENCE_CASCADE",
    "EXAM_CASCADE",
    "HOMEWORK_CASCADE",
    "PERIOD_CASCADE",
]
