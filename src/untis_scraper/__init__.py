"""WebUntis HTML scraper.

Recovers absences, exams, homework and timetable periods from the portal's
server-rendered pages when the JSON-RPC API does not provide them.
"""

from untis_scraper.client import UntisScraper, open_scraper
from untis_scraper.extractor import HTMLDataExtractor
from untis_scraper.models import (
    Absence,
    DateRange,
    Exam,
    Homework,
    HomeworkAttachment,
    HomeworkPriority,
    Period,
    PeriodStatus,
    RecordKind,
    SubstitutionInfo,
)
from untis_scraper.session import HTMLSession, open_session

__all__ = [
    "UntisScraper",
    "open_scraper",
    "HTMLDataExtractor",
    "HTMLSession",
    "open_session",
    "Absence",
    "DateRange",
    "Exam",
    "Homework",
    "HomeworkAttachment",
    "HomeworkPriority",
    "Period",
    "PeriodStatus",
    "RecordKind",
    "SubstitutionInfo",
]
