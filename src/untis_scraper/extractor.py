"""HTMLDataExtractor - turns portal HTML into typed records.

Extraction is synchronous and side-effect free apart from log lines. Missing
or unrecognized markup yields an empty list; only a document that cannot be
parsed at all raises ParsingError.
"""

from bs4 import BeautifulSoup

from untis_scraper.cascade import Cascade, run_cascade
from untis_scraper.errors import ParsingError
from untis_scraper.logging import get_logger
from untis_scraper.models import Absence, Exam, Homework, Period, RecordKind
from untis_scraper.pages import CASCADES

log = get_logger(__name__)


def parse_document(html: str | bytes) -> tuple[BeautifulSoup, str]:
    """Parse HTML, returning the tree and the document source as text.

    Raises:
        ParsingError: If the input is not a document.
    """
    if isinstance(html, bytes):
        try:
            html = html.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParsingError(f"Could not decode HTML document: {e}") from e
    if not isinstance(html, str):
        raise ParsingError(f"Expected an HTML document, got {type(html).__name__}")

    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise ParsingError(f"Could not parse HTML document: {e}") from e
    return soup, html


class HTMLDataExtractor:
    """Runs the per-kind selector cascades over fetched pages.

    Cascades can be swapped per kind, e.g. to try a selector first for a
    school whose portal uses a custom theme.
    """

    def __init__(self, cascades: dict[RecordKind, Cascade] | None = None) -> None:
        self.cascades = {**CASCADES, **(cascades or {})}

    def extract(self, kind: RecordKind, html: str | bytes) -> list:
        """Extract records of one kind from an HTML document."""
        soup, source = parse_document(html)
        records = run_cascade(soup, source, self.cascades[kind])
        log.info("records_extracted", kind=kind.value, count=len(records))
        return records

    def extract_absences(self, html: str | bytes) -> list[Absence]:
        return self.extract(RecordKind.ABSENCE, html)

    def extract_exams(self, html: str | bytes) -> list[Exam]:
        return self.extract(RecordKind.EXAM, html)

    def extract_homework(self, html: str | bytes) -> list[Homework]:
        return self.extract(RecordKind.HOMEWORK, html)

    def extract_timetable_with_status(self, html: str | bytes) -> list[Period]:
        return self.extract(RecordKind.PERIOD, html)
