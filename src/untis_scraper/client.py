"""UntisScraper - absences, exams, homework and timetable from WebUntis HTML.

Fallback access for when the JSON-RPC API does not expose these records. Each
call authenticates-then-fetches one page and runs the extractor over it:

    async with open_scraper() as scraper:
        if not scraper.is_authenticated:
            await scraper.authenticate(user, password)
        exams = await scraper.parse_exams(date(2024, 2, 1), date(2024, 2, 29))
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator

from untis_scraper.config import ScraperConfig, get_config
from untis_scraper.errors import SessionExpired
from untis_scraper.extractor import HTMLDataExtractor
from untis_scraper.logging import get_logger, setup_logging
from untis_scraper.models import Absence, DateRange, Exam, Homework, Period, RecordKind
from untis_scraper.session import HTMLSession, open_session

log = get_logger(__name__)


def _date_range(kind: RecordKind, start_date: date, end_date: date) -> DateRange:
    # Checked before any request so a bad range never reaches the network
    if start_date > end_date:
        raise ValueError(
            f"Invalid {kind.value} date range: "
            f"start_date {start_date} is after end_date {end_date}"
        )
    return DateRange(start=start_date, end=end_date)


class UntisScraper:
    """Composes an HTMLSession with an HTMLDataExtractor.

    Holds no state of its own; authentication lives in the session. Calls are
    independent and may run concurrently, but logins must be serialized.
    """

    def __init__(
        self, session: HTMLSession, extractor: HTMLDataExtractor | None = None
    ) -> None:
        self.session = session
        self.extractor = extractor or HTMLDataExtractor()

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    async def authenticate(self, username: str, password: str) -> bool:
        """Log in through the portal's HTML form.

        Returns:
            True on success, False if the portal rejected the credentials.
        """
        return await self.session.login(username, password)

    async def parse_absences(self) -> list[Absence]:
        """Absences listed on the student's absence page."""
        html = await self._fetch(RecordKind.ABSENCE)
        return self.extractor.extract_absences(html)

    async def parse_exams(self, start_date: date, end_date: date) -> list[Exam]:
        """Exams between start_date and end_date (inclusive).

        Raises:
            ValueError: start_date is after end_date.
        """
        date_range = _date_range(RecordKind.EXAM, start_date, end_date)
        html = await self._fetch(RecordKind.EXAM, date_range)
        return self.extractor.extract_exams(html)

    async def parse_homework(self, start_date: date, end_date: date) -> list[Homework]:
        """Homework assignments between start_date and end_date (inclusive).

        Raises:
            ValueError: start_date is after end_date.
        """
        date_range = _date_range(RecordKind.HOMEWORK, start_date, end_date)
        html = await self._fetch(RecordKind.HOMEWORK, date_range)
        return self.extractor.extract_homework(html)

    async def parse_enhanced_timetable(
        self, start_date: date, end_date: date
    ) -> list[Period]:
        """Timetable periods with absence/cancellation/exam status.

        Raises:
            ValueError: start_date is after end_date.
        """
        date_range = _date_range(RecordKind.PERIOD, start_date, end_date)
        html = await self._fetch(RecordKind.PERIOD, date_range)
        return self.extractor.extract_timetable_with_status(html)

    async def logout(self) -> None:
        await self.session.logout()

    async def _fetch(self, kind: RecordKind, date_range: DateRange | None = None) -> str:
        if not self.session.is_authenticated:
            log.warning("fetch_rejected", kind=kind.value, reason="not_authenticated")
            raise SessionExpired()
        return await self.session.fetch_page(kind, date_range)


@asynccontextmanager
async def open_scraper(config: ScraperConfig | None = None) -> AsyncIterator[UntisScraper]:
    """Yield an UntisScraper on a fresh (or restored) session.

    Configures logging from the same config before the first request.
    """
    config = config or get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    async with open_session(config) as session:
        yield UntisScraper(session)
