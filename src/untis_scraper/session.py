"""HTTP session management for the WebUntis HTML interface.

HTMLSession logs in through the portal's HTML form and fetches pages with a
Playwright APIRequestContext (plain HTTP with a cookie jar, no JavaScript).
SessionStore persists the cookie jar between runs so that repeated runs do
not log in every time.

Pages are located by trying the URL patterns seen across portal releases in
order; the first response containing one of the page's keywords wins.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError, async_playwright
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from untis_scraper.config import ScraperConfig, get_config
from untis_scraper.dates import format_compact
from untis_scraper.errors import (
    AuthenticationFailed,
    NetworkError,
    PageNotFound,
    RateLimitError,
    SessionExpired,
    TransientError,
    UnsupportedVersion,
)
from untis_scraper.logging import get_logger
from untis_scraper.models import DateRange, RecordKind

if TYPE_CHECKING:
    from playwright.async_api import APIRequestContext, APIResponse

logger = get_logger(__name__)

# URL patterns per page, relative to {server}, oldest layouts last
PAGE_URLS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.ABSENCE: (
        "/WebUntis/main.do?school={school}#/basic/absences",
        "/WebUntis/index.do?school={school}&method=absence",
        "/WebUntis/classbook.do?school={school}&method=showAbsences",
        "/WebUntis/studentabsences.do?school={school}",
    ),
    RecordKind.EXAM: (
        "/WebUntis/main.do?school={school}#/basic/exams",
        "/WebUntis/exams.do?school={school}&startDate={start}&endDate={end}",
        "/WebUntis/timetable.do?school={school}&startDate={start}&endDate={end}",
    ),
    RecordKind.HOMEWORK: (
        "/WebUntis/main.do?school={school}#/basic/homework",
        "/WebUntis/homework.do?school={school}",
        "/WebUntis/classbook.do?school={school}&method=showHomework",
    ),
    RecordKind.PERIOD: (
        "/WebUntis/timetable.do?school={school}&startDate={start}&endDate={end}",
    ),
}

# A fetched page is accepted when its source contains one of these (case-sensitive).
# An empty tuple accepts any successful response.
PAGE_KEYWORDS: dict[RecordKind, tuple[str, ...]] = {
    RecordKind.ABSENCE: ("abwesen", "absence", "Fehlzeit"),
    RecordKind.EXAM: ("exam", "Klausur", "Prüfung"),
    RecordKind.HOMEWORK: ("homework", "Hausaufgabe", "Aufgabe"),
    RecordKind.PERIOD: (),
}

PAGE_NAMES: dict[RecordKind, str] = {
    RecordKind.ABSENCE: "absence page",
    RecordKind.EXAM: "exam page",
    RecordKind.HOMEWORK: "homework page",
    RecordKind.PERIOD: "timetable page",
}

LOGIN_FORM_ACTIONS: tuple[str, ...] = ("login", "j_security_check")
USERNAME_FIELDS: tuple[str, ...] = ("j_username", "user", "username", "login", "benutzername")
PASSWORD_FIELDS: tuple[str, ...] = ("j_password", "password", "passwd", "pass", "passwort")

_LOGIN_REJECTED_MARKERS: tuple[str, ...] = ("error", "fehler", "invalid")
_LOGIN_ACCEPTED_MARKERS: tuple[str, ...] = ("timetable", "stundenplan", "main.do")


def is_session_cookie(name: str) -> bool:
    return "session" in name.lower() or name == "JSESSIONID"


class SessionStore:
    """Persists the request context's cookies to disk between runs.

    The state file is considered stale after max_session_age_hours, at which
    point a fresh login is needed.
    """

    def __init__(
        self, state_dir: str = "data/state", max_session_age_hours: int = 12
    ) -> None:
        """Initialize SessionStore.

        Args:
            state_dir: Directory to store session state files.
            max_session_age_hours: Maximum age of session before considering expired.
        """
        self.state_dir = Path(state_dir)
        self.state_file = self.state_dir / "untis_session.json"
        self.max_session_age_hours = max_session_age_hours

        self.state_dir.mkdir(parents=True, exist_ok=True)

    def is_session_valid(self) -> bool:
        """Check if a saved session exists and is still fresh.

        Returns:
            True if session file exists and is younger than max_session_age_hours.
        """
        if not self.state_file.exists():
            logger.debug("session_check", result="missing", reason="file_not_found")
            return False

        file_mtime = datetime.fromtimestamp(self.state_file.stat().st_mtime)
        age = datetime.now() - file_mtime
        max_age = timedelta(hours=self.max_session_age_hours)

        if age > max_age:
            logger.info(
                "session_check",
                result="expired",
                age_hours=age.total_seconds() / 3600,
                max_hours=self.max_session_age_hours,
            )
            return False

        logger.debug(
            "session_check",
            result="valid",
            age_hours=age.total_seconds() / 3600,
        )
        return True

    async def save(self, context: "APIRequestContext") -> None:
        await context.storage_state(path=str(self.state_file))
        logger.info("session_saved", path=str(self.state_file))

    def clear(self) -> None:
        """Delete saved session state file."""
        if self.state_file.exists():
            self.state_file.unlink()
            logger.info("session_cleared", path=str(self.state_file))
        else:
            logger.debug("session_clear_skipped", reason="file_not_found")


class LoginForm:
    """The portal's login form: resolved action URL, method and prefilled fields."""

    def __init__(self, action: str, method: str, fields: dict[str, str]) -> None:
        self.action = action
        self.method = method
        self.fields = fields

    @classmethod
    def from_html(cls, html: str, page_url: str) -> "LoginForm":
        """Find the login form on a page.

        Raises:
            UnsupportedVersion: If no form posts to a login action.
        """
        soup = BeautifulSoup(html, "html.parser")
        for form in soup.select("form"):
            action = form.get("action") or ""
            if not any(marker in action for marker in LOGIN_FORM_ACTIONS):
                continue
            fields = {}
            for field in form.select("input[name]"):
                fields[field["name"]] = field.get("value") or ""
            method = (form.get("method") or "POST").upper()
            return cls(urljoin(page_url, action), method, fields)
        raise UnsupportedVersion("Could not find login form")

    def with_credentials(self, username: str, password: str) -> dict[str, str]:
        """Form data with the credentials placed into the guessed field names."""
        data = dict(self.fields)
        user_field = next((f for f in USERNAME_FIELDS if f in data), USERNAME_FIELDS[0])
        pass_field = next((f for f in PASSWORD_FIELDS if f in data), PASSWORD_FIELDS[0])
        data[user_field] = username
        data[pass_field] = password
        return data


class HTMLSession:
    """Authenticated HTML access to one school on a WebUntis server.

    One login may be in flight per instance; callers serialize logins. Page
    fetches may run concurrently once authenticated.
    """

    def __init__(
        self,
        request_context: "APIRequestContext",
        server_url: str,
        school: str,
        *,
        store: SessionStore | None = None,
        timeout_ms: int = 30000,
    ) -> None:
        self._context = request_context
        self.server_url = server_url.rstrip("/")
        self.school = school
        self.store = store
        self.timeout_ms = timeout_ms
        self._session_cookie: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._session_cookie is not None

    @property
    def login_page_url(self) -> str:
        return f"{self.server_url}/WebUntis/?school={self.school}"

    async def restore(self) -> bool:
        """Adopt a session cookie already present in the request context."""
        authenticated = await self._refresh_session_cookie()
        logger.info("session_restored", authenticated=authenticated)
        return authenticated

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(5),
        retry=retry_if_exception_type(TransientError),
        reraise=True,
    )
    async def login(self, username: str, password: str) -> bool:
        """Log in through the HTML form.

        Retries once on TransientError but fails fast on anything else.

        Returns:
            True if the portal accepted the credentials, False if it rejected them.

        Raises:
            UnsupportedVersion: If the login page has no recognizable form.
            AuthenticationFailed: If the portal answers the form with 401/403.
            NetworkError: If the portal could not be reached.
        """
        logger.info("authentication_started", url=self.login_page_url, school=self.school)

        login_page = await self._get_text(self.login_page_url)
        form = LoginForm.from_html(login_page, self.login_page_url)
        data = form.with_credentials(username, password)

        if form.method == "GET":
            response = await self._fetch(form.action, method="GET", params=data)
        else:
            response = await self._fetch(form.action, method=form.method, form=data)
        if response.status in (401, 403):
            self._session_cookie = None
            raise AuthenticationFailed(
                f"Login form rejected with HTTP {response.status}"
            )
        body = await self._read(response, form.action)

        has_cookie = await self._refresh_session_cookie()
        page_accepted = not any(m in body for m in _LOGIN_REJECTED_MARKERS) and any(
            m in body for m in _LOGIN_ACCEPTED_MARKERS
        )

        if not (has_cookie and page_accepted):
            self._session_cookie = None
            logger.error(
                "authentication_failed",
                has_session_cookie=has_cookie,
                page_accepted=page_accepted,
            )
            return False

        if self.store is not None:
            await self.store.save(self._context)
        logger.info("authentication_succeeded")
        return True

    async def fetch_page(
        self, kind: RecordKind, date_range: DateRange | None = None
    ) -> str:
        """Fetch the HTML page holding records of one kind.

        Args:
            kind: Record kind whose page is wanted.
            date_range: Dates for URL patterns that take them; the current
                week when omitted.

        Raises:
            SessionExpired: If called without an authenticated session.
            PageNotFound: If no URL pattern returned recognizable content.
        """
        if not self.is_authenticated:
            raise SessionExpired()

        date_range = date_range or DateRange.current_week()
        keywords = PAGE_KEYWORDS[kind]

        for template in PAGE_URLS[kind]:
            url = self.server_url + template.format(
                school=self.school,
                start=format_compact(date_range.start),
                end=format_compact(date_range.end),
            )
            try:
                html = await self._get_text(url)
            except TransientError as e:
                logger.warning("page_fetch_failed", kind=kind.value, url=url, error=str(e))
                continue

            if not keywords or any(keyword in html for keyword in keywords):
                logger.info("page_found", kind=kind.value, url=url)
                return html
            logger.debug("page_unrecognized", kind=kind.value, url=url)

        raise PageNotFound(PAGE_NAMES[kind])

    async def logout(self) -> None:
        """End the portal session and forget persisted cookies."""
        if not self.is_authenticated:
            logger.debug("logout_skipped", reason="not_authenticated")
            return

        try:
            await self._get_text(f"{self.server_url}/WebUntis/logout.do?school={self.school}")
        finally:
            self._session_cookie = None
            if self.store is not None:
                self.store.clear()
        logger.info("logged_out")

    async def _refresh_session_cookie(self) -> bool:
        state = await self._context.storage_state()
        for cookie in state.get("cookies", []):
            if is_session_cookie(cookie.get("name", "")):
                self._session_cookie = cookie.get("value")
                return True
        self._session_cookie = None
        return False

    async def _fetch(self, url: str, **kwargs) -> "APIResponse":
        try:
            return await self._context.fetch(url, timeout=self.timeout_ms, **kwargs)
        except PlaywrightError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

    async def _read(self, response: "APIResponse", url: str) -> str:
        if response.status == 429:
            raise RateLimitError(f"Rate limited by {url}")
        if not response.ok:
            raise NetworkError(f"HTTP {response.status} from {url}")
        try:
            return await response.text()
        except (PlaywrightError, UnicodeDecodeError) as e:
            raise NetworkError(f"Could not decode HTML response from {url}: {e}") from e

    async def _get_text(self, url: str) -> str:
        response = await self._fetch(url, method="GET")
        return await self._read(response, url)


@asynccontextmanager
async def open_session(config: ScraperConfig | None = None) -> AsyncIterator[HTMLSession]:
    """Start a request context and yield an HTMLSession for the configured school.

    A persisted session younger than max_session_age_hours is restored, in
    which case the yielded session is already authenticated.
    """
    config = config or get_config()
    store = None
    if config.persist_session:
        store = SessionStore(config.state_dir, config.max_session_age_hours)
    restore = store is not None and store.is_session_valid()

    async with async_playwright() as pw:
        context = await pw.request.new_context(
            user_agent=config.user_agent,
            extra_http_headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": config.accept_language,
            },
            storage_state=str(store.state_file) if restore else None,
            timeout=config.request_timeout_ms,
        )
        logger.info("context_created", type="restored" if restore else "fresh")
        try:
            session = HTMLSession(
                context,
                config.untis_server_url,
                config.untis_school,
                store=store,
                timeout_ms=config.request_timeout_ms,
            )
            if restore:
                await session.restore()
            yield session
        finally:
            await context.dispose()
