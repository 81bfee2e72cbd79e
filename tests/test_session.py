"""Tests for HTMLSession against an in-memory request context."""

import os
import time
from datetime import date

import pytest
from playwright.async_api import Error as PlaywrightError
from tenacity import wait_none

from untis_scraper.errors import (
    AuthenticationFailed,
    NetworkError,
    PageNotFound,
    SessionExpired,
    UnsupportedVersion,
)
from untis_scraper.models import DateRange, RecordKind
from untis_scraper.session import HTMLSession, LoginForm, SessionStore

from conftest import (
    ABSENCE_PAGE,
    EXAM_PAGE,
    LOGIN_ACTION_URL,
    LOGIN_PAGE,
    LOGIN_PAGE_URL,
    LOGIN_REJECTED_PAGE,
    SCHOOL,
    SERVER,
    FakeRequestContext,
    FakeResponse,
    session_cookie,
)


def _session(context, **kwargs):
    return HTMLSession(context, SERVER + "/", SCHOOL, **kwargs)


async def _login_without_wait(session, username="anna", password="secret"):
    return await HTMLSession.login.retry_with(wait=wait_none())(session, username, password)


class TestLoginForm:
    def test_picks_login_form_and_resolves_action(self):
        form = LoginForm.from_html(LOGIN_PAGE, LOGIN_PAGE_URL)
        assert form.action == LOGIN_ACTION_URL
        assert form.method == "POST"
        assert form.fields["school"] == "demo"

    def test_fills_known_field_names(self):
        form = LoginForm("https://x/login", "POST", {"benutzername": "", "passwort": "", "t": "1"})
        data = form.with_credentials("anna", "secret")
        assert data == {"benutzername": "anna", "passwort": "secret", "t": "1"}

    def test_falls_back_to_j_fields(self):
        form = LoginForm("https://x/login", "POST", {"csrf": "tok"})
        data = form.with_credentials("anna", "secret")
        assert data == {"csrf": "tok", "j_username": "anna", "j_password": "secret"}

    def test_missing_form_is_unsupported(self):
        with pytest.raises(UnsupportedVersion):
            LoginForm.from_html("<form action='/search'></form>", LOGIN_PAGE_URL)


class TestLogin:
    @pytest.mark.asyncio
    async def test_successful_login(self, fake_context):
        session = _session(fake_context)
        assert session.is_authenticated is False

        assert await session.login("anna", "secret") is True

        assert session.is_authenticated is True
        post = fake_context.calls[-1]
        assert post["url"] == LOGIN_ACTION_URL
        assert post["method"] == "POST"
        assert post["form"]["j_username"] == "anna"
        assert post["form"]["j_password"] == "secret"
        assert post["form"]["school"] == "demo"

    @pytest.mark.asyncio
    async def test_rejected_login_returns_false(self, fake_context):
        fake_context.routes[LOGIN_ACTION_URL] = FakeResponse(200, LOGIN_REJECTED_PAGE)
        session = _session(fake_context)

        assert await session.login("anna", "wrong") is False
        assert session.is_authenticated is False

    @pytest.mark.asyncio
    async def test_forbidden_login_raises(self, fake_context):
        fake_context.routes[LOGIN_ACTION_URL] = FakeResponse(403, "forbidden")
        with pytest.raises(AuthenticationFailed):
            await _session(fake_context).login("anna", "secret")

    @pytest.mark.asyncio
    async def test_network_failure_retried_then_raised(self):
        context = FakeRequestContext({LOGIN_PAGE_URL: PlaywrightError("connection refused")})
        with pytest.raises(NetworkError):
            await _login_without_wait(_session(context))
        assert context.urls() == [LOGIN_PAGE_URL, LOGIN_PAGE_URL]

    @pytest.mark.asyncio
    async def test_successful_login_persists_session(self, fake_context, tmp_path):
        store = SessionStore(str(tmp_path))
        session = _session(fake_context, store=store)

        await session.login("anna", "secret")

        assert store.state_file.exists()
        assert store.is_session_valid() is True


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_requires_authentication(self, fake_context):
        with pytest.raises(SessionExpired):
            await _session(fake_context).fetch_page(RecordKind.ABSENCE)
        assert fake_context.calls == []

    @pytest.mark.asyncio
    async def test_url_cascade_skips_failures_and_unrecognized_pages(self):
        base = f"{SERVER}/WebUntis"
        context = FakeRequestContext(
            {
                f"{base}/main.do?school={SCHOOL}#/basic/absences": FakeResponse(200, "<p>Willkommen</p>"),
                f"{base}/index.do?school={SCHOOL}&method=absence": PlaywrightError("reset"),
                f"{base}/classbook.do?school={SCHOOL}&method=showAbsences": FakeResponse(500, "oops"),
                f"{base}/studentabsences.do?school={SCHOOL}": FakeResponse(200, ABSENCE_PAGE),
            },
            cookies=[session_cookie()],
        )
        session = _session(context)
        await session.restore()

        html = await session.fetch_page(RecordKind.ABSENCE)

        assert html == ABSENCE_PAGE
        assert len(context.calls) == 4

    @pytest.mark.asyncio
    async def test_date_range_fills_url(self):
        url = f"{SERVER}/WebUntis/exams.do?school={SCHOOL}&startDate=20240201&endDate=20240229"
        context = FakeRequestContext({url: FakeResponse(200, EXAM_PAGE)}, cookies=[session_cookie()])
        session = _session(context)
        await session.restore()

        html = await session.fetch_page(
            RecordKind.EXAM, DateRange(start=date(2024, 2, 1), end=date(2024, 2, 29))
        )

        assert html == EXAM_PAGE
        assert context.urls()[-1] == url

    @pytest.mark.asyncio
    async def test_timetable_accepts_any_content(self):
        context = FakeRequestContext(cookies=[session_cookie()])
        week = DateRange(start=date(2024, 2, 5), end=date(2024, 2, 11))
        url = f"{SERVER}/WebUntis/timetable.do?school={SCHOOL}&startDate=20240205&endDate=20240211"
        context.routes[url] = FakeResponse(200, "<table></table>")
        session = _session(context)
        await session.restore()

        assert await session.fetch_page(RecordKind.PERIOD, week) == "<table></table>"

    @pytest.mark.asyncio
    async def test_page_not_found(self):
        context = FakeRequestContext(cookies=[session_cookie()])
        session = _session(context)
        await session.restore()

        with pytest.raises(PageNotFound, match="homework page"):
            await session.fetch_page(RecordKind.HOMEWORK)
        assert len(context.calls) == 3


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_state(self, fake_context, tmp_path):
        logout_url = f"{SERVER}/WebUntis/logout.do?school={SCHOOL}"
        fake_context.routes[logout_url] = FakeResponse(200, "<p>Abgemeldet</p>")
        store = SessionStore(str(tmp_path))
        session = _session(fake_context, store=store)
        await session.login("anna", "secret")

        await session.logout()

        assert session.is_authenticated is False
        assert fake_context.urls()[-1] == logout_url
        assert not store.state_file.exists()

    @pytest.mark.asyncio
    async def test_failed_logout_still_forgets_session(self, fake_context):
        session = _session(fake_context)
        await session.login("anna", "secret")

        with pytest.raises(NetworkError):
            await session.logout()
        assert session.is_authenticated is False

    @pytest.mark.asyncio
    async def test_logout_when_not_authenticated_is_noop(self, fake_context):
        await _session(fake_context).logout()
        assert fake_context.calls == []


class TestSessionStore:
    def test_missing_file_is_invalid(self, tmp_path):
        assert SessionStore(str(tmp_path / "state")).is_session_valid() is False

    def test_stale_file_is_invalid(self, tmp_path):
        store = SessionStore(str(tmp_path), max_session_age_hours=1)
        store.state_file.write_text("{}")
        old = time.time() - 2 * 3600
        os.utime(store.state_file, (old, old))
        assert store.is_session_valid() is False

    def test_clear(self, tmp_path):
        store = SessionStore(str(tmp_path))
        store.state_file.write_text("{}")
        store.clear()
        assert not store.state_file.exists()
