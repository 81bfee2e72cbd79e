"""Shared fixtures: sample portal pages and an in-memory request context."""

import json

import pytest

SERVER = "https://school.example"
SCHOOL = "demo"
LOGIN_PAGE_URL = f"{SERVER}/WebUntis/?school={SCHOOL}"
LOGIN_ACTION_URL = f"{SERVER}/WebUntis/j_security_check"

LOGIN_PAGE = """
<html><body>
  <form action="/search" method="get"><input name="q"></form>
  <form action="/WebUntis/j_security_check" method="post">
    <input type="hidden" name="school" value="demo">
    <input type="text" name="j_username" value="">
    <input type="password" name="j_password" value="">
    <input type="submit" value="Login">
  </form>
</body></html>
"""

LOGIN_SUCCESS_PAGE = '<html><body><a href="main.do">Stundenplan</a></body></html>'
LOGIN_REJECTED_PAGE = "<html><body><p class='fehler'>invalid user</p></body></html>"

ABSENCE_PAGE = """
<html><body>
<h1>Fehlzeiten</h1>
<table class="list">
  <tr class="header"><th>Datum</th><th>Grund</th><th>Status</th></tr>
  <tr><td>05.02.2024</td><td>krank</td><td>entschuldigt</td></tr>
  <tr><td>kein Datum</td><td>Arzt</td><td>offen</td></tr>
  <tr><td>12.03.2024 - 14.03.2024</td><td>Familie</td><td>unentschuldigt</td></tr>
</table>
</body></html>
"""

EXAM_PAGE = """
<html><body>
<table>
  <tr class="exam-row"><td>15.02.2024</td><td>Mathematik</td></tr>
  <tr class="exam-row"><td>20.02.2024</td><td>Englisch</td><td>10:00 - 11:30</td><td>Mül</td><td>R101</td></tr>
</table>
</body></html>
"""

HOMEWORK_PAGE = """
<html><body>
<table>
  <tr class="homework-row">
    <td>D</td><td>Gedichtanalyse</td><td>22.02.2024</td>
    <td><a href="/files/gedicht.pdf">gedicht.pdf</a></td>
  </tr>
  <tr class="homework-row">
    <td>M</td><td>Aufgaben S. 42 (dringend)</td><td>2024-02-23</td>
    <td><input type="checkbox" checked></td>
  </tr>
</table>
</body></html>
"""

TIMETABLE_PAGE = """
<html><body>
<table>
  <tr>
    <td class="period">05.02.2024 08:00 - 08:45 M Mül R101</td>
    <td class="period">05.02.2024 08:50-09:35 D Sch entfällt</td>
    <td class="period">05.02.2024 9.40 - 10.25 E Klausur</td>
    <td class="period">Pause</td>
  </tr>
</table>
</body></html>
"""


class FakeResponse:
    """Stands in for playwright's APIResponse."""

    def __init__(self, status: int = 200, body: str = "", cookies: list[dict] | None = None):
        self.status = status
        self.body = body
        self.cookies = cookies or []

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    async def text(self) -> str:
        return self.body


class FakeRequestContext:
    """Stands in for playwright's APIRequestContext.

    Routes map a full URL to a FakeResponse, or to an exception to raise.
    Cookies attached to a response are added to the jar when it is served.
    Unknown URLs answer 404.
    """

    def __init__(self, routes: dict | None = None, cookies: list[dict] | None = None):
        self.routes = dict(routes or {})
        self.cookies = list(cookies or [])
        self.calls: list[dict] = []
        self.disposed = False

    async def fetch(self, url, *, method="GET", params=None, form=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "method": method, "params": params, "form": form})
        route = self.routes.get(url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return FakeResponse(404, "not found")
        self.cookies.extend(route.cookies)
        return route

    async def storage_state(self, path=None):
        state = {"cookies": list(self.cookies), "origins": []}
        if path:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(state, f)
        return state

    async def dispose(self):
        self.disposed = True

    def urls(self) -> list[str]:
        return [call["url"] for call in self.calls]


def session_cookie(value: str = "abc123") -> dict:
    return {"name": "JSESSIONID", "value": value, "domain": "school.example", "path": "/"}


@pytest.fixture
def login_routes():
    return {
        LOGIN_PAGE_URL: FakeResponse(200, LOGIN_PAGE, cookies=[session_cookie("pre-login")]),
        LOGIN_ACTION_URL: FakeResponse(200, LOGIN_SUCCESS_PAGE, cookies=[session_cookie()]),
    }


@pytest.fixture
def fake_context(login_routes):
    return FakeRequestContext(login_routes)
