"""Error hierarchy for portal scraping.

Transient failures (worth retrying) are separated from permanent ones so that
tenacity retry decorators can classify them by type.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(2))
    async def login(self, username: str, password: str) -> bool:
        ...

Row-level and selector-level problems are never raised; only failures of a
whole stage (fetch, document parse, authentication) reach the caller.
"""


class ScrapingError(Exception):
    """Base exception for all scraping errors."""

    pass


class TransientError(ScrapingError):
    """Temporary failure that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """A request could not be completed.

    Examples: connection refused, timeouts, 5xx responses, undecodable bodies.
    """

    pass


class RateLimitError(NetworkError):
    """The portal answered 429 - needs longer backoff."""

    pass


class PermanentError(ScrapingError):
    """Failure that won't succeed on retry."""

    pass


class ParsingError(PermanentError):
    """A fetched document could not be parsed as HTML at all.

    Not raised for individual rows or selectors that fail to match.
    """

    pass


class PageNotFound(PermanentError):
    """No known URL pattern returned recognizable content for a page."""

    def __init__(self, page: str) -> None:
        super().__init__(f"Page not found: {page}")
        self.page = page


class UnsupportedVersion(PermanentError):
    """The portal serves a layout this library does not recognize."""

    pass


class AuthenticationError(PermanentError):
    """Session expired or invalid credentials - need re-authentication.

    Requires a fresh login, cannot be fixed by retry.
    """

    pass


class AuthenticationFailed(AuthenticationError):
    """The portal refused the submitted credentials."""

    pass


class SessionExpired(AuthenticationError):
    """A page was requested without an authenticated session."""

    def __init__(self, message: str = "Session expired, please login again") -> None:
        super().__init__(message)
