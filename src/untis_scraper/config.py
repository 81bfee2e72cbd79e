"""Scraper configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class ScraperConfig(BaseSettings):
    """Scraper configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Portal settings (server-rendered HTML only, the JSON-RPC API is not used)
    untis_server_url: str = Field(
        default="https://mese.webuntis.com",
        description="Base URL of the WebUntis server",
    )
    untis_school: str = Field(
        default="",
        description="School identifier, e.g. IT-Schule+Stuttgart",
    )
    untis_user: str = Field(
        default="",
        description="Username for the HTML login form",
    )
    untis_pass: str = Field(
        default="",
        description="Password for the HTML login form",
    )

    # Paths
    state_dir: str = Field(
        default="data/state",
        description="Directory for persisted session cookies",
    )

    # Session settings
    persist_session: bool = Field(
        default=True,
        description="Save cookies after login and restore them on the next run",
    )
    max_session_age_hours: int = Field(
        default=12,
        description="Maximum age of a persisted session before logging in again",
    )

    # HTTP
    request_timeout_ms: int = Field(
        default=30000,
        description="Per-request timeout in milliseconds",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
            "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 "
            "Mobile/15E148 Safari/604.1"
        ),
        description="User-Agent header sent with every request",
    )
    accept_language: str = Field(
        default="de-DE,de;q=0.8,en;q=0.6",
        description="Accept-Language header sent with every request",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: ScraperConfig | None = None


def get_config() -> ScraperConfig:
    """Get the scraper configuration singleton.

    Returns:
        ScraperConfig: Scraper configuration instance
    """
    global _config
    if _config is None:
        _config = ScraperConfig()
    return _config
