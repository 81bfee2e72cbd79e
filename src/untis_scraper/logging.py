"""structlog setup for untis_scraper.

Every module binds a logger with ``get_logger(__name__)`` and logs snake_case
events with key/value context instead of formatted messages:

- extraction: ``selector_matched``, ``selector_failed``, ``row_dropped``,
  ``fallback_keyword_matched``, ``records_extracted`` (``kind``, ``selector``,
  ``keyword``, ``count``)
- fetching: ``page_found``, ``page_unrecognized``, ``page_fetch_failed``
  (``kind``, ``url``)
- session: ``authentication_*``, ``session_*`` and ``logged_out`` (never the
  password)

Nothing is written to stdout. ``open_scraper`` calls ``setup_logging`` with
``ScraperConfig.log_json`` and ``ScraperConfig.log_level``; embedding
applications that configure structlog themselves can skip it.
"""

import logging
import sys

import structlog


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Route structlog and stdlib records to stderr at ``log_level``.

    Args:
        json_output: One JSON object per event instead of the console renderer.
        log_level: Threshold name; unknown names fall back to INFO.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # playwright and asyncio log through stdlib logging
    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stderr)]
    root.setLevel(numeric_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to ``name``, usually the calling module's ``__name__``."""
    return structlog.get_logger(name)
