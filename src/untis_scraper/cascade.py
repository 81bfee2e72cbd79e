"""Selector cascade: ordered structural queries with a keyword fallback.

A Cascade is an immutable description of how to recover one record kind from
a page whose markup is unknown or has changed between portal releases:

1. Selectors are tried in priority order (most specific first). The first one
   whose query matches at least one element ends the cascade; its elements go
   to the row parser and later selectors are never tried. A selector whose
   query raises is skipped.
2. Only when no selector matched anything, the lower-cased raw HTML is scanned
   for the fallback keywords. The first keyword found yields exactly one
   placeholder record.

A selector that matched elements satisfies the cascade even if every row is
then rejected by the row parser; the keyword scan does not run in that case.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from bs4 import BeautifulSoup, Tag

from untis_scraper.logging import get_logger
from untis_scraper.models import RecordKind

log = get_logger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class Cascade(Generic[R]):
    """Extraction recipe for one record kind."""

    kind: RecordKind
    selectors: tuple[str, ...]
    parse_row: Callable[[Tag], R | None]
    fallback_keywords: tuple[str, ...] = ()
    build_fallback: Callable[[str], R] | None = None


def select_first(soup: BeautifulSoup, selectors: tuple[str, ...]) -> tuple[str, list[Tag]] | None:
    """Return the first selector with a non-empty match and its elements."""
    for selector in selectors:
        try:
            elements = soup.select(selector)
        except Exception as e:
            log.debug("selector_failed", selector=selector, error=str(e))
            continue
        if elements:
            return selector, elements
    return None


def parse_rows(elements: list[Tag], parse_row: Callable[[Tag], R | None]) -> list[R]:
    """Run the row parser over elements, dropping rows it rejects or chokes on."""
    records: list[R] = []
    for element in elements:
        try:
            record = parse_row(element)
        except Exception as e:
            log.debug("row_dropped", error=str(e), type=type(e).__name__)
            continue
        if record is not None:
            records.append(record)
    return records


def scan_keywords(html: str, keywords: tuple[str, ...]) -> str | None:
    """First keyword (in list order) found in the lower-cased document source."""
    lowered = html.lower()
    for keyword in keywords:
        if keyword in lowered:
            return keyword
    return None


def run_cascade(soup: BeautifulSoup, html: str, cascade: Cascade[R]) -> list[R]:
    """Recover records of one kind from a parsed document.

    Args:
        soup: The parsed document.
        html: The raw document source, used by the keyword fallback.
        cascade: Selectors, row parser and fallback for the record kind.

    Returns:
        Records in document order. Empty when nothing matched.
    """
    match = select_first(soup, cascade.selectors)
    if match is not None:
        selector, elements = match
        log.info(
            "selector_matched",
            kind=cascade.kind.value,
            selector=selector,
            elements=len(elements),
        )
        records = parse_rows(elements, cascade.parse_row)
        if not records:
            # Known precision gap: structural match wins even with zero rows
            log.info("selector_rows_rejected", kind=cascade.kind.value, selector=selector)
        return records

    if cascade.build_fallback is None:
        return []

    keyword = scan_keywords(html, cascade.fallback_keywords)
    if keyword is None:
        return []

    log.info("fallback_keyword_matched", kind=cascade.kind.value, keyword=keyword)
    return [cascade.build_fallback(keyword)]
