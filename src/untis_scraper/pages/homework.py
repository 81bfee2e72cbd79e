"""Homework rows from the homework / classbook pages.

Row layout: subject | title | due date [| assigned date], with optional
attachment links and a completion checkbox anywhere in the row.
"""

from datetime import date

from bs4 import Tag

from untis_scraper.cascade import Cascade
from untis_scraper.dates import parse_date
from untis_scraper.models import Homework, HomeworkAttachment, HomeworkPriority, RecordKind
from untis_scraper.utils import cell_text, contains_any, has_marker, normalize_whitespace

SELECTORS: tuple[str, ...] = (
    ".homework-row",
    ".hausaufgabe",
    "tr[class*='homework']",
    ".assignment",
)

FALLBACK_KEYWORDS: tuple[str, ...] = (
    "hausaufgabe",
    "aufgabe",
    "homework",
    "assignment",
)

MIN_CELLS = 3

_COMPLETED = ("erledigt", "completed")
_NOT_COMPLETED = ("nicht erledigt", "unerledigt", "not completed", "incomplete")
_URGENT = ("dringend", "urgent")
_NOT_URGENT = ("nicht dringend", "not urgent")
_HIGH = ("wichtig", "important")
_NOT_HIGH = ("unwichtig", "nicht wichtig", "unimportant", "not important")


def _priority(text: str) -> HomeworkPriority:
    if has_marker(text, _URGENT, _NOT_URGENT):
        return HomeworkPriority.URGENT
    if has_marker(text, _HIGH, _NOT_HIGH):
        return HomeworkPriority.HIGH
    return HomeworkPriority.NORMAL


def _is_completed(row: Tag, text: str) -> bool:
    if row.select_one("input[type='checkbox'][checked]") is not None:
        return True
    if contains_any(text, _NOT_COMPLETED):
        return False
    return contains_any(text, _COMPLETED)


def _attachments(row: Tag) -> list[HomeworkAttachment]:
    attachments = []
    for link in row.select("a[href]"):
        href = link.get("href", "").strip()
        if not href or href.startswith(("#", "javascript:", "mailto:")):
            continue
        name = normalize_whitespace(link.get_text()) or href.rsplit("/", 1)[-1]
        attachments.append(HomeworkAttachment(name=name, url=href))
    return attachments


def parse_homework_row(row: Tag) -> Homework | None:
    cells = row.select("td")
    if len(cells) < MIN_CELLS:
        return None

    subject = cell_text(cells[0])
    title = cell_text(cells[1])
    due_date = parse_date(cell_text(cells[2]))
    if due_date is None:
        return None

    assigned_date = parse_date(cell_text(cells[3])) if len(cells) > 3 else None
    row_text = cell_text(row)
    is_completed = _is_completed(row, row_text)

    return Homework(
        subject=subject,
        assigned_date=assigned_date or date.today(),
        due_date=due_date,
        title=title,
        description=title,
        attachments=_attachments(row),
        is_completed=is_completed,
        priority=_priority(row_text),
    )


def build_homework_placeholder(keyword: str) -> Homework:
    today = date.today()
    return Homework(
        subject="Unknown",
        assigned_date=today,
        due_date=today,
        title=f"Homework found: {keyword}",
        description=f"Found homework indicator: {keyword}",
    )


HOMEWORK_CASCADE: Cascade[Homework] = Cascade(
    kind=RecordKind.HOMEWORK,
    selectors=SELECTORS,
    parse_row=parse_homework_row,
    fallback_keywords=FALLBACK_KEYWORDS,
    build_fallback=build_homework_placeholder,
)
