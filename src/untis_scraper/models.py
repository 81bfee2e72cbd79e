"""Pydantic models for records recovered from portal HTML.

All records are frozen snapshots created fresh by each extraction call. The
``id`` is a random UUID, so two extractions of the same row produce different
identifiers. Optional fields stay ``None`` when the page did not carry them.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _new_id() -> str:
    return str(uuid4())


class RecordKind(str, Enum):
    """Kind of record a page is fetched and extracted for."""

    ABSENCE = "absence"
    EXAM = "exam"
    HOMEWORK = "homework"
    PERIOD = "period"


class DateRange(BaseModel):
    """Inclusive date range used to fill date-bearing portal URLs."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @classmethod
    def current_week(cls, today: date | None = None) -> "DateRange":
        """Today plus the following six days."""
        today = today or date.today()
        return cls(start=today, end=today + timedelta(days=6))


class Absence(BaseModel):
    """A student absence from the absences page.

    Row-parsed absences always satisfy ``start_date <= end_date``. Fallback
    absences carry today's date for both ends as an "unknown date" marker.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    start_date: date
    end_date: date
    start_time: str | None = None  # "HH:MM"
    end_time: str | None = None
    reason: str | None = None
    reason_code: str | None = None
    is_excused: bool = False
    is_approved: bool = False
    comment: str | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None


class Exam(BaseModel):
    """An exam from the exams page or a highlighted timetable cell."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    date: date
    start_time: str  # "HH:MM"
    end_time: str
    subject: str
    subject_code: str | None = None
    teacher: str | None = None
    teacher_code: str | None = None
    room: str | None = None
    room_code: str | None = None
    exam_type: str = "exam"
    description: str | None = None
    duration: int | None = None  # minutes
    is_written: bool = True
    is_oral: bool = False


class HomeworkPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class HomeworkAttachment(BaseModel):
    """A file linked from a homework row."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str
    url: str | None = None
    file_size: int | None = None  # bytes
    mime_type: str | None = None


class Homework(BaseModel):
    """A homework assignment. ``due_date`` is required; rows without one are dropped."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    subject: str
    subject_code: str | None = None
    teacher: str | None = None
    teacher_code: str | None = None
    assigned_date: date
    due_date: date
    title: str
    description: str
    attachments: list[HomeworkAttachment] = Field(default_factory=list)
    is_completed: bool = False
    completed_date: date | None = None
    priority: HomeworkPriority = HomeworkPriority.NORMAL


class PeriodStatus(str, Enum):
    NORMAL = "normal"
    CANCELLED = "cancelled"
    SUBSTITUTED = "substituted"
    ABSENT = "absent"
    EXCUSED = "excused"
    EXAM = "exam"
    RESCHEDULED = "rescheduled"
    UNKNOWN = "unknown"


class SubstitutionInfo(BaseModel):
    """Original vs. substitute details of a substituted period."""

    model_config = ConfigDict(frozen=True)

    original_teacher: str | None = None
    substitute_teacher: str | None = None
    original_room: str | None = None
    substitute_room: str | None = None
    original_subject: str | None = None
    substitute_subject: str | None = None
    reason: str | None = None
    note: str | None = None


# Flag that must be set when a period carries the given status
_STATUS_FLAGS: dict[PeriodStatus, str] = {
    PeriodStatus.ABSENT: "is_absent",
    PeriodStatus.CANCELLED: "is_cancelled",
    PeriodStatus.EXAM: "has_exam",
    PeriodStatus.SUBSTITUTED: "is_substituted",
}

# Precedence of flag-backed statuses, highest first
_STATUS_PRECEDENCE: tuple[PeriodStatus, ...] = (
    PeriodStatus.ABSENT,
    PeriodStatus.CANCELLED,
    PeriodStatus.EXAM,
    PeriodStatus.SUBSTITUTED,
    PeriodStatus.NORMAL,
)


def status_from_flags(
    *,
    is_absent: bool = False,
    is_cancelled: bool = False,
    has_exam: bool = False,
    is_substituted: bool = False,
) -> PeriodStatus:
    """Resolve a status when several markers co-occur.

    Absence wins over cancellation, cancellation over an exam marker, an exam
    marker over a substitution.
    """
    if is_absent:
        return PeriodStatus.ABSENT
    if is_cancelled:
        return PeriodStatus.CANCELLED
    if has_exam:
        return PeriodStatus.EXAM
    if is_substituted:
        return PeriodStatus.SUBSTITUTED
    return PeriodStatus.NORMAL


class Period(BaseModel):
    """A timetable period with status information.

    ``status`` and the boolean flags are kept consistent on construction:

    - a given status switches its own flag on;
    - a missing status is derived from the flags;
    - a given status from the precedence chain (normal, substituted, exam,
      cancelled, absent) is raised to the flags' status when a flag of
      higher precedence is set, so ``status=NORMAL, is_absent=True`` becomes
      ABSENT. Excused, rescheduled and unknown are kept as given.

    Flags of lower-precedence markers are kept, so a cancelled period whose
    text also mentions an exam has ``has_exam=True``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    date: date
    start_time: str  # "HH:MM"
    end_time: str
    subject: str | None = None
    subject_code: str | None = None
    teacher: str | None = None
    teacher_code: str | None = None
    room: str | None = None
    room_code: str | None = None
    period_number: int | None = None
    status: PeriodStatus = PeriodStatus.NORMAL
    status_text: str | None = None
    is_absent: bool = False
    is_cancelled: bool = False
    is_substituted: bool = False
    substitution_info: SubstitutionInfo | None = None
    has_exam: bool = False
    exam_info: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _sync_status(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        given = data.get("status")
        if given is not None:
            given = PeriodStatus(given)
            flag = _STATUS_FLAGS.get(given)
            if flag:
                data[flag] = True

        derived = status_from_flags(
            is_absent=bool(data.get("is_absent")),
            is_cancelled=bool(data.get("is_cancelled")),
            has_exam=bool(data.get("has_exam")),
            is_substituted=bool(data.get("is_substituted")),
        )
        if given is None or (
            given in _STATUS_PRECEDENCE
            and _STATUS_PRECEDENCE.index(derived) < _STATUS_PRECEDENCE.index(given)
        ):
            data["status"] = derived
        else:
            data["status"] = given
        return data
