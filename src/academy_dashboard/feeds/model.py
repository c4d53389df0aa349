from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_positive_id
from ..core.enums import AttendanceStatus, SessionType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class FeedValueInput:
    set_id: int
    option_id: Optional[int]
    score: Optional[float] = None


@dataclass(frozen=True)
class SaveFeedPayload:
    """One student's feed for one day, as submitted by a teacher."""

    class_id: int
    student_id: int
    feed_date: date
    attendance_status: AttendanceStatus
    idempotency_key: str
    session_type: SessionType = SessionType.REGULAR
    absence_reason: Optional[str] = None
    absence_reason_detail: Optional[str] = None
    notify_parent: bool = False
    needs_makeup: Optional[bool] = None
    progress_text: Optional[str] = None
    memo_values: dict = field(default_factory=dict)
    feed_values: list[FeedValueInput] = field(default_factory=list)
    exam_scores: list[FeedValueInput] = field(default_factory=list)
    makeup_ticket_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SaveFeedPayload":
        try:
            status = AttendanceStatus(data.get("attendance_status"))
        except ValueError:
            raise ValidationError("Attendance status must be present, late or absent")
        try:
            session_type = SessionType(data.get("session_type") or SessionType.REGULAR.value)
        except ValueError:
            raise ValidationError("Session type must be regular or makeup")
        try:
            feed_date = parse_iso_date(str(data.get("feed_date") or ""))
        except ValueError:
            raise ValidationError("Feed date must be YYYY-MM-DD")

        key = str(data.get("idempotency_key") or "").strip()
        if not key:
            raise ValidationError("Idempotency key is required")

        needs_makeup = data.get("needs_makeup")
        ticket_id = data.get("makeup_ticket_id")
        return cls(
            class_id=require_positive_id(data.get("class_id"), "Class"),
            student_id=require_positive_id(data.get("student_id"), "Student"),
            feed_date=feed_date,
            attendance_status=status,
            idempotency_key=key,
            session_type=session_type,
            absence_reason=data.get("absence_reason") or None,
            absence_reason_detail=data.get("absence_reason_detail") or None,
            notify_parent=bool(data.get("notify_parent", False)),
            needs_makeup=None if needs_makeup is None else bool(needs_makeup),
            progress_text=data.get("progress_text") or None,
            memo_values=dict(data.get("memo_values") or {}),
            feed_values=[
                FeedValueInput(
                    set_id=require_positive_id(v.get("set_id"), "Option set"),
                    option_id=require_positive_id(v.get("option_id"), "Option"),
                    score=v.get("score"),
                )
                for v in data.get("feed_values") or []
            ],
            exam_scores=[
                FeedValueInput(set_id=require_positive_id(v.get("set_id"), "Exam"), option_id=None, score=v.get("score"))
                for v in data.get("exam_scores") or []
            ],
            makeup_ticket_id=None if ticket_id in (None, "") else require_positive_id(ticket_id, "Makeup ticket"),
        )


@dataclass(frozen=True)
class FeedWrite:
    """Column values of a student_feeds row being inserted or updated."""

    class_id: int
    student_id: int
    feed_date: date
    session_type: SessionType
    attendance_status: AttendanceStatus
    absence_reason: Optional[str]
    absence_reason_detail: Optional[str]
    notify_parent: bool
    needs_makeup: bool
    is_makeup: bool
    progress_text: Optional[str]
    memo_values: dict
    is_counted_in_stats: bool
    makeup_ticket_id: Optional[int]
    created_by: int


@dataclass(frozen=True)
class StudentFeed:
    feed_id: int
    tenant_id: int
    class_id: int
    student_id: int
    feed_date: date
    session_type: SessionType
    attendance_status: AttendanceStatus
    absence_reason: Optional[str] = None
    absence_reason_detail: Optional[str] = None
    notify_parent: bool = False
    needs_makeup: bool = False
    is_makeup: bool = False
    progress_text: Optional[str] = None
    memo_values: dict = field(default_factory=dict)
    is_counted_in_stats: bool = True
    makeup_ticket_id: Optional[int] = None


@dataclass(frozen=True)
class FeedValue:
    feed_id: int
    set_id: int
    option_id: Optional[int]
    score: Optional[float]


@dataclass(frozen=True)
class SaveFeedResult:
    success: bool
    feed_id: Optional[int] = None
    cached: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class StudentSaveResult:
    student_id: int
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SaveAllResult:
    success: bool
    results: list[StudentSaveResult] = field(default_factory=list)


@dataclass(frozen=True)
class SavedFeed:
    id: int
    student_id: int
    attendance_status: AttendanceStatus
    absence_reason: Optional[str]
    absence_reason_detail: Optional[str]
    notify_parent: bool
    is_makeup: bool
    progress_text: Optional[str]
    memo_values: dict
    feed_values: list[FeedValueInput] = field(default_factory=list)
    exam_scores: list[FeedValueInput] = field(default_factory=list)


@dataclass(frozen=True)
class ClassStudent:
    id: int
    name: str
    display_code: str
    class_id: int
    is_makeup: bool = False
