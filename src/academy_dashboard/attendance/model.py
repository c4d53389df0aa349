from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import MakeupStatus


@dataclass(frozen=True)
class MakeupTicket:
    """An owed makeup lesson created from an absence."""

    ticket_id: int
    tenant_id: int
    student_id: int
    class_id: int
    absence_date: date
    status: MakeupStatus = MakeupStatus.PENDING
    feed_id: Optional[int] = None
    absence_reason: Optional[str] = None
    makeup_date: Optional[date] = None
    makeup_class_id: Optional[int] = None
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    completion_note: Optional[str] = None


@dataclass(frozen=True)
class AbsentStudent:
    feed_id: int
    student_id: int
    student_name: str
    class_id: int
    class_name: str
    feed_date: date
    absence_reason: Optional[str]
    needs_makeup: bool
    monthly_absence_count: int


@dataclass(frozen=True)
class MakeupTicketView:
    id: int
    student_id: int
    student_name: str
    display_code: str
    class_id: int
    class_name: str
    absence_date: date
    absence_reason: Optional[str]
    status: MakeupStatus
    makeup_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    completion_note: Optional[str] = None
