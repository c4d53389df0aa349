from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import ClassChangeStatus, TransferScope, TransferStatus


@dataclass(frozen=True)
class TransferRequest:
    """A teacher's pending move into another teacher's class."""

    request_id: int
    tenant_id: int
    student_id: int
    effective_date: date
    from_schedule_id: int
    to_schedule_id: int
    scope: TransferScope
    requested_by: int
    status: TransferStatus = TransferStatus.PENDING
    from_class_id: Optional[int] = None
    to_class_id: Optional[int] = None
    from_teacher_id: Optional[int] = None
    to_teacher_id: Optional[int] = None
    group_key: Optional[str] = None
    reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TransferRequestView:
    id: int
    student_id: int
    student_name: str
    student_code: str
    effective_date: date
    from_class_name: str
    from_class_color: Optional[str]
    from_teacher_name: str
    to_class_name: str
    to_class_color: Optional[str]
    to_teacher_name: str
    from_day_of_week: int
    from_start_time: str
    to_day_of_week: int
    to_start_time: str
    scope: TransferScope
    status: TransferStatus
    requested_by_name: str
    created_at: Optional[datetime]
    review_note: Optional[str]


@dataclass(frozen=True)
class ClassChangeRequest:
    request_id: int
    tenant_id: int
    student_id: int
    message: Optional[str]
    status: ClassChangeStatus = ClassChangeStatus.PENDING
    requested_by: Optional[int] = None
    done_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ClassChangeView:
    id: int
    student_id: int
    student_name: str
    current_class: str
    message: Optional[str]
    requested_by: str
    created_at: Optional[datetime]


@dataclass(frozen=True)
class MoveCommand:
    tenant_id: int
    student_id: int
    effective_date: date
    from_schedule_id: int
    to_schedule_id: int
    scope: TransferScope
    group_key: Optional[str] = None


@dataclass(frozen=True)
class NewAssignment:
    student_id: int
    schedule_id: int
    start_date: date
    group_key: Optional[str] = None


@dataclass
class MovePlan:
    """Assignment writes a move performs, applied together in one transaction."""

    end_date: date
    end_ids: list[int] = field(default_factory=list)
    creates: list[NewAssignment] = field(default_factory=list)
    reactivate_ids: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.end_ids or self.creates or self.reactivate_ids)


@dataclass(frozen=True)
class Approval:
    request_id: int
    reviewed_by: int
    reviewed_at: datetime


@dataclass(frozen=True)
class MoveOutcome:
    applied: bool = False
    requested: bool = False
    request_id: Optional[int] = None
    moved: int = 0
