from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Schedule:
    """A recurring weekly slot of a class (`class_schedules` row)."""

    schedule_id: int
    tenant_id: int
    class_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool = True


@dataclass(frozen=True)
class ScheduleAssignment:
    """A student sitting in a schedule from `start_date` until `end_date`."""

    assignment_id: int
    tenant_id: int
    student_id: int
    schedule_id: int
    start_date: date
    group_key: Optional[str] = None
    end_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.end_date is None


@dataclass(frozen=True)
class ScheduleBlock:
    id: int
    class_id: int
    class_name: str
    class_color: Optional[str]
    day_of_week: int
    start_time: str
    end_time: str
    teacher_id: Optional[int]
    teacher_name: str
    teacher_color: str
    student_count: int


@dataclass(frozen=True)
class LegendTeacher:
    id: Optional[int]
    name: str
    color: str


@dataclass(frozen=True)
class TimetableView:
    blocks: list[ScheduleBlock] = field(default_factory=list)
    teachers: list[LegendTeacher] = field(default_factory=list)
    user_role: Optional[Role] = None


@dataclass(frozen=True)
class RosterStudent:
    id: int
    name: str
    school: Optional[str]
    group_key: Optional[str]
    start_date: date


@dataclass(frozen=True)
class BlockRoster:
    class_name: str
    students: list[RosterStudent] = field(default_factory=list)


@dataclass(frozen=True)
class ClassOption:
    id: int
    name: str
    teacher_name: Optional[str]
