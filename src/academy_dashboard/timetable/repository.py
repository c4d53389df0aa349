from __future__ import annotations

from datetime import date, datetime, time
from typing import Mapping, Optional, Protocol, Sequence

from .model import Schedule, ScheduleAssignment


class ScheduleRepository(Protocol):
    def get(self, tenant_id: int, schedule_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def list_active(self, tenant_id: int, *, class_ids: Optional[Sequence[int]] = None) -> Sequence[Schedule]:
        raise NotImplementedError

    def create(self, *, tenant_id: int, class_id: int, day_of_week: int, start_time: time, end_time: time) -> int:
        """Raise ConflictError when the live slot already exists."""
        raise NotImplementedError

    def soft_delete(self, tenant_id: int, schedule_id: int, *, at: datetime) -> bool:
        raise NotImplementedError


class AssignmentRepository(Protocol):
    def count_active(self, tenant_id: int, schedule_ids: Sequence[int]) -> Mapping[int, int]:
        raise NotImplementedError

    def list_active_for_schedule(self, tenant_id: int, schedule_id: int) -> Sequence[ScheduleAssignment]:
        raise NotImplementedError

    def student_ids_for_class(self, tenant_id: int, class_id: int) -> Sequence[int]:
        """Students with an active assignment on any active block of the class."""
        raise NotImplementedError

    def list_for_student(
        self,
        tenant_id: int,
        student_id: int,
        *,
        schedule_ids: Optional[Sequence[int]] = None,
        active_only: bool = True,
    ) -> Sequence[ScheduleAssignment]:
        raise NotImplementedError

    def create_many(
        self,
        *,
        tenant_id: int,
        student_id: int,
        schedule_ids: Sequence[int],
        group_key: Optional[str],
        start_date: date,
    ) -> int:
        raise NotImplementedError

    def end_many(self, tenant_id: int, assignment_ids: Sequence[int], *, end_date: date) -> int:
        raise NotImplementedError
