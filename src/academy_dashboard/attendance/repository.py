from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import MakeupStatus
from .model import MakeupTicket


class MakeupTicketRepository(Protocol):
    def get(self, tenant_id: int, ticket_id: int) -> Optional[MakeupTicket]:
        raise NotImplementedError

    def get_by_feed(self, tenant_id: int, feed_id: int) -> Optional[MakeupTicket]:
        raise NotImplementedError

    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        class_id: int,
        feed_id: int,
        absence_date: date,
        absence_reason: Optional[str],
    ) -> int:
        raise NotImplementedError

    def set_pending(self, tenant_id: int, ticket_id: int, *, absence_reason: Optional[str] = None) -> bool:
        """Re-open a ticket, clearing any completion data."""
        raise NotImplementedError

    def set_cancelled(self, tenant_id: int, ticket_id: int) -> bool:
        raise NotImplementedError

    def set_completed(
        self,
        tenant_id: int,
        ticket_id: int,
        *,
        completed_by: int,
        completed_at: datetime,
        note: Optional[str] = None,
        makeup_date: Optional[date] = None,
        makeup_class_id: Optional[int] = None,
    ) -> bool:
        raise NotImplementedError

    def list_view(
        self,
        tenant_id: int,
        *,
        status: Optional[MakeupStatus] = None,
        class_ids: Optional[Sequence[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[dict]:
        raise NotImplementedError


class AbsenceRepository(Protocol):
    def list_absent_rows(
        self, tenant_id: int, start: date, end: date, *, class_ids: Optional[Sequence[int]] = None
    ) -> Sequence[dict]:
        """Absent regular feeds in range, newest first, with student and class names."""
        raise NotImplementedError

    def absence_dates(self, tenant_id: int, student_ids: Sequence[int], start: date, end: date) -> Sequence[tuple[int, date]]:
        raise NotImplementedError
