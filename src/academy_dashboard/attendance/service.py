from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Optional, Sequence

from ..classes.model import Student
from ..classes.repository import ClassRepository, StudentRepository
from ..common.datetime_utils import month_range, now_local
from ..core.constants import MAKEUP_SEARCH_LIMIT, MAKEUP_SEARCH_MIN_CHARS, UNKNOWN_LABEL
from ..core.enums import AttendanceStatus, MakeupStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..timetable.repository import AssignmentRepository
from ..users.model import ActorContext
from .model import AbsentStudent, MakeupTicket, MakeupTicketView
from .repository import AbsenceRepository, MakeupTicketRepository

logger = logging.getLogger(__name__)


def _to_view(row: dict) -> MakeupTicketView:
    return MakeupTicketView(
        id=int(row["id"]),
        student_id=int(row["student_id"]),
        student_name=row.get("student_name") or UNKNOWN_LABEL,
        display_code=row.get("display_code") or "",
        class_id=int(row["class_id"]),
        class_name=row.get("class_name") or UNKNOWN_LABEL,
        absence_date=row["absence_date"],
        absence_reason=row.get("absence_reason"),
        status=MakeupStatus(row["status"]),
        makeup_date=row.get("makeup_date"),
        completed_at=row.get("completed_at"),
        completed_by=row.get("completed_by"),
        completion_note=row.get("completion_note"),
    )


class MakeupService:
    """Use case: absences and the makeup tickets they create."""

    def __init__(
        self,
        tickets: MakeupTicketRepository,
        absences: AbsenceRepository,
        classes: ClassRepository,
        students: StudentRepository,
        assignments: AssignmentRepository,
    ):
        self._tickets = tickets
        self._absences = absences
        self._classes = classes
        self._students = students
        self._assignments = assignments

    def _visible_class_ids(self, actor: ActorContext) -> Optional[Sequence[int]]:
        """None means every class of the tenant."""
        if actor.is_owner:
            return None
        return list(self._classes.teacher_class_ids(actor.tenant_id, actor.user_id))

    def _require_ticket(self, actor: ActorContext, ticket_id: int) -> MakeupTicket:
        ticket = self._tickets.get(actor.tenant_id, ticket_id)
        if not ticket:
            raise NotFoundError("Makeup ticket not found")
        visible = self._visible_class_ids(actor)
        if visible is not None and ticket.class_id not in visible:
            raise AuthorizationError("You can only manage tickets of your own classes")
        return ticket

    # Called from feed saves

    def sync_makeup_ticket(
        self,
        *,
        tenant_id: int,
        feed_id: int,
        student_id: int,
        class_id: int,
        feed_date: date,
        attendance_status: AttendanceStatus,
        needs_makeup: bool,
        absence_reason: Optional[str],
    ) -> Optional[int]:
        """Keep the ticket of a regular feed in line with its attendance.

        Returns the id of the pending ticket, or None when no makeup is owed.
        """
        existing = self._tickets.get_by_feed(tenant_id, feed_id)

        if attendance_status == AttendanceStatus.ABSENT and needs_makeup:
            if existing is None:
                ticket_id = self._tickets.create(
                    tenant_id=tenant_id,
                    student_id=student_id,
                    class_id=class_id,
                    feed_id=feed_id,
                    absence_date=feed_date,
                    absence_reason=absence_reason,
                )
                logger.info("Makeup ticket %s created for student %s (%s)", ticket_id, student_id, feed_date)
                return ticket_id
            if existing.status == MakeupStatus.CANCELLED:
                self._tickets.set_pending(tenant_id, existing.ticket_id, absence_reason=absence_reason)
                logger.info("Makeup ticket %s re-opened", existing.ticket_id)
            return existing.ticket_id

        if existing is not None and existing.status == MakeupStatus.PENDING:
            self._tickets.set_cancelled(tenant_id, existing.ticket_id)
            logger.info("Makeup ticket %s cancelled, no makeup owed anymore", existing.ticket_id)
        return None

    def require_open_ticket(self, actor: ActorContext, *, ticket_id: int, student_id: int) -> MakeupTicket:
        """The ticket a makeup feed is written against; completed tickets may be re-saved."""
        ticket = self._tickets.get(actor.tenant_id, ticket_id)
        if not ticket:
            raise NotFoundError("Makeup ticket not found")
        if ticket.student_id != student_id:
            raise ValidationError("The makeup ticket belongs to another student")
        if ticket.status == MakeupStatus.CANCELLED:
            raise ConflictError("The makeup ticket was cancelled")
        return ticket

    def complete_from_feed(
        self, actor: ActorContext, *, ticket_id: int, makeup_date: date, makeup_class_id: int
    ) -> None:
        self._tickets.set_completed(
            actor.tenant_id,
            ticket_id,
            completed_by=actor.user_id,
            completed_at=now_local(),
            makeup_date=makeup_date,
            makeup_class_id=makeup_class_id,
        )
        logger.info("Makeup ticket %s completed on %s", ticket_id, makeup_date)

    # Dashboard queries

    def list_absents(self, actor: ActorContext, *, start: date, end: date) -> list[AbsentStudent]:
        if start > end:
            raise ValidationError("Start date must not be after end date")

        rows = self._absences.list_absent_rows(actor.tenant_id, start, end, class_ids=self._visible_class_ids(actor))
        if not rows:
            return []

        # Counts cover whole months, even where the range cuts one.
        month_start = month_range(start.year, start.month)[0]
        month_end = month_range(end.year, end.month)[1]
        student_ids = sorted({int(r["student_id"]) for r in rows})
        per_month = Counter(
            (student_id, d.year, d.month)
            for student_id, d in self._absences.absence_dates(actor.tenant_id, student_ids, month_start, month_end)
        )

        result = []
        for r in rows:
            d = r["feed_date"]
            student_id = int(r["student_id"])
            result.append(
                AbsentStudent(
                    feed_id=int(r["feed_id"]),
                    student_id=student_id,
                    student_name=r.get("student_name") or UNKNOWN_LABEL,
                    class_id=int(r["class_id"]),
                    class_name=r.get("class_name") or UNKNOWN_LABEL,
                    feed_date=d,
                    absence_reason=r.get("absence_reason"),
                    needs_makeup=bool(r.get("needs_makeup")),
                    monthly_absence_count=per_month[(student_id, d.year, d.month)],
                )
            )
        return result

    def list_makeup_tickets(
        self,
        actor: ActorContext,
        *,
        status: Optional[MakeupStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[MakeupTicketView]:
        rows = self._tickets.list_view(
            actor.tenant_id,
            status=status,
            class_ids=self._visible_class_ids(actor),
            start=start,
            end=end,
        )
        return [_to_view(r) for r in rows]

    def list_pending_tickets(self, actor: ActorContext) -> list[MakeupTicketView]:
        """Pending tickets of the whole academy, oldest absence first, for makeup feed input."""
        return [_to_view(r) for r in self._tickets.list_view(actor.tenant_id, status=MakeupStatus.PENDING)]

    # Ticket transitions

    def complete_ticket(self, actor: ActorContext, *, ticket_id: int, note: Optional[str] = None) -> None:
        ticket = self._require_ticket(actor, ticket_id)
        if ticket.status != MakeupStatus.PENDING:
            raise ConflictError("Only pending tickets can be completed")
        self._tickets.set_completed(
            actor.tenant_id,
            ticket_id,
            completed_by=actor.user_id,
            completed_at=now_local(),
            note=(note or "").strip() or None,
        )
        logger.info("Makeup ticket %s completed by %s", ticket_id, actor.user_id)

    def cancel_ticket(self, actor: ActorContext, *, ticket_id: int) -> None:
        ticket = self._require_ticket(actor, ticket_id)
        if ticket.status != MakeupStatus.PENDING:
            raise ConflictError("Only pending tickets can be cancelled")
        self._tickets.set_cancelled(actor.tenant_id, ticket_id)
        logger.info("Makeup ticket %s cancelled by %s", ticket_id, actor.user_id)

    def reopen_ticket(self, actor: ActorContext, *, ticket_id: int) -> None:
        ticket = self._require_ticket(actor, ticket_id)
        if ticket.status == MakeupStatus.PENDING:
            raise ConflictError("The ticket is already pending")
        self._tickets.set_pending(actor.tenant_id, ticket_id)
        logger.info("Makeup ticket %s re-opened by %s", ticket_id, actor.user_id)

    def search_makeup_students(self, actor: ActorContext, *, class_id: int, query: str) -> list[Student]:
        """Students outside the class who could join it for a makeup lesson."""
        query = (query or "").strip()
        if len(query) < MAKEUP_SEARCH_MIN_CHARS:
            return []
        if not self._classes.get(actor.tenant_id, class_id):
            raise NotFoundError("Class not found")

        members = set(self._assignments.student_ids_for_class(actor.tenant_id, class_id))
        found = self._students.search(actor.tenant_id, query, limit=MAKEUP_SEARCH_LIMIT + len(members))
        return [s for s in found if s.student_id not in members][:MAKEUP_SEARCH_LIMIT]
