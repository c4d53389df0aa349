from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..classes.repository import ClassRepository, StudentRepository
from ..classes.service import new_group_key
from ..common.datetime_utils import hhmm, normalize_mysql_time, now_local
from ..core.constants import UNASSIGNED_LABEL, UNKNOWN_LABEL
from ..core.enums import TransferScope, TransferStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..timetable.model import Schedule
from ..timetable.repository import AssignmentRepository, ScheduleRepository
from ..users.model import ActorContext
from .factory import MoveScopeFactory
from .model import (
    Approval,
    ClassChangeView,
    MoveCommand,
    MoveOutcome,
    MovePlan,
    NewAssignment,
    TransferRequestView,
)
from .repository import ClassChangeRepository, MoveApplier, TransferRequestRepository

logger = logging.getLogger(__name__)


def parse_scope(value) -> TransferScope:
    try:
        return TransferScope(value)
    except ValueError:
        raise ValidationError("Scope must be 'this_day' or 'same_group'")


def _time_label(value) -> str:
    return hhmm(normalize_mysql_time(value)) if value is not None else ""


class TransferService:
    """Use case: move students between schedule blocks.

    Owners, and teachers moving a student into a class they teach, move
    immediately. A teacher moving a student into another teacher's class
    files a TransferRequest the owner approves or rejects.
    """

    def __init__(
        self,
        requests: TransferRequestRepository,
        class_changes: ClassChangeRepository,
        applier: MoveApplier,
        schedules: ScheduleRepository,
        assignments: AssignmentRepository,
        classes: ClassRepository,
        students: StudentRepository,
        *,
        scope_factory: Optional[MoveScopeFactory] = None,
    ):
        self._requests = requests
        self._class_changes = class_changes
        self._applier = applier
        self._schedules = schedules
        self._assignments = assignments
        self._classes = classes
        self._students = students
        self._scopes = scope_factory or MoveScopeFactory()

    @staticmethod
    def _require_owner(actor: ActorContext, message: str = "Only the academy owner can do this") -> None:
        if not actor.is_owner:
            raise AuthorizationError(message)

    def _require_schedule(self, actor: ActorContext, schedule_id: int) -> Schedule:
        schedule = self._schedules.get(actor.tenant_id, schedule_id)
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    def _plan(self, command: MoveCommand) -> MovePlan:
        return self._scopes.for_scope(command.scope).plan(
            command, assignments=self._assignments, schedules=self._schedules
        )

    def _homeroom_id(self, actor: ActorContext, class_id: int) -> Optional[int]:
        homeroom = self._classes.homerooms(actor.tenant_id, [class_id]).get(class_id)
        return homeroom.teacher_id if homeroom else None

    # ------------------------------------------------------------------ moves

    def move_student(
        self,
        actor: ActorContext,
        *,
        student_id: int,
        effective_date: date,
        from_schedule_id: int,
        to_schedule_id: int,
        scope,
        group_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> MoveOutcome:
        scope = parse_scope(scope)
        if scope == TransferScope.SAME_GROUP and not group_key:
            raise ValidationError("Moving the whole group requires a group key")
        if from_schedule_id == to_schedule_id:
            raise ValidationError("The student is already in that block")

        self._require_schedule(actor, from_schedule_id)
        to_schedule = self._require_schedule(actor, to_schedule_id)
        if not self._students.get(actor.tenant_id, student_id):
            raise NotFoundError("Student not found")

        can_apply = actor.is_owner or to_schedule.class_id in self._classes.teacher_class_ids(
            actor.tenant_id, actor.user_id
        )
        if not can_apply:
            request_id = self.create_transfer_request(
                actor,
                student_id=student_id,
                effective_date=effective_date,
                from_schedule_id=from_schedule_id,
                to_schedule_id=to_schedule_id,
                scope=scope,
                group_key=group_key,
                reason=reason,
            )
            return MoveOutcome(requested=True, request_id=request_id)

        command = MoveCommand(
            tenant_id=actor.tenant_id,
            student_id=student_id,
            effective_date=effective_date,
            from_schedule_id=from_schedule_id,
            to_schedule_id=to_schedule_id,
            scope=scope,
            group_key=group_key if scope == TransferScope.SAME_GROUP else None,
        )
        moved = self._applier.apply(actor.tenant_id, self._plan(command))
        logger.info(
            "Student %s moved %s -> %s (%s, %s blocks) by %s",
            student_id, from_schedule_id, to_schedule_id, scope.value, moved, actor.user_id,
        )
        return MoveOutcome(applied=True, moved=moved)

    def move_student_to_class(
        self,
        actor: ActorContext,
        *,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        on_date: Optional[date] = None,
    ) -> int:
        """Move a student out of every block of one class into every block of another."""
        self._require_owner(actor, "Only the academy owner can move students between classes")
        if from_class_id == to_class_id:
            raise ValidationError("Source and target class are the same")

        on_date = on_date or now_local().date()
        to_ids = [s.schedule_id for s in self._schedules.list_active(actor.tenant_id, class_ids=[to_class_id])]
        if not to_ids:
            raise ValidationError("The target class has no schedule yet")
        from_ids = [s.schedule_id for s in self._schedules.list_active(actor.tenant_id, class_ids=[from_class_id])]

        plan = MovePlan(end_date=on_date)
        plan.end_ids.extend(
            a.assignment_id for a in self._assignments.list_for_student(actor.tenant_id, student_id, schedule_ids=from_ids)
        )

        existing = self._assignments.list_for_student(
            actor.tenant_id, student_id, schedule_ids=to_ids, active_only=False
        )
        group_key = new_group_key()
        for schedule_id in to_ids:
            on_block = [a for a in existing if a.schedule_id == schedule_id]
            if any(a.is_active for a in on_block):
                continue
            if on_block:
                latest = max(on_block, key=lambda a: a.assignment_id)
                plan.reactivate_ids.append(latest.assignment_id)
            else:
                plan.creates.append(
                    NewAssignment(student_id=student_id, schedule_id=schedule_id, start_date=on_date, group_key=group_key)
                )

        moved = self._applier.apply(actor.tenant_id, plan)
        logger.info("Student %s moved from class %s to class %s (%s blocks)", student_id, from_class_id, to_class_id, moved)
        return moved

    # ------------------------------------------------------- transfer requests

    def create_transfer_request(
        self,
        actor: ActorContext,
        *,
        student_id: int,
        effective_date: date,
        from_schedule_id: int,
        to_schedule_id: int,
        scope,
        group_key: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> int:
        scope = parse_scope(scope)
        if scope == TransferScope.SAME_GROUP and not group_key:
            raise ValidationError("Moving the whole group requires a group key")

        from_schedule = self._require_schedule(actor, from_schedule_id)
        to_schedule = self._require_schedule(actor, to_schedule_id)

        request_id = self._requests.create(
            tenant_id=actor.tenant_id,
            student_id=student_id,
            effective_date=effective_date,
            from_schedule_id=from_schedule_id,
            to_schedule_id=to_schedule_id,
            from_class_id=from_schedule.class_id,
            to_class_id=to_schedule.class_id,
            from_teacher_id=self._homeroom_id(actor, from_schedule.class_id),
            to_teacher_id=self._homeroom_id(actor, to_schedule.class_id),
            scope=scope,
            group_key=group_key if scope == TransferScope.SAME_GROUP else None,
            requested_by=actor.user_id,
            reason=(reason or "").strip() or None,
        )
        logger.info("Transfer request %s filed by %s for student %s", request_id, actor.user_id, student_id)
        return request_id

    def list_pending_transfer_requests(self, actor: ActorContext) -> list[TransferRequestView]:
        if not actor.is_owner:
            return []
        out: list[TransferRequestView] = []
        for r in self._requests.list_pending_view(actor.tenant_id):
            out.append(
                TransferRequestView(
                    id=int(r["id"]),
                    student_id=int(r["student_id"]),
                    student_name=r.get("student_name") or UNKNOWN_LABEL,
                    student_code=r.get("student_code") or "",
                    effective_date=r["effective_date"],
                    from_class_name=r.get("from_class_name") or UNKNOWN_LABEL,
                    from_class_color=r.get("from_class_color"),
                    from_teacher_name=r.get("from_teacher_name") or UNASSIGNED_LABEL,
                    to_class_name=r.get("to_class_name") or UNKNOWN_LABEL,
                    to_class_color=r.get("to_class_color"),
                    to_teacher_name=r.get("to_teacher_name") or UNASSIGNED_LABEL,
                    from_day_of_week=int(r.get("from_day_of_week") or 0),
                    from_start_time=_time_label(r.get("from_start_time")),
                    to_day_of_week=int(r.get("to_day_of_week") or 0),
                    to_start_time=_time_label(r.get("to_start_time")),
                    scope=TransferScope(r["scope"]),
                    status=TransferStatus(r["status"]),
                    requested_by_name=r.get("requested_by_name") or UNKNOWN_LABEL,
                    created_at=r.get("created_at"),
                    review_note=r.get("review_note"),
                )
            )
        return out

    def approve_transfer_request(self, actor: ActorContext, *, request_id: int) -> int:
        self._require_owner(actor, "Only the academy owner can approve requests")
        request = self._requests.get(actor.tenant_id, request_id)
        if not request:
            raise NotFoundError("Request not found")
        if request.status != TransferStatus.PENDING:
            raise ConflictError("The request was already processed")

        self._require_schedule(actor, request.to_schedule_id)

        command = MoveCommand(
            tenant_id=actor.tenant_id,
            student_id=request.student_id,
            effective_date=request.effective_date,
            from_schedule_id=request.from_schedule_id,
            to_schedule_id=request.to_schedule_id,
            scope=request.scope,
            group_key=request.group_key,
        )
        approval = Approval(request_id=request_id, reviewed_by=actor.user_id, reviewed_at=now_local())
        moved = self._applier.apply(actor.tenant_id, self._plan(command), approval=approval)
        logger.info("Transfer request %s approved by %s (%s blocks)", request_id, actor.user_id, moved)
        return moved

    def reject_transfer_request(self, actor: ActorContext, *, request_id: int, note: Optional[str] = None) -> None:
        self._require_owner(actor, "Only the academy owner can reject requests")
        request = self._requests.get(actor.tenant_id, request_id)
        if not request:
            raise NotFoundError("Request not found")
        closed = self._requests.close(
            actor.tenant_id,
            request_id,
            status=TransferStatus.REJECTED,
            reviewed_by=actor.user_id,
            reviewed_at=now_local(),
            review_note=(note or "").strip() or None,
        )
        if not closed:
            raise ConflictError("The request was already processed")
        logger.info("Transfer request %s rejected by %s", request_id, actor.user_id)

    def cancel_transfer_request(self, actor: ActorContext, *, request_id: int) -> None:
        request = self._requests.get(actor.tenant_id, request_id)
        if not request:
            raise NotFoundError("Request not found")
        if request.requested_by != actor.user_id:
            raise AuthorizationError("Only the requester can cancel this request")
        if not self._requests.close(actor.tenant_id, request_id, status=TransferStatus.CANCELLED):
            raise ConflictError("Only pending requests can be cancelled")
        logger.info("Transfer request %s cancelled by %s", request_id, actor.user_id)

    # ---------------------------------------------------- class change requests

    def create_class_change_request(self, actor: ActorContext, *, student_id: int, message: Optional[str]) -> int:
        if not self._students.get(actor.tenant_id, student_id):
            raise NotFoundError("Student not found")
        return self._class_changes.create(
            tenant_id=actor.tenant_id,
            student_id=student_id,
            message=(message or "").strip() or None,
            requested_by=actor.user_id,
        )

    def list_class_change_requests(self, actor: ActorContext) -> Sequence[ClassChangeView]:
        self._require_owner(actor)
        return [
            ClassChangeView(
                id=int(r["id"]),
                student_id=int(r["student_id"]),
                student_name=r.get("student_name") or UNKNOWN_LABEL,
                current_class=r.get("current_class") or UNASSIGNED_LABEL,
                message=r.get("message"),
                requested_by=r.get("requested_by") or UNKNOWN_LABEL,
                created_at=r.get("created_at"),
            )
            for r in self._class_changes.list_pending_view(actor.tenant_id)
        ]

    def complete_class_change_request(self, actor: ActorContext, *, request_id: int) -> None:
        self._require_owner(actor)
        if not self._class_changes.mark_done(actor.tenant_id, request_id, at=now_local()):
            raise NotFoundError("Request not found")
        logger.info("Class change request %s completed by %s", request_id, actor.user_id)
