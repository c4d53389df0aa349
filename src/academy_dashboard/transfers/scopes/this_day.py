from __future__ import annotations

from ...core.exceptions import NotFoundError
from ...timetable.repository import AssignmentRepository, ScheduleRepository
from ..model import MoveCommand, MovePlan, NewAssignment
from .base import MoveScope


class ThisDayScope(MoveScope):
    """Move only the from-block; the student's other weekdays stay as they are."""

    def plan(
        self,
        command: MoveCommand,
        *,
        assignments: AssignmentRepository,
        schedules: ScheduleRepository,
    ) -> MovePlan:
        if not schedules.get(command.tenant_id, command.to_schedule_id):
            raise NotFoundError("Target schedule not found")

        plan = MovePlan(end_date=command.effective_date)

        on_from = assignments.list_for_student(
            command.tenant_id, command.student_id, schedule_ids=[command.from_schedule_id]
        )
        plan.end_ids.extend(a.assignment_id for a in on_from)

        already_on_target = assignments.list_for_student(
            command.tenant_id, command.student_id, schedule_ids=[command.to_schedule_id]
        )
        if not already_on_target:
            plan.creates.append(
                NewAssignment(
                    student_id=command.student_id,
                    schedule_id=command.to_schedule_id,
                    start_date=command.effective_date,
                )
            )
        return plan
