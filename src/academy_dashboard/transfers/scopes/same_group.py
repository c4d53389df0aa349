from __future__ import annotations

from ...core.exceptions import NotFoundError, ValidationError
from ...timetable.repository import AssignmentRepository, ScheduleRepository
from ..model import MoveCommand, MovePlan, NewAssignment
from .base import MoveScope


class SameGroupScope(MoveScope):
    """Move every recurring block that shares the assignment's group key.

    Target blocks are the to-class's active blocks with the same start and end
    time as the chosen to-block, matched by weekday. Group assignments on a
    weekday the target class does not hold are left in place. A target block the
    student already attends gets no second assignment.
    """

    def plan(
        self,
        command: MoveCommand,
        *,
        assignments: AssignmentRepository,
        schedules: ScheduleRepository,
    ) -> MovePlan:
        if not command.group_key:
            raise ValidationError("Moving the whole group requires a group key")

        to_schedule = schedules.get(command.tenant_id, command.to_schedule_id)
        if not to_schedule:
            raise NotFoundError("Target schedule not found")

        target_by_day = {
            s.day_of_week: s.schedule_id
            for s in schedules.list_active(command.tenant_id, class_ids=[to_schedule.class_id])
            if s.start_time == to_schedule.start_time and s.end_time == to_schedule.end_time
        }

        plan = MovePlan(end_date=command.effective_date)
        active = list(assignments.list_for_student(command.tenant_id, command.student_id))
        already_on = {a.schedule_id for a in active}
        group = [a for a in active if a.group_key == command.group_key]
        for a in group:
            current = schedules.get(command.tenant_id, a.schedule_id)
            if not current:
                continue
            target_id = target_by_day.get(current.day_of_week)
            if target_id is None or target_id == a.schedule_id:
                continue
            plan.end_ids.append(a.assignment_id)
            if target_id in already_on:
                continue
            already_on.add(target_id)
            plan.creates.append(
                NewAssignment(
                    student_id=command.student_id,
                    schedule_id=target_id,
                    start_date=command.effective_date,
                    group_key=command.group_key,
                )
            )
        return plan
