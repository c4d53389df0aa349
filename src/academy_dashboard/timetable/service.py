from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..classes.repository import ClassRepository, StudentRepository
from ..common.datetime_utils import hhmm, now_local
from ..common.validators import parse_hhmm, require_day_of_week
from ..core.constants import DEFAULT_TEACHER_COLOR, UNASSIGNED_LABEL, UNASSIGNED_LEGEND_COLOR, UNKNOWN_LABEL
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import ActorContext
from ..users.repository import ProfileRepository
from .model import (
    BlockRoster,
    ClassOption,
    LegendTeacher,
    RosterStudent,
    ScheduleBlock,
    TimetableView,
)
from .repository import AssignmentRepository, ScheduleRepository

logger = logging.getLogger(__name__)


class TimetableService:
    """Use case: weekly timetable of schedule blocks.

    Owners see every active block of the academy; anyone else sees the blocks
    of the classes they are actively linked to.
    """

    def __init__(
        self,
        schedules: ScheduleRepository,
        assignments: AssignmentRepository,
        classes: ClassRepository,
        students: StudentRepository,
        profiles: ProfileRepository,
    ):
        self._schedules = schedules
        self._assignments = assignments
        self._classes = classes
        self._students = students
        self._profiles = profiles

    def get_schedule_blocks(self, actor: ActorContext) -> TimetableView:
        user_role = Role.OWNER if actor.is_owner else Role.TEACHER

        class_ids: Optional[Sequence[int]] = None
        if not actor.is_owner:
            class_ids = list(self._classes.teacher_class_ids(actor.tenant_id, actor.user_id))
            if not class_ids:
                me = self._profiles.get_by_id(actor.user_id)
                return TimetableView(
                    blocks=[],
                    teachers=[
                        LegendTeacher(
                            id=actor.user_id,
                            name=me.label if me else UNKNOWN_LABEL,
                            color=(me.calendar_color if me else None) or DEFAULT_TEACHER_COLOR,
                        )
                    ],
                    user_role=user_role,
                )

        schedules = self._schedules.list_active(actor.tenant_id, class_ids=class_ids)
        block_class_ids = sorted({s.class_id for s in schedules})
        classes = {c.class_id: c for c in self._classes.list_all(actor.tenant_id, class_ids=block_class_ids)}
        homerooms = self._classes.homerooms(actor.tenant_id, block_class_ids)
        counts = self._assignments.count_active(actor.tenant_id, [s.schedule_id for s in schedules])

        blocks: list[ScheduleBlock] = []
        for s in sorted(schedules, key=lambda x: (x.day_of_week, x.start_time)):
            cls = classes.get(s.class_id)
            if not cls:
                continue
            homeroom = homerooms.get(s.class_id)
            blocks.append(
                ScheduleBlock(
                    id=s.schedule_id,
                    class_id=cls.class_id,
                    class_name=cls.name,
                    class_color=cls.color,
                    day_of_week=s.day_of_week,
                    start_time=hhmm(s.start_time),
                    end_time=hhmm(s.end_time),
                    teacher_id=homeroom.teacher_id if homeroom else None,
                    teacher_name=homeroom.teacher_name if homeroom else UNASSIGNED_LABEL,
                    teacher_color=(homeroom.teacher_color if homeroom else None) or DEFAULT_TEACHER_COLOR,
                    student_count=int(counts.get(s.schedule_id, 0)),
                )
            )

        legend: dict[Optional[int], LegendTeacher] = {}
        for b in blocks:
            if b.teacher_id is not None and b.teacher_id not in legend:
                legend[b.teacher_id] = LegendTeacher(id=b.teacher_id, name=b.teacher_name, color=b.teacher_color)
        if any(b.teacher_id is None for b in blocks):
            legend[None] = LegendTeacher(id=None, name=UNASSIGNED_LABEL, color=UNASSIGNED_LEGEND_COLOR)

        return TimetableView(blocks=blocks, teachers=list(legend.values()), user_role=user_role)

    def get_block_students(self, actor: ActorContext, *, schedule_id: int) -> BlockRoster:
        schedule = self._schedules.get(actor.tenant_id, schedule_id)
        if not schedule:
            raise NotFoundError("Schedule not found")

        cls = self._classes.get(actor.tenant_id, schedule.class_id)
        assignments = self._assignments.list_active_for_schedule(actor.tenant_id, schedule_id)
        by_student = {a.student_id: a for a in assignments}
        students = self._students.get_many(actor.tenant_id, list(by_student))

        roster = [
            RosterStudent(
                id=st.student_id,
                name=st.name,
                school=st.school,
                group_key=by_student[st.student_id].group_key,
                start_date=by_student[st.student_id].start_date,
            )
            for st in students
        ]
        return BlockRoster(class_name=cls.name if cls else UNKNOWN_LABEL, students=roster)

    def create_schedule(
        self,
        actor: ActorContext,
        *,
        class_id: int,
        day_of_week,
        start_time: str,
        end_time: str,
    ) -> int:
        if not actor.is_owner:
            raise AuthorizationError("Only the academy owner can edit the timetable")

        day = require_day_of_week(day_of_week)
        start = parse_hhmm(start_time, "Start time")
        end = parse_hhmm(end_time, "End time")
        if start >= end:
            raise ValidationError("Start time must be before end time")
        if not self._classes.get(actor.tenant_id, class_id):
            raise NotFoundError("Class not found")

        schedule_id = self._schedules.create(
            tenant_id=actor.tenant_id, class_id=class_id, day_of_week=day, start_time=start, end_time=end
        )
        logger.info("Schedule %s created for class %s (day=%s %s-%s)", schedule_id, class_id, day, hhmm(start), hhmm(end))
        return schedule_id

    def delete_schedule(self, actor: ActorContext, *, schedule_id: int) -> None:
        if not actor.is_owner:
            raise AuthorizationError("Only the academy owner can edit the timetable")
        if not self._schedules.soft_delete(actor.tenant_id, schedule_id, at=now_local()):
            raise NotFoundError("Schedule not found")
        logger.info("Schedule %s deleted", schedule_id)

    def get_classes_for_schedule(self, actor: ActorContext) -> list[ClassOption]:
        classes = self._classes.list_all(actor.tenant_id)
        homerooms = self._classes.homerooms(actor.tenant_id, [c.class_id for c in classes])
        return [
            ClassOption(
                id=c.class_id,
                name=c.name,
                teacher_name=homerooms[c.class_id].teacher_name if c.class_id in homerooms else None,
            )
            for c in classes
        ]
