from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.constants import STUDENT_SEARCH_LIMIT
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..timetable.repository import AssignmentRepository, ScheduleRepository
from ..users.model import ActorContext
from ..users.repository import ProfileRepository
from .model import SchoolClass, Student
from .repository import ClassRepository, StudentRepository

logger = logging.getLogger(__name__)


def new_group_key() -> str:
    return uuid.uuid4().hex


class ClassService:
    """Use case: classes, their teachers and student enrollment."""

    def __init__(
        self,
        classes: ClassRepository,
        students: StudentRepository,
        profiles: ProfileRepository,
        schedules: ScheduleRepository,
        assignments: AssignmentRepository,
    ):
        self._classes = classes
        self._students = students
        self._profiles = profiles
        self._schedules = schedules
        self._assignments = assignments

    @staticmethod
    def _require_owner(actor: ActorContext) -> None:
        if not actor.is_owner:
            raise AuthorizationError("Only the academy owner can do this")

    def _require_class(self, actor: ActorContext, class_id: int) -> SchoolClass:
        cls = self._classes.get(actor.tenant_id, class_id)
        if not cls:
            raise NotFoundError("Class not found")
        return cls

    def _require_student(self, actor: ActorContext, student_id: int) -> Student:
        student = self._students.get(actor.tenant_id, student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def create_class(self, actor: ActorContext, *, name: str, color: Optional[str] = None) -> int:
        self._require_owner(actor)
        name = require_non_empty(name, "Class name")
        class_id = self._classes.create(tenant_id=actor.tenant_id, name=name, color=color or None)
        logger.info("Class %s created (tenant=%s)", class_id, actor.tenant_id)
        return class_id

    def list_classes(self, actor: ActorContext) -> Sequence[SchoolClass]:
        return self._classes.list_all(actor.tenant_id)

    def assign_teacher(self, actor: ActorContext, *, class_id: int, teacher_id: int) -> None:
        self._require_owner(actor)
        self._require_class(actor, class_id)
        teacher = self._profiles.get_by_id(teacher_id)
        if not teacher or teacher.tenant_id != actor.tenant_id or teacher.role != Role.TEACHER:
            raise NotFoundError("Teacher not found")
        self._classes.link_teacher(tenant_id=actor.tenant_id, class_id=class_id, teacher_id=teacher_id)
        logger.info("Teacher %s linked to class %s", teacher_id, class_id)

    def unassign_teacher(self, actor: ActorContext, *, class_id: int, teacher_id: int) -> None:
        self._require_owner(actor)
        if not self._classes.unlink_teacher(tenant_id=actor.tenant_id, class_id=class_id, teacher_id=teacher_id):
            raise NotFoundError("Teacher is not assigned to this class")
        logger.info("Teacher %s unlinked from class %s", teacher_id, class_id)

    def create_student(
        self,
        actor: ActorContext,
        *,
        name: str,
        display_code: Optional[str] = None,
        school: Optional[str] = None,
    ) -> int:
        self._require_owner(actor)
        name = require_non_empty(name, "Student name")
        return self._students.create(
            tenant_id=actor.tenant_id,
            name=name,
            display_code=(display_code or "").strip() or None,
            school=(school or "").strip() or None,
        )

    def list_students(self, actor: ActorContext) -> Sequence[Student]:
        return self._students.list_all(actor.tenant_id)

    def search_students(self, actor: ActorContext, query: str) -> Sequence[Student]:
        query = (query or "").strip()
        if not query:
            return []
        return self._students.search(actor.tenant_id, query, limit=STUDENT_SEARCH_LIMIT)

    def enroll_student(self, actor: ActorContext, *, class_id: int, student_id: int, start_date: date) -> str:
        """Assign the student to every active block of the class under one new group key."""
        self._require_owner(actor)
        self._require_class(actor, class_id)
        self._require_student(actor, student_id)

        schedule_ids = [s.schedule_id for s in self._schedules.list_active(actor.tenant_id, class_ids=[class_id])]
        if not schedule_ids:
            raise ValidationError("The class has no schedule yet")

        if self._assignments.list_for_student(actor.tenant_id, student_id, schedule_ids=schedule_ids):
            raise ConflictError("The student is already enrolled in this class")

        group_key = new_group_key()
        self._assignments.create_many(
            tenant_id=actor.tenant_id,
            student_id=student_id,
            schedule_ids=schedule_ids,
            group_key=group_key,
            start_date=start_date,
        )
        logger.info("Student %s enrolled in class %s (%s blocks)", student_id, class_id, len(schedule_ids))
        return group_key

    def unenroll_student(self, actor: ActorContext, *, class_id: int, student_id: int, end_date: date) -> int:
        self._require_owner(actor)
        self._require_class(actor, class_id)

        schedule_ids = [s.schedule_id for s in self._schedules.list_active(actor.tenant_id, class_ids=[class_id])]
        active = self._assignments.list_for_student(actor.tenant_id, student_id, schedule_ids=schedule_ids)
        ended = self._assignments.end_many(actor.tenant_id, [a.assignment_id for a in active], end_date=end_date)
        logger.info("Student %s left class %s (%s assignments ended)", student_id, class_id, ended)
        return ended
