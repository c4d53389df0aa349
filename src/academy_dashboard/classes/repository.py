from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import Homeroom, SchoolClass, Student


class ClassRepository(Protocol):
    def create(self, *, tenant_id: int, name: str, color: Optional[str]) -> int:
        raise NotImplementedError

    def get(self, tenant_id: int, class_id: int) -> Optional[SchoolClass]:
        raise NotImplementedError

    def list_all(self, tenant_id: int, *, class_ids: Optional[Sequence[int]] = None) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def homerooms(self, tenant_id: int, class_ids: Sequence[int]) -> Mapping[int, Homeroom]:
        raise NotImplementedError

    def teacher_class_ids(self, tenant_id: int, teacher_id: int) -> Sequence[int]:
        raise NotImplementedError

    def link_teacher(self, *, tenant_id: int, class_id: int, teacher_id: int) -> None:
        raise NotImplementedError

    def unlink_teacher(self, *, tenant_id: int, class_id: int, teacher_id: int) -> bool:
        raise NotImplementedError


class StudentRepository(Protocol):
    def create(self, *, tenant_id: int, name: str, display_code: Optional[str], school: Optional[str]) -> int:
        raise NotImplementedError

    def get(self, tenant_id: int, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_many(self, tenant_id: int, student_ids: Sequence[int]) -> Sequence[Student]:
        raise NotImplementedError

    def list_all(self, tenant_id: int) -> Sequence[Student]:
        raise NotImplementedError

    def search(self, tenant_id: int, query: str, *, limit: int) -> Sequence[Student]:
        raise NotImplementedError
