from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SchoolClass:
    class_id: int
    tenant_id: int
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class Homeroom:
    """The first active teacher link of a class."""

    class_id: int
    teacher_id: int
    teacher_name: str
    teacher_color: Optional[str] = None


@dataclass(frozen=True)
class Student:
    student_id: int
    tenant_id: int
    name: str
    display_code: Optional[str] = None
    school: Optional[str] = None
    is_active: bool = True
