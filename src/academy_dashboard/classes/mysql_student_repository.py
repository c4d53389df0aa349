from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Student
from .repository import StudentRepository

_COLUMNS = "id, tenant_id, name, display_code, school, is_active"


def _to_student(row: dict) -> Student:
    return Student(
        student_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        name=row["name"],
        display_code=row.get("display_code"),
        school=row.get("school"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, tenant_id: int, name: str, display_code: Optional[str], school: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO students(tenant_id, name, display_code, school) VALUES(%s,%s,%s,%s)",
                (tenant_id, name, display_code, school),
            )
            return int(cur.lastrowid)

    def get(self, tenant_id: int, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (tenant_id, student_id),
            )
            row = fetchone(cur)
            return _to_student(row) if row else None

    def get_many(self, tenant_id: int, student_ids: Sequence[int]) -> Sequence[Student]:
        if not student_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM students
                WHERE tenant_id=%s AND deleted_at IS NULL AND id IN ({in_clause(student_ids)})
                ORDER BY name
                """,
                (tenant_id, *student_ids),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def list_all(self, tenant_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE tenant_id=%s AND deleted_at IS NULL ORDER BY name",
                (tenant_id,),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def search(self, tenant_id: int, query: str, *, limit: int) -> Sequence[Student]:
        like = f"%{query}%"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM students
                WHERE tenant_id=%s AND deleted_at IS NULL
                  AND (name LIKE %s OR school LIKE %s OR display_code LIKE %s)
                ORDER BY name
                LIMIT %s
                """,
                (tenant_id, like, like, like, int(limit)),
            )
            return [_to_student(r) for r in fetchall(cur)]
