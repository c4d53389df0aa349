from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Homeroom, SchoolClass
from .repository import ClassRepository


def _to_class(row: dict) -> SchoolClass:
    return SchoolClass(
        class_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        name=row["name"],
        color=row.get("color"),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, tenant_id: int, name: str, color: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO classes(tenant_id, name, color) VALUES(%s,%s,%s)", (tenant_id, name, color))
            return int(cur.lastrowid)

    def get(self, tenant_id: int, class_id: int) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, tenant_id, name, color FROM classes WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (tenant_id, class_id),
            )
            row = fetchone(cur)
            return _to_class(row) if row else None

    def list_all(self, tenant_id: int, *, class_ids: Optional[Sequence[int]] = None) -> Sequence[SchoolClass]:
        if class_ids is not None and not class_ids:
            return []
        sql = "SELECT id, tenant_id, name, color FROM classes WHERE tenant_id=%s AND deleted_at IS NULL"
        params: list = [tenant_id]
        if class_ids is not None:
            sql += f" AND id IN ({in_clause(class_ids)})"
            params.extend(class_ids)
        sql += " ORDER BY name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_class(r) for r in fetchall(cur)]

    def homerooms(self, tenant_id: int, class_ids: Sequence[int]) -> Mapping[int, Homeroom]:
        if not class_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT ct.class_id, ct.teacher_id, p.name, p.display_name, p.calendar_color
                FROM class_teachers ct
                JOIN profiles p ON p.id = ct.teacher_id
                WHERE ct.tenant_id=%s AND ct.is_active=1 AND ct.class_id IN ({in_clause(class_ids)})
                ORDER BY ct.class_id, ct.id
                """,
                (tenant_id, *class_ids),
            )
            out: dict[int, Homeroom] = {}
            for r in fetchall(cur):
                class_id = int(r["class_id"])
                if class_id in out:
                    continue
                out[class_id] = Homeroom(
                    class_id=class_id,
                    teacher_id=int(r["teacher_id"]),
                    teacher_name=r.get("display_name") or r["name"],
                    teacher_color=r.get("calendar_color"),
                )
            return out

    def teacher_class_ids(self, tenant_id: int, teacher_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT class_id FROM class_teachers WHERE tenant_id=%s AND teacher_id=%s AND is_active=1",
                (tenant_id, teacher_id),
            )
            return [int(r["class_id"]) for r in fetchall(cur)]

    def link_teacher(self, *, tenant_id: int, class_id: int, teacher_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_teachers(tenant_id, class_id, teacher_id, is_active)
                VALUES(%s,%s,%s,1)
                ON DUPLICATE KEY UPDATE is_active=1
                """,
                (tenant_id, class_id, teacher_id),
            )

    def unlink_teacher(self, *, tenant_id: int, class_id: int, teacher_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE class_teachers SET is_active=0 WHERE tenant_id=%s AND class_id=%s AND teacher_id=%s AND is_active=1",
                (tenant_id, class_id, teacher_id),
            )
            return cur.rowcount > 0
