from __future__ import annotations

from datetime import date, datetime, time
from typing import Mapping, Optional, Sequence

import mysql.connector

from ..common.datetime_utils import normalize_mysql_time
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import Schedule, ScheduleAssignment
from .repository import AssignmentRepository, ScheduleRepository

_SCHEDULE_COLUMNS = "id, tenant_id, class_id, day_of_week, start_time, end_time, is_active"
_ASSIGNMENT_COLUMNS = "id, tenant_id, student_id, class_schedule_id, group_key, start_date, end_date"


def to_schedule(row: dict) -> Schedule:
    return Schedule(
        schedule_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        class_id=int(row["class_id"]),
        day_of_week=int(row["day_of_week"]),
        start_time=normalize_mysql_time(row["start_time"]),
        end_time=normalize_mysql_time(row["end_time"]),
        is_active=bool(row.get("is_active", True)),
    )


def to_assignment(row: dict) -> ScheduleAssignment:
    return ScheduleAssignment(
        assignment_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        student_id=int(row["student_id"]),
        schedule_id=int(row["class_schedule_id"]),
        group_key=row.get("group_key"),
        start_date=row["start_date"],
        end_date=row.get("end_date"),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int, schedule_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SCHEDULE_COLUMNS} FROM class_schedules WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (tenant_id, schedule_id),
            )
            row = fetchone(cur)
            return to_schedule(row) if row else None

    def list_active(self, tenant_id: int, *, class_ids: Optional[Sequence[int]] = None) -> Sequence[Schedule]:
        if class_ids is not None and not class_ids:
            return []
        sql = f"""
            SELECT {_SCHEDULE_COLUMNS} FROM class_schedules
            WHERE tenant_id=%s AND is_active=1 AND deleted_at IS NULL
        """
        params: list = [tenant_id]
        if class_ids is not None:
            sql += f" AND class_id IN ({in_clause(class_ids)})"
            params.extend(class_ids)
        sql += " ORDER BY day_of_week, start_time"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [to_schedule(r) for r in fetchall(cur)]

    def create(self, *, tenant_id: int, class_id: int, day_of_week: int, start_time: time, end_time: time) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO class_schedules(tenant_id, class_id, day_of_week, start_time, end_time, is_active)
                    VALUES(%s,%s,%s,%s,%s,1)
                    """,
                    (tenant_id, class_id, day_of_week, start_time, end_time),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("A schedule already exists for this class at that day and time") from e
            raise

    def soft_delete(self, tenant_id: int, schedule_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_schedules SET is_active=0, deleted_at=%s
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (at, tenant_id, schedule_id),
            )
            return cur.rowcount > 0


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def count_active(self, tenant_id: int, schedule_ids: Sequence[int]) -> Mapping[int, int]:
        if not schedule_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT class_schedule_id, COUNT(*) AS cnt
                FROM schedule_assignments
                WHERE tenant_id=%s AND end_date IS NULL AND class_schedule_id IN ({in_clause(schedule_ids)})
                GROUP BY class_schedule_id
                """,
                (tenant_id, *schedule_ids),
            )
            return {int(r["class_schedule_id"]): int(r["cnt"]) for r in fetchall(cur)}

    def list_active_for_schedule(self, tenant_id: int, schedule_id: int) -> Sequence[ScheduleAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ASSIGNMENT_COLUMNS} FROM schedule_assignments
                WHERE tenant_id=%s AND class_schedule_id=%s AND end_date IS NULL
                ORDER BY start_date, id
                """,
                (tenant_id, schedule_id),
            )
            return [to_assignment(r) for r in fetchall(cur)]

    def student_ids_for_class(self, tenant_id: int, class_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT sa.student_id
                FROM schedule_assignments sa
                JOIN class_schedules cs ON cs.id = sa.class_schedule_id
                WHERE sa.tenant_id=%s AND cs.class_id=%s AND sa.end_date IS NULL
                  AND cs.is_active=1 AND cs.deleted_at IS NULL
                """,
                (tenant_id, class_id),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def list_for_student(
        self,
        tenant_id: int,
        student_id: int,
        *,
        schedule_ids: Optional[Sequence[int]] = None,
        active_only: bool = True,
    ) -> Sequence[ScheduleAssignment]:
        if schedule_ids is not None and not schedule_ids:
            return []
        sql = f"SELECT {_ASSIGNMENT_COLUMNS} FROM schedule_assignments WHERE tenant_id=%s AND student_id=%s"
        params: list = [tenant_id, student_id]
        if active_only:
            sql += " AND end_date IS NULL"
        if schedule_ids is not None:
            sql += f" AND class_schedule_id IN ({in_clause(schedule_ids)})"
            params.extend(schedule_ids)
        sql += " ORDER BY id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [to_assignment(r) for r in fetchall(cur)]

    def create_many(
        self,
        *,
        tenant_id: int,
        student_id: int,
        schedule_ids: Sequence[int],
        group_key: Optional[str],
        start_date: date,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO schedule_assignments(tenant_id, student_id, class_schedule_id, group_key, start_date)
                VALUES(%s,%s,%s,%s,%s)
                """,
                [(tenant_id, student_id, sid, group_key, start_date) for sid in schedule_ids],
            )
            return len(schedule_ids)

    def end_many(self, tenant_id: int, assignment_ids: Sequence[int], *, end_date: date) -> int:
        if not assignment_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE schedule_assignments SET end_date=%s
                WHERE tenant_id=%s AND end_date IS NULL AND id IN ({in_clause(assignment_ids)})
                """,
                (end_date, tenant_id, *assignment_ids),
            )
            return cur.rowcount
