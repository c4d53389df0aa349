from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import MakeupStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import MakeupTicket
from .repository import AbsenceRepository, MakeupTicketRepository

_TICKET_COLUMNS = (
    "id, tenant_id, student_id, class_id, feed_id, absence_date, absence_reason, status, makeup_date, "
    "makeup_class_id, completed_by, completed_at, completion_note"
)


def _to_ticket(row: dict) -> MakeupTicket:
    return MakeupTicket(
        ticket_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        student_id=int(row["student_id"]),
        class_id=int(row["class_id"]),
        absence_date=row["absence_date"],
        status=MakeupStatus(row["status"]),
        feed_id=row.get("feed_id"),
        absence_reason=row.get("absence_reason"),
        makeup_date=row.get("makeup_date"),
        makeup_class_id=row.get("makeup_class_id"),
        completed_by=row.get("completed_by"),
        completed_at=row.get("completed_at"),
        completion_note=row.get("completion_note"),
    )


class MySQLMakeupTicketRepository(MakeupTicketRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int, ticket_id: int) -> Optional[MakeupTicket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TICKET_COLUMNS} FROM makeup_tickets WHERE tenant_id=%s AND id=%s", (tenant_id, ticket_id))
            row = fetchone(cur)
            return _to_ticket(row) if row else None

    def get_by_feed(self, tenant_id: int, feed_id: int) -> Optional[MakeupTicket]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_TICKET_COLUMNS} FROM makeup_tickets WHERE tenant_id=%s AND feed_id=%s ORDER BY id DESC LIMIT 1",
                (tenant_id, feed_id),
            )
            row = fetchone(cur)
            return _to_ticket(row) if row else None

    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        class_id: int,
        feed_id: int,
        absence_date: date,
        absence_reason: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO makeup_tickets(tenant_id, student_id, class_id, feed_id, absence_date, absence_reason, status)
                VALUES(%s,%s,%s,%s,%s,%s,'pending')
                """,
                (tenant_id, student_id, class_id, feed_id, absence_date, absence_reason),
            )
            return int(cur.lastrowid)

    def set_pending(self, tenant_id: int, ticket_id: int, *, absence_reason: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE makeup_tickets
                SET status='pending', absence_reason=COALESCE(%s, absence_reason),
                    completed_at=NULL, completed_by=NULL, completion_note=NULL,
                    makeup_date=NULL, makeup_class_id=NULL
                WHERE tenant_id=%s AND id=%s
                """,
                (absence_reason, tenant_id, ticket_id),
            )
            return cur.rowcount > 0

    def set_cancelled(self, tenant_id: int, ticket_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE makeup_tickets SET status='cancelled' WHERE tenant_id=%s AND id=%s",
                (tenant_id, ticket_id),
            )
            return cur.rowcount > 0

    def set_completed(
        self,
        tenant_id: int,
        ticket_id: int,
        *,
        completed_by: int,
        completed_at: datetime,
        note: Optional[str] = None,
        makeup_date: Optional[date] = None,
        makeup_class_id: Optional[int] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE makeup_tickets
                SET status='completed', completed_by=%s, completed_at=%s, completion_note=%s,
                    makeup_date=%s, makeup_class_id=%s
                WHERE tenant_id=%s AND id=%s
                """,
                (completed_by, completed_at, note, makeup_date, makeup_class_id, tenant_id, ticket_id),
            )
            return cur.rowcount > 0

    def list_view(
        self,
        tenant_id: int,
        *,
        status: Optional[MakeupStatus] = None,
        class_ids: Optional[Sequence[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[dict]:
        if class_ids is not None and not class_ids:
            return []
        sql = """
            SELECT t.id, t.student_id, t.class_id, t.absence_date, t.absence_reason, t.status, t.makeup_date,
                   t.completed_at, t.completed_by, t.completion_note,
                   s.name AS student_name, s.display_code, c.name AS class_name
            FROM makeup_tickets t
            LEFT JOIN students s ON s.id = t.student_id
            LEFT JOIN classes c ON c.id = t.class_id
            WHERE t.tenant_id=%s
        """
        params: list = [tenant_id]
        if status is not None:
            sql += " AND t.status=%s"
            params.append(status.value)
        if class_ids is not None:
            sql += f" AND t.class_id IN ({in_clause(class_ids)})"
            params.extend(class_ids)
        if start is not None:
            sql += " AND t.absence_date >= %s"
            params.append(start)
        if end is not None:
            sql += " AND t.absence_date <= %s"
            params.append(end)
        sql += " ORDER BY t.absence_date, t.id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)


class MySQLAbsenceRepository(AbsenceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_absent_rows(
        self, tenant_id: int, start: date, end: date, *, class_ids: Optional[Sequence[int]] = None
    ) -> Sequence[dict]:
        if class_ids is not None and not class_ids:
            return []
        sql = """
            SELECT f.id AS feed_id, f.student_id, f.class_id, f.feed_date, f.absence_reason, f.needs_makeup,
                   s.name AS student_name, c.name AS class_name
            FROM student_feeds f
            LEFT JOIN students s ON s.id = f.student_id
            LEFT JOIN classes c ON c.id = f.class_id
            WHERE f.tenant_id=%s AND f.attendance_status='absent' AND f.session_type='regular'
              AND f.feed_date BETWEEN %s AND %s
        """
        params: list = [tenant_id, start, end]
        if class_ids is not None:
            sql += f" AND f.class_id IN ({in_clause(class_ids)})"
            params.extend(class_ids)
        sql += " ORDER BY f.feed_date DESC, f.id DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)

    def absence_dates(self, tenant_id: int, student_ids: Sequence[int], start: date, end: date) -> Sequence[tuple[int, date]]:
        if not student_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT student_id, feed_date FROM student_feeds
                WHERE tenant_id=%s AND attendance_status='absent' AND session_type='regular'
                  AND feed_date BETWEEN %s AND %s AND student_id IN ({in_clause(student_ids)})
                """,
                (tenant_id, start, end, *student_ids),
            )
            return [(int(r["student_id"]), r["feed_date"]) for r in fetchall(cur)]
