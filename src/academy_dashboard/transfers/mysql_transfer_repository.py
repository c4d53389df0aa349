from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import ClassChangeStatus, TransferScope, TransferStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import Approval, ClassChangeRequest, MovePlan, TransferRequest
from .repository import ClassChangeRepository, MoveApplier, TransferRequestRepository


def _to_request(row: dict) -> TransferRequest:
    return TransferRequest(
        request_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        student_id=int(row["student_id"]),
        effective_date=row["effective_date"],
        from_schedule_id=int(row["from_schedule_id"]),
        to_schedule_id=int(row["to_schedule_id"]),
        scope=TransferScope(row["scope"]),
        requested_by=int(row["requested_by"]),
        status=TransferStatus(row["status"]),
        from_class_id=row.get("from_class_id"),
        to_class_id=row.get("to_class_id"),
        from_teacher_id=row.get("from_teacher_id"),
        to_teacher_id=row.get("to_teacher_id"),
        group_key=row.get("group_key"),
        reason=row.get("reason"),
        reviewed_by=row.get("reviewed_by"),
        reviewed_at=row.get("reviewed_at"),
        review_note=row.get("review_note"),
        created_at=row.get("created_at"),
    )


class MySQLTransferRequestRepository(TransferRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        effective_date: date,
        from_schedule_id: int,
        to_schedule_id: int,
        from_class_id: Optional[int],
        to_class_id: Optional[int],
        from_teacher_id: Optional[int],
        to_teacher_id: Optional[int],
        scope: TransferScope,
        group_key: Optional[str],
        requested_by: int,
        reason: Optional[str],
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO class_transfer_requests(
                        tenant_id, student_id, effective_date, from_schedule_id, to_schedule_id,
                        from_class_id, to_class_id, from_teacher_id, to_teacher_id,
                        scope, group_key, status, requested_by, reason
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,'pending',%s,%s)
                    """,
                    (
                        tenant_id,
                        student_id,
                        effective_date,
                        from_schedule_id,
                        to_schedule_id,
                        from_class_id,
                        to_class_id,
                        from_teacher_id,
                        to_teacher_id,
                        scope.value,
                        group_key,
                        requested_by,
                        reason,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("The same move request is already pending") from e
            raise

    def get(self, tenant_id: int, request_id: int) -> Optional[TransferRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM class_transfer_requests WHERE tenant_id=%s AND id=%s",
                (tenant_id, request_id),
            )
            row = fetchone(cur)
            return _to_request(row) if row else None

    def list_pending_view(self, tenant_id: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT r.id, r.student_id, r.effective_date, r.scope, r.status, r.created_at, r.review_note,
                       st.name AS student_name, st.display_code AS student_code,
                       fc.name AS from_class_name, fc.color AS from_class_color,
                       tc.name AS to_class_name, tc.color AS to_class_color,
                       fs.day_of_week AS from_day_of_week, fs.start_time AS from_start_time,
                       ts.day_of_week AS to_day_of_week, ts.start_time AS to_start_time,
                       COALESCE(ft.display_name, ft.name) AS from_teacher_name,
                       COALESCE(tt.display_name, tt.name) AS to_teacher_name,
                       COALESCE(rq.display_name, rq.name) AS requested_by_name
                FROM class_transfer_requests r
                LEFT JOIN students st ON st.id = r.student_id
                LEFT JOIN classes fc ON fc.id = r.from_class_id
                LEFT JOIN classes tc ON tc.id = r.to_class_id
                LEFT JOIN class_schedules fs ON fs.id = r.from_schedule_id
                LEFT JOIN class_schedules ts ON ts.id = r.to_schedule_id
                LEFT JOIN profiles ft ON ft.id = r.from_teacher_id
                LEFT JOIN profiles tt ON tt.id = r.to_teacher_id
                LEFT JOIN profiles rq ON rq.id = r.requested_by
                WHERE r.tenant_id=%s AND r.status='pending'
                ORDER BY r.created_at DESC, r.id DESC
                """,
                (tenant_id,),
            )
            return fetchall(cur)

    def close(
        self,
        tenant_id: int,
        request_id: int,
        *,
        status: TransferStatus,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        review_note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_transfer_requests
                SET status=%s, reviewed_by=%s, reviewed_at=%s, review_note=%s
                WHERE tenant_id=%s AND id=%s AND status='pending'
                """,
                (status.value, reviewed_by, reviewed_at, review_note, tenant_id, request_id),
            )
            return cur.rowcount > 0


class MySQLClassChangeRepository(ClassChangeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, tenant_id: int, student_id: int, message: Optional[str], requested_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_change_requests(tenant_id, student_id, message, status, requested_by)
                VALUES(%s,%s,%s,'pending',%s)
                """,
                (tenant_id, student_id, message, requested_by),
            )
            return int(cur.lastrowid)

    def get(self, tenant_id: int, request_id: int) -> Optional[ClassChangeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, tenant_id, student_id, message, status, requested_by, done_at, created_at
                FROM class_change_requests WHERE tenant_id=%s AND id=%s
                """,
                (tenant_id, request_id),
            )
            row = fetchone(cur)
            if not row:
                return None
            return ClassChangeRequest(
                request_id=int(row["id"]),
                tenant_id=int(row["tenant_id"]),
                student_id=int(row["student_id"]),
                message=row.get("message"),
                status=ClassChangeStatus(row["status"]),
                requested_by=row.get("requested_by"),
                done_at=row.get("done_at"),
                created_at=row.get("created_at"),
            )

    def list_pending_view(self, tenant_id: int) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT r.id, r.student_id, r.message, r.created_at,
                       st.name AS student_name,
                       COALESCE(p.display_name, p.name) AS requested_by,
                       (
                         SELECT c.name
                         FROM schedule_assignments sa
                         JOIN class_schedules cs ON cs.id = sa.class_schedule_id
                         JOIN classes c ON c.id = cs.class_id
                         WHERE sa.tenant_id = r.tenant_id AND sa.student_id = r.student_id AND sa.end_date IS NULL
                         ORDER BY sa.id
                         LIMIT 1
                       ) AS current_class
                FROM class_change_requests r
                LEFT JOIN students st ON st.id = r.student_id
                LEFT JOIN profiles p ON p.id = r.requested_by
                WHERE r.tenant_id=%s AND r.status='pending'
                ORDER BY r.created_at DESC, r.id DESC
                """,
                (tenant_id,),
            )
            return fetchall(cur)

    def mark_done(self, tenant_id: int, request_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE class_change_requests SET status='done', done_at=%s "
                "WHERE tenant_id=%s AND id=%s AND status='pending'",
                (at, tenant_id, request_id),
            )
            return cur.rowcount > 0


class MySQLMoveApplier(MoveApplier):
    """Runs on the privileged (service) connection."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def apply(self, tenant_id: int, plan: MovePlan, *, approval: Optional[Approval] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if plan.end_ids:
                cur.execute(
                    f"""
                    UPDATE schedule_assignments SET end_date=%s
                    WHERE tenant_id=%s AND end_date IS NULL AND id IN ({in_clause(plan.end_ids)})
                    """,
                    (plan.end_date, tenant_id, *plan.end_ids),
                )
            if plan.reactivate_ids:
                cur.execute(
                    f"""
                    UPDATE schedule_assignments SET end_date=NULL
                    WHERE tenant_id=%s AND id IN ({in_clause(plan.reactivate_ids)})
                    """,
                    (tenant_id, *plan.reactivate_ids),
                )
            if plan.creates:
                cur.executemany(
                    """
                    INSERT INTO schedule_assignments(tenant_id, student_id, class_schedule_id, group_key, start_date)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    [(tenant_id, c.student_id, c.schedule_id, c.group_key, c.start_date) for c in plan.creates],
                )
            if approval:
                cur.execute(
                    """
                    UPDATE class_transfer_requests
                    SET status='approved', reviewed_by=%s, reviewed_at=%s
                    WHERE tenant_id=%s AND id=%s AND status='pending'
                    """,
                    (approval.reviewed_by, approval.reviewed_at, tenant_id, approval.request_id),
                )
                if cur.rowcount == 0:
                    # rolls back the assignment writes above
                    raise ConflictError("The request was already processed")
            return len(plan.creates) + len(plan.reactivate_ids)
