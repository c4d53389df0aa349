from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus, SessionType
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, in_clause, is_duplicate_key, to_json
from .model import FeedValue, FeedValueInput, FeedWrite, StudentFeed
from .repository import FeedRepository, IdempotencyRepository

_FEED_COLUMNS = (
    "id, tenant_id, class_id, student_id, feed_date, session_type, attendance_status, absence_reason, "
    "absence_reason_detail, notify_parent, needs_makeup, is_makeup, progress_text, memo_values, "
    "is_counted_in_stats, makeup_ticket_id"
)


def to_feed(row: dict) -> StudentFeed:
    return StudentFeed(
        feed_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        class_id=int(row["class_id"]),
        student_id=int(row["student_id"]),
        feed_date=row["feed_date"],
        session_type=SessionType(row["session_type"]),
        attendance_status=AttendanceStatus(row["attendance_status"]),
        absence_reason=row.get("absence_reason"),
        absence_reason_detail=row.get("absence_reason_detail"),
        notify_parent=bool(row.get("notify_parent")),
        needs_makeup=bool(row.get("needs_makeup")),
        is_makeup=bool(row.get("is_makeup")),
        progress_text=row.get("progress_text"),
        memo_values=from_json(row.get("memo_values"), {}),
        is_counted_in_stats=bool(row.get("is_counted_in_stats", True)),
        makeup_ticket_id=row.get("makeup_ticket_id"),
    )


class MySQLFeedRepository(FeedRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_regular(self, tenant_id: int, *, class_id: int, student_id: int, feed_date: date) -> Optional[StudentFeed]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_FEED_COLUMNS} FROM student_feeds
                WHERE tenant_id=%s AND class_id=%s AND student_id=%s AND feed_date=%s AND session_type='regular'
                """,
                (tenant_id, class_id, student_id, feed_date),
            )
            row = fetchone(cur)
            return to_feed(row) if row else None

    def find_by_ticket(self, tenant_id: int, ticket_id: int) -> Optional[StudentFeed]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_FEED_COLUMNS} FROM student_feeds WHERE tenant_id=%s AND makeup_ticket_id=%s",
                (tenant_id, ticket_id),
            )
            row = fetchone(cur)
            return to_feed(row) if row else None

    def save(
        self,
        tenant_id: int,
        write: FeedWrite,
        *,
        feed_id: Optional[int],
        values: Sequence[FeedValueInput],
    ) -> int:
        params = (
            write.attendance_status.value,
            write.absence_reason,
            write.absence_reason_detail,
            int(write.notify_parent),
            int(write.needs_makeup),
            int(write.is_makeup),
            write.progress_text,
            to_json(write.memo_values or {}),
            int(write.is_counted_in_stats),
            write.makeup_ticket_id,
        )
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                if feed_id is None:
                    cur.execute(
                        """
                        INSERT INTO student_feeds(
                            attendance_status, absence_reason, absence_reason_detail, notify_parent, needs_makeup,
                            is_makeup, progress_text, memo_values, is_counted_in_stats, makeup_ticket_id,
                            tenant_id, class_id, student_id, feed_date, session_type, created_by
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                        """,
                        params
                        + (
                            tenant_id,
                            write.class_id,
                            write.student_id,
                            write.feed_date,
                            write.session_type.value,
                            write.created_by,
                        ),
                    )
                    feed_id = int(cur.lastrowid)
                else:
                    cur.execute(
                        """
                        UPDATE student_feeds
                        SET attendance_status=%s, absence_reason=%s, absence_reason_detail=%s, notify_parent=%s,
                            needs_makeup=%s, is_makeup=%s, progress_text=%s, memo_values=%s,
                            is_counted_in_stats=%s, makeup_ticket_id=%s, feed_date=%s, class_id=%s
                        WHERE tenant_id=%s AND id=%s
                        """,
                        params + (write.feed_date, write.class_id, tenant_id, feed_id),
                    )
                    cur.execute("DELETE FROM feed_values WHERE tenant_id=%s AND feed_id=%s", (tenant_id, feed_id))

                if values:
                    cur.executemany(
                        "INSERT INTO feed_values(tenant_id, feed_id, set_id, option_id, score) VALUES(%s,%s,%s,%s,%s)",
                        [(tenant_id, feed_id, v.set_id, v.option_id, v.score) for v in values],
                    )
                return feed_id
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("A feed for this student and day was saved concurrently") from e
            raise

    def list_for_class_date(self, tenant_id: int, class_id: int, feed_date: date) -> Sequence[StudentFeed]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_FEED_COLUMNS} FROM student_feeds
                WHERE tenant_id=%s AND class_id=%s AND feed_date=%s
                ORDER BY id
                """,
                (tenant_id, class_id, feed_date),
            )
            return [to_feed(r) for r in fetchall(cur)]

    def list_for_student_range(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[StudentFeed]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_FEED_COLUMNS} FROM student_feeds
                WHERE tenant_id=%s AND student_id=%s AND feed_date BETWEEN %s AND %s
                ORDER BY feed_date, id
                """,
                (tenant_id, student_id, start, end),
            )
            return [to_feed(r) for r in fetchall(cur)]

    def list_values(self, tenant_id: int, feed_ids: Sequence[int]) -> Sequence[FeedValue]:
        if not feed_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT feed_id, set_id, option_id, score FROM feed_values
                WHERE tenant_id=%s AND feed_id IN ({in_clause(feed_ids)})
                ORDER BY id
                """,
                (tenant_id, *feed_ids),
            )
            return [
                FeedValue(
                    feed_id=int(r["feed_id"]),
                    set_id=int(r["set_id"]),
                    option_id=r.get("option_id"),
                    score=float(r["score"]) if r.get("score") is not None else None,
                )
                for r in fetchall(cur)
            ]

    def latest_progress(self, tenant_id: int, student_ids: Sequence[int], *, before: date) -> Mapping[int, str]:
        if not student_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT student_id, progress_text FROM student_feeds
                WHERE tenant_id=%s AND student_id IN ({in_clause(student_ids)}) AND feed_date < %s
                  AND progress_text IS NOT NULL AND progress_text <> ''
                ORDER BY feed_date DESC, id DESC
                """,
                (tenant_id, *student_ids, before),
            )
            out: dict[int, str] = {}
            for r in fetchall(cur):
                out.setdefault(int(r["student_id"]), r["progress_text"])
            return out


class MySQLIdempotencyRepository(IdempotencyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int, key: str, *, now: datetime) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT response FROM idempotency_keys WHERE tenant_id=%s AND idem_key=%s AND expires_at > %s",
                (tenant_id, key, now),
            )
            row = fetchone(cur)
            return from_json(row["response"], None) if row else None

    def put(self, tenant_id: int, key: str, response: dict, *, expires_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO idempotency_keys(tenant_id, idem_key, response, expires_at)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE response=VALUES(response), expires_at=VALUES(expires_at)
                """,
                (tenant_id, key, to_json(response), expires_at),
            )
