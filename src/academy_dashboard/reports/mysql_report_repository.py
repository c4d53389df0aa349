from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import mysql.connector

from ..core.enums import MessageTone, ReportStatus, SendMethod
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, is_duplicate_key, to_json
from .model import EDITABLE_FIELDS, MonthlyReport, ReportFilter, WeeklyReportSettings
from .repository import ReportRepository, ReportSettingsRepository

_REPORT_COLUMNS = (
    "id, tenant_id, student_id, report_year, report_month, template_type, status, attendance_summary, "
    "score_summary, progress_summary, exam_summary, teacher_praise, teacher_improve, teacher_comment, "
    "parent_message, sent_at, sent_method, created_by, created_at"
)


def _to_report(row: dict) -> MonthlyReport:
    return MonthlyReport(
        report_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        student_id=int(row["student_id"]),
        report_year=int(row["report_year"]),
        report_month=int(row["report_month"]),
        template_type=int(row["template_type"]),
        status=ReportStatus(row["status"]),
        attendance_summary=from_json(row.get("attendance_summary"), {}),
        score_summary=from_json(row.get("score_summary"), {}),
        progress_summary=from_json(row.get("progress_summary"), []),
        exam_summary=from_json(row.get("exam_summary"), {}),
        teacher_praise=row.get("teacher_praise"),
        teacher_improve=row.get("teacher_improve"),
        teacher_comment=row.get("teacher_comment"),
        parent_message=row.get("parent_message"),
        sent_at=row.get("sent_at"),
        sent_method=SendMethod(row["sent_method"]) if row.get("sent_method") else None,
        created_by=row.get("created_by"),
        created_at=row.get("created_at"),
    )


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        report_year: int,
        report_month: int,
        template_type: int,
        summaries: Mapping[str, Any],
        created_by: int,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO monthly_reports(
                        tenant_id, student_id, report_year, report_month, template_type,
                        attendance_summary, score_summary, progress_summary, exam_summary, status, created_by
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,'draft',%s)
                    """,
                    (
                        tenant_id,
                        student_id,
                        report_year,
                        report_month,
                        template_type,
                        to_json(summaries.get("attendance_summary", {})),
                        to_json(summaries.get("score_summary", {})),
                        to_json(summaries.get("progress_summary", [])),
                        to_json(summaries.get("exam_summary", {})),
                        created_by,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("A report for this month already exists") from e
            raise

    def get(self, tenant_id: int, report_id: int) -> Optional[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_REPORT_COLUMNS} FROM monthly_reports WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (tenant_id, report_id),
            )
            row = fetchone(cur)
            return _to_report(row) if row else None

    def find_live(self, tenant_id: int, student_id: int, year: int, month: int) -> Optional[MonthlyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_REPORT_COLUMNS} FROM monthly_reports
                WHERE tenant_id=%s AND student_id=%s AND report_year=%s AND report_month=%s AND deleted_at IS NULL
                """,
                (tenant_id, student_id, year, month),
            )
            row = fetchone(cur)
            return _to_report(row) if row else None

    def list_view(self, tenant_id: int, report_filter: ReportFilter) -> Sequence[dict]:
        sql = """
            SELECT r.id, r.student_id, r.report_year, r.report_month, r.template_type, r.status,
                   r.sent_at, r.sent_method, r.created_at, s.name AS student_name
            FROM monthly_reports r
            LEFT JOIN students s ON s.id = r.student_id
            WHERE r.tenant_id=%s AND r.deleted_at IS NULL
        """
        params: list = [tenant_id]
        if report_filter.year is not None:
            sql += " AND r.report_year=%s"
            params.append(report_filter.year)
        if report_filter.month is not None:
            sql += " AND r.report_month=%s"
            params.append(report_filter.month)
        if report_filter.student_id is not None:
            sql += " AND r.student_id=%s"
            params.append(report_filter.student_id)
        if report_filter.status is not None:
            sql += " AND r.status=%s"
            params.append(report_filter.status.value)
        sql += " ORDER BY r.created_at DESC, r.id DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)

    def update_fields(self, tenant_id: int, report_id: int, fields: Mapping[str, Any]) -> None:
        columns = [k for k in EDITABLE_FIELDS if k in fields]
        if not columns:
            return
        assignments = ", ".join(f"{c}=%s" for c in columns)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE monthly_reports SET {assignments} WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                tuple(fields[c] for c in columns) + (tenant_id, report_id),
            )

    def update_status(
        self,
        tenant_id: int,
        report_id: int,
        *,
        status: ReportStatus,
        sent_at: Optional[datetime] = None,
        sent_method: Optional[SendMethod] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE monthly_reports
                SET status=%s, sent_at=COALESCE(%s, sent_at), sent_method=COALESCE(%s, sent_method)
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (status.value, sent_at, sent_method.value if sent_method else None, tenant_id, report_id),
            )

    def soft_delete(self, tenant_id: int, report_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE monthly_reports SET deleted_at=%s WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (at, tenant_id, report_id),
            )
            return cur.rowcount > 0


class MySQLReportSettingsRepository(ReportSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_template_type(self, tenant_id: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT monthly_template_type FROM report_settings WHERE tenant_id=%s", (tenant_id,))
            row = fetchone(cur)
            return int(row["monthly_template_type"]) if row else None

    def get_weekly_settings(self, tenant_id: int) -> WeeklyReportSettings:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT t.message_tone, rs.strength_threshold, rs.weakness_threshold
                FROM tenants t
                LEFT JOIN report_settings rs ON rs.tenant_id = t.id
                WHERE t.id=%s
                """,
                (tenant_id,),
            )
            row = fetchone(cur)
        defaults = WeeklyReportSettings()
        if not row:
            return defaults
        strength = row.get("strength_threshold")
        weakness = row.get("weakness_threshold")
        return WeeklyReportSettings(
            strength_threshold=int(strength) if strength is not None else defaults.strength_threshold,
            weakness_threshold=int(weakness) if weakness is not None else defaults.weakness_threshold,
            message_tone=MessageTone(row.get("message_tone") or defaults.message_tone.value),
        )
