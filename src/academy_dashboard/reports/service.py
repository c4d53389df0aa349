from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..classes.repository import ClassRepository, StudentRepository
from ..common.datetime_utils import month_range, now_local
from ..core.constants import DEFAULT_MONTHLY_TEMPLATE, FEATURE_MONTHLY_REPORT, MONTHLY_TEMPLATE_TYPES, UNKNOWN_LABEL
from ..core.enums import ReportStatus, SendMethod
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..feed_settings.repository import FeedSettingsRepository
from ..feeds.repository import FeedRepository
from ..timetable.repository import AssignmentRepository
from ..users.feature_repository import FeatureRepository
from ..users.model import ActorContext
from .aggregators.base import MonthlyAggregator
from .aggregators.standard import StandardMonthlyAggregator
from .model import (
    EDITABLE_FIELDS,
    ClassReportResult,
    MonthlyReport,
    MonthlyReportView,
    MonthlySummary,
    ReportFilter,
    summary_to_columns,
)
from .repository import ReportRepository, ReportSettingsRepository

logger = logging.getLogger(__name__)


def _require_template(value) -> int:
    try:
        template = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Template type is invalid")
    if template not in MONTHLY_TEMPLATE_TYPES:
        raise ValidationError("Template type must be between 1 and 5")
    return template


class MonthlyReportService:
    """Use case: monthly per-student reports built from feeds."""

    def __init__(
        self,
        reports: ReportRepository,
        report_settings: ReportSettingsRepository,
        feeds: FeedRepository,
        settings: FeedSettingsRepository,
        classes: ClassRepository,
        students: StudentRepository,
        assignments: AssignmentRepository,
        features: FeatureRepository,
        *,
        aggregator: Optional[MonthlyAggregator] = None,
    ):
        self._reports = reports
        self._report_settings = report_settings
        self._feeds = feeds
        self._settings = settings
        self._classes = classes
        self._students = students
        self._assignments = assignments
        self._features = features
        self._aggregator = aggregator or StandardMonthlyAggregator()

    def _require_access(self, actor: ActorContext) -> None:
        if not actor.is_owner:
            raise AuthorizationError("Only the academy owner can manage monthly reports")
        if not self._features.is_enabled(actor.tenant_id, FEATURE_MONTHLY_REPORT, at=now_local()):
            raise AuthorizationError("Monthly reports are not enabled for this academy")

    def _require_report(self, actor: ActorContext, report_id: int) -> MonthlyReport:
        report = self._reports.get(actor.tenant_id, report_id)
        if not report:
            raise NotFoundError("Report not found")
        return report

    def aggregate_month(self, tenant_id: int, student_id: int, year: int, month: int) -> MonthlySummary:
        start, end = month_range(year, month)
        feeds = self._feeds.list_for_student_range(tenant_id, student_id, start, end)
        values = self._feeds.list_values(tenant_id, [f.feed_id for f in feeds])
        sets = {}
        for set_id in sorted({v.set_id for v in values}):
            option_set = self._settings.get_set(tenant_id, set_id)
            if option_set:
                sets[set_id] = option_set
        return self._aggregator.aggregate(feeds, values, sets)

    def create_monthly_report(
        self,
        actor: ActorContext,
        *,
        student_id: int,
        year: int,
        month: int,
        template_type: Optional[int] = None,
    ) -> int:
        self._require_access(actor)
        if month < 1 or month > 12:
            raise ValidationError("Month must be between 1 and 12")
        if not self._students.get(actor.tenant_id, student_id):
            raise NotFoundError("Student not found")
        if self._reports.find_live(actor.tenant_id, student_id, year, month):
            raise ConflictError("A report for this month already exists")

        if template_type is None:
            template_type = self._report_settings.get_template_type(actor.tenant_id) or DEFAULT_MONTHLY_TEMPLATE
        template_type = _require_template(template_type)

        summary = self.aggregate_month(actor.tenant_id, student_id, year, month)
        report_id = self._reports.create(
            tenant_id=actor.tenant_id,
            student_id=student_id,
            report_year=year,
            report_month=month,
            template_type=template_type,
            summaries=summary_to_columns(summary),
            created_by=actor.user_id,
        )
        logger.info("Monthly report %s created for student %s (%s-%02d)", report_id, student_id, year, month)
        return report_id

    def create_monthly_reports_for_class(
        self, actor: ActorContext, *, class_id: int, year: int, month: int
    ) -> ClassReportResult:
        self._require_access(actor)
        if not self._classes.get(actor.tenant_id, class_id):
            raise NotFoundError("Class not found")

        created_ids: list[int] = []
        skipped = 0
        for student_id in self._assignments.student_ids_for_class(actor.tenant_id, class_id):
            try:
                created_ids.append(self.create_monthly_report(actor, student_id=student_id, year=year, month=month))
            except ConflictError:
                skipped += 1
        logger.info("Class %s: %s reports created, %s skipped", class_id, len(created_ids), skipped)
        return ClassReportResult(created=len(created_ids), skipped=skipped, report_ids=created_ids)

    def list_monthly_reports(
        self, actor: ActorContext, report_filter: Optional[ReportFilter] = None
    ) -> list[MonthlyReportView]:
        self._require_access(actor)
        rows = self._reports.list_view(actor.tenant_id, report_filter or ReportFilter())
        return [
            MonthlyReportView(
                id=int(r["id"]),
                student_id=int(r["student_id"]),
                student_name=r.get("student_name") or UNKNOWN_LABEL,
                report_year=int(r["report_year"]),
                report_month=int(r["report_month"]),
                template_type=int(r["template_type"]),
                status=ReportStatus(r["status"]),
                sent_at=r.get("sent_at"),
                sent_method=SendMethod(r["sent_method"]) if r.get("sent_method") else None,
                created_at=r.get("created_at"),
            )
            for r in rows
        ]

    def get_monthly_report(self, actor: ActorContext, *, report_id: int) -> MonthlyReport:
        self._require_access(actor)
        return self._require_report(actor, report_id)

    def update_monthly_report(self, actor: ActorContext, *, report_id: int, fields: Mapping[str, Any]) -> MonthlyReport:
        self._require_access(actor)
        self._require_report(actor, report_id)

        unknown = sorted(set(fields) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")

        changes = dict(fields)
        if "template_type" in changes:
            changes["template_type"] = _require_template(changes["template_type"])
        if "status" in changes:
            try:
                changes["status"] = ReportStatus(changes["status"]).value
            except ValueError:
                raise ValidationError("Report status is invalid")

        self._reports.update_fields(actor.tenant_id, report_id, changes)
        logger.info("Monthly report %s updated (%s)", report_id, ", ".join(sorted(changes)))
        return self._require_report(actor, report_id)

    def update_report_status(
        self,
        actor: ActorContext,
        *,
        report_id: int,
        status: ReportStatus,
        send_method: Optional[SendMethod] = None,
    ) -> MonthlyReport:
        self._require_access(actor)
        self._require_report(actor, report_id)

        if status == ReportStatus.SENT:
            self._reports.update_status(
                actor.tenant_id, report_id, status=status, sent_at=now_local(), sent_method=send_method
            )
        else:
            self._reports.update_status(actor.tenant_id, report_id, status=status)
        logger.info("Monthly report %s is now %s", report_id, status.value)
        return self._require_report(actor, report_id)

    def delete_monthly_report(self, actor: ActorContext, *, report_id: int) -> None:
        self._require_access(actor)
        if not self._reports.soft_delete(actor.tenant_id, report_id, at=now_local()):
            raise NotFoundError("Report not found")
        logger.info("Monthly report %s deleted", report_id)
