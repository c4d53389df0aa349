from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..classes.repository import ClassRepository, StudentRepository
from ..common.datetime_utils import now_local
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError
from ..feed_settings.repository import FeedSettingsRepository
from ..feeds.repository import FeedRepository
from ..timetable.repository import AssignmentRepository
from ..users.model import ActorContext
from .aggregators.weekly import WeeklyAggregator
from .model import WeeklyBulkResult, WeeklyReport
from .repository import ReportSettingsRepository

logger = logging.getLogger(__name__)


class WeeklyReportService:
    """Use case: period reports (usually a week) for a student or a whole class.

    Only regular feeds count. Whether an item is part of the stats follows the
    active configuration's item of the same name, falling back to the item's
    own flag for items no longer configured.
    """

    def __init__(
        self,
        report_settings: ReportSettingsRepository,
        feeds: FeedRepository,
        settings: FeedSettingsRepository,
        classes: ClassRepository,
        students: StudentRepository,
        assignments: AssignmentRepository,
        *,
        aggregator: Optional[WeeklyAggregator] = None,
    ):
        self._report_settings = report_settings
        self._feeds = feeds
        self._settings = settings
        self._classes = classes
        self._students = students
        self._assignments = assignments
        self._aggregator = aggregator or WeeklyAggregator()

    def _current_weekly_flags(self, tenant_id: int) -> dict[str, bool]:
        config = self._settings.get_active_config(tenant_id)
        if not config:
            return {}
        return {s.name: s.is_in_weekly_stats for s in self._settings.list_sets(tenant_id, config.config_id)}

    def generate_weekly_report(
        self, actor: ActorContext, *, student_id: int, start_date: date, end_date: date
    ) -> WeeklyReport:
        if start_date > end_date:
            raise ValidationError("Start date must not be after the end date")
        student = self._students.get(actor.tenant_id, student_id)
        if not student:
            raise NotFoundError("Student not found")

        feeds = [
            f
            for f in self._feeds.list_for_student_range(actor.tenant_id, student_id, start_date, end_date)
            if not f.is_makeup
        ]
        values = list(self._feeds.list_values(actor.tenant_id, [f.feed_id for f in feeds])) if feeds else []
        if not values:
            raise NotFoundError("No feeds in this period")

        used_sets = self._settings.list_sets_by_ids(actor.tenant_id, sorted({v.set_id for v in values}))
        flags = self._current_weekly_flags(actor.tenant_id)
        stats_sets = {s.set_id: s for s in used_sets if flags.get(s.name, s.is_in_weekly_stats)}
        if not stats_sets:
            raise ValidationError("No items are included in weekly stats, check the feed settings")

        options = {
            o.option_id: o
            for o in self._settings.list_options(actor.tenant_id, list(stats_sets), active_only=False)
        }
        report = self._aggregator.build(
            student,
            start_date=start_date,
            end_date=end_date,
            feeds=feeds,
            values=values,
            stats_sets=stats_sets,
            options=options,
            settings=self._report_settings.get_weekly_settings(actor.tenant_id),
            generated_at=now_local(),
        )
        logger.info("Weekly report generated for student %s (%s..%s)", student_id, start_date, end_date)
        return report

    def generate_bulk_weekly_reports(
        self, actor: ActorContext, *, class_id: int, start_date: date, end_date: date
    ) -> WeeklyBulkResult:
        if not self._classes.get(actor.tenant_id, class_id):
            raise NotFoundError("Class not found")
        if not actor.is_owner and class_id not in self._classes.teacher_class_ids(actor.tenant_id, actor.user_id):
            raise AuthorizationError("You can only generate reports for your own classes")

        student_ids = list(self._assignments.student_ids_for_class(actor.tenant_id, class_id))
        if not student_ids:
            raise ValidationError("The class has no students")

        result = WeeklyBulkResult()
        for student in sorted(self._students.get_many(actor.tenant_id, student_ids), key=lambda s: s.name):
            try:
                result.reports.append(
                    self.generate_weekly_report(
                        actor, student_id=student.student_id, start_date=start_date, end_date=end_date
                    )
                )
            except DomainError as e:
                result.errors.append(f"{student.name}: {e}")

        if not result.reports:
            raise ValidationError("No reports were generated. " + "; ".join(result.errors))
        logger.info(
            "Class %s: %s weekly reports, %s without data", class_id, len(result.reports), len(result.errors)
        )
        return result
