from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_makeup_repository import MySQLAbsenceRepository, MySQLMakeupTicketRepository
from .attendance.service import MakeupService
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.mysql_student_repository import MySQLStudentRepository
from .classes.service import ClassService
from .core.constants import DEFAULT_IDEMPOTENCY_TTL_HOURS
from .database.connection import DBConfig, DatabaseConnection, build_service_connection
from .feed_settings.mysql_feed_preset_repository import MySQLFeedPresetRepository
from .feed_settings.mysql_feed_settings_repository import MySQLFeedSettingsRepository
from .feed_settings.service import FeedSettingsService
from .feeds.mysql_feed_repository import MySQLFeedRepository, MySQLIdempotencyRepository
from .feeds.service import FeedService
from .reports.mysql_report_repository import MySQLReportRepository, MySQLReportSettingsRepository
from .reports.service import MonthlyReportService
from .reports.weekly_service import WeeklyReportService
from .timetable.mysql_schedule_repository import MySQLAssignmentRepository, MySQLScheduleRepository
from .timetable.service import TimetableService
from .transfers.factory import MoveScopeFactory
from .transfers.mysql_transfer_repository import (
    MySQLClassChangeRepository,
    MySQLMoveApplier,
    MySQLTransferRequestRepository,
)
from .transfers.service import TransferService
from .users.mysql_feature_repository import MySQLFeatureRepository
from .users.mysql_user_repository import MySQLProfileRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    service_conn: DatabaseConnection

    auth_service: AuthService
    user_service: UserService
    class_service: ClassService
    timetable_service: TimetableService
    transfer_service: TransferService
    makeup_service: MakeupService
    feed_service: FeedService
    feed_settings_service: FeedSettingsService
    report_service: MonthlyReportService
    weekly_report_service: WeeklyReportService


def build_container(
    *,
    db_config: dict,
    service_db_config: Optional[dict],
    idempotency_ttl_hours: int = DEFAULT_IDEMPOTENCY_TTL_HOURS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    service_conn = build_service_connection(service_db_config)

    profiles_repo = MySQLProfileRepository(conn)
    features_repo = MySQLFeatureRepository(conn)
    classes_repo = MySQLClassRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    schedules_repo = MySQLScheduleRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    feeds_repo = MySQLFeedRepository(conn)
    settings_repo = MySQLFeedSettingsRepository(conn)
    report_settings_repo = MySQLReportSettingsRepository(conn)

    makeup_service = MakeupService(
        MySQLMakeupTicketRepository(conn),
        MySQLAbsenceRepository(conn),
        classes_repo,
        students_repo,
        assignments_repo,
    )

    return Container(
        conn=conn,
        service_conn=service_conn,
        auth_service=AuthService(profiles_repo),
        user_service=UserService(profiles_repo),
        class_service=ClassService(classes_repo, students_repo, profiles_repo, schedules_repo, assignments_repo),
        timetable_service=TimetableService(schedules_repo, assignments_repo, classes_repo, students_repo, profiles_repo),
        transfer_service=TransferService(
            MySQLTransferRequestRepository(conn),
            MySQLClassChangeRepository(conn),
            # multi-row moves run on the privileged connection
            MySQLMoveApplier(service_conn),
            schedules_repo,
            assignments_repo,
            classes_repo,
            students_repo,
            scope_factory=MoveScopeFactory(),
        ),
        makeup_service=makeup_service,
        feed_service=FeedService(
            feeds_repo,
            MySQLIdempotencyRepository(conn),
            settings_repo,
            classes_repo,
            students_repo,
            assignments_repo,
            features_repo,
            makeup_service,
            idempotency_ttl_hours=idempotency_ttl_hours,
        ),
        feed_settings_service=FeedSettingsService(settings_repo, MySQLFeedPresetRepository(conn)),
        report_service=MonthlyReportService(
            MySQLReportRepository(conn),
            report_settings_repo,
            feeds_repo,
            settings_repo,
            classes_repo,
            students_repo,
            assignments_repo,
            features_repo,
        ),
        weekly_report_service=WeeklyReportService(
            report_settings_repo,
            feeds_repo,
            settings_repo,
            classes_repo,
            students_repo,
            assignments_repo,
        ),
    )
