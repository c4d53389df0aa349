from __future__ import annotations

from datetime import date, time

import pytest

from academy_dashboard.core.constants import FEATURE_MONTHLY_REPORT
from academy_dashboard.core.enums import AttendanceStatus, ReportStatus, SendMethod
from academy_dashboard.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from academy_dashboard.feed_settings.model import FeedConfig
from academy_dashboard.reports.model import ReportFilter


@pytest.fixture()
def month(academy, owner):
    academy.features.enabled.add((owner.tenant_id, FEATURE_MONTHLY_REPORT))
    academy.settings.configs[500] = FeedConfig(config_id=500, tenant_id=owner.tenant_id, config_name="V1")
    homework = academy.option_set(500, "Homework")

    class_id = academy.school_class("Essay")
    block = academy.block(class_id, 4, time(18, 0), time(19, 0))
    sora = academy.student("Sora")
    ian = academy.student("Ian")
    for student in (sora, ian):
        academy.assignments.add(student_id=student, schedule_id=block, start_date=date(2026, 1, 8))

    academy.feed(class_id=class_id, student_id=sora, feed_date=date(2026, 3, 5), values=[(homework, 1, 90)])
    academy.feed(class_id=class_id, student_id=sora, feed_date=date(2026, 3, 12), values=[(homework, 1, 85)])
    academy.feed(class_id=class_id, student_id=sora, feed_date=date(2026, 3, 19), status=AttendanceStatus.ABSENT)
    academy.feed(class_id=class_id, student_id=sora, feed_date=date(2026, 3, 21), counted=False)
    academy.feed(class_id=class_id, student_id=sora, feed_date=date(2026, 4, 2))
    return {"class_id": class_id, "sora": sora, "ian": ian}


def test_create_stores_aggregated_summary(academy, owner, month):
    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    report = academy.reports.rows[report_id]
    assert report.status == ReportStatus.DRAFT
    assert report.template_type == 1
    assert report.attendance_summary == {"total_days": 3, "attended": 2, "late": 0, "absent": 1, "rate": 67}
    assert report.score_summary == {"Homework": {"average": 88, "count": 2}}
    assert report.exam_summary["summary"]["count"] == 0
    assert report.created_by == owner.user_id


def test_template_falls_back_to_academy_setting(academy, owner, month):
    academy.report_settings.template_types[owner.tenant_id] = 3

    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    assert academy.reports.rows[report_id].template_type == 3


def test_create_validation(academy, owner, month):
    with pytest.raises(ValidationError):
        academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=13)
    with pytest.raises(ValidationError):
        academy.report_service.create_monthly_report(
            owner, student_id=month["sora"], year=2026, month=3, template_type=6
        )
    with pytest.raises(NotFoundError):
        academy.report_service.create_monthly_report(owner, student_id=999, year=2026, month=3)


def test_second_report_for_month_conflicts(academy, owner, month):
    academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    with pytest.raises(ConflictError):
        academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)


def test_deleted_report_can_be_recreated(academy, owner, month):
    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)
    academy.report_service.delete_monthly_report(owner, report_id=report_id)

    academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)
    with pytest.raises(NotFoundError):
        academy.report_service.delete_monthly_report(owner, report_id=report_id)


def test_class_bulk_create_skips_existing(academy, owner, month):
    academy.report_service.create_monthly_report(owner, student_id=month["ian"], year=2026, month=3)

    result = academy.report_service.create_monthly_reports_for_class(
        owner, class_id=month["class_id"], year=2026, month=3
    )

    assert (result.created, result.skipped) == (1, 1)
    assert academy.reports.rows[result.report_ids[0]].student_id == month["sora"]


def test_reports_are_owner_only_and_feature_gated(academy, owner, teacher, month):
    with pytest.raises(AuthorizationError):
        academy.report_service.list_monthly_reports(teacher)

    academy.features.enabled.clear()
    with pytest.raises(AuthorizationError):
        academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)


def test_list_with_filter(academy, owner, month):
    academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)
    academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=4)

    views = academy.report_service.list_monthly_reports(owner, ReportFilter(year=2026, month=4))

    assert [(v.student_name, v.report_month) for v in views] == [("Sora", 4)]
    assert len(academy.report_service.list_monthly_reports(owner)) == 2


def test_update_fields(academy, owner, month):
    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    report = academy.report_service.update_monthly_report(
        owner,
        report_id=report_id,
        fields={"teacher_praise": "Great essays", "template_type": "2", "status": "reviewed"},
    )

    assert report.teacher_praise == "Great essays"
    assert report.template_type == 2
    assert report.status == ReportStatus.REVIEWED


@pytest.mark.parametrize(
    "fields",
    [{"attendance_summary": {}}, {"template_type": 0}, {"status": "archived"}],
)
def test_update_rejects_bad_fields(academy, owner, month, fields):
    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    with pytest.raises(ValidationError):
        academy.report_service.update_monthly_report(owner, report_id=report_id, fields=fields)


def test_sending_stamps_time_and_method(academy, owner, month):
    report_id = academy.report_service.create_monthly_report(owner, student_id=month["sora"], year=2026, month=3)

    generated = academy.report_service.update_report_status(owner, report_id=report_id, status=ReportStatus.GENERATED)
    assert generated.sent_at is None

    sent = academy.report_service.update_report_status(
        owner, report_id=report_id, status=ReportStatus.SENT, send_method=SendMethod.KAKAO
    )
    assert sent.status == ReportStatus.SENT
    assert sent.sent_at is not None
    assert sent.sent_method == SendMethod.KAKAO
