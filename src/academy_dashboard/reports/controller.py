from __future__ import annotations

from flask import Flask, request

from ..common.validators import require_positive_id
from ..common.web import current_actor, date_value, json_endpoint, ok, optional_int, payload
from ..container import Container
from ..core.enums import ReportStatus, SendMethod
from ..core.exceptions import ValidationError
from .model import ReportFilter


def _report_status(value) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        raise ValidationError("Report status is invalid")


def register(app: Flask, container: Container) -> None:
    service = container.report_service
    weekly_service = container.weekly_report_service

    @app.route("/dashboard/reports/monthly", methods=["GET"], endpoint="list_monthly_reports")
    @json_endpoint
    def list_monthly_reports():
        actor = current_actor(container.auth_service)
        status = request.args.get("status")
        report_filter = ReportFilter(
            year=optional_int(request.args.get("year")),
            month=optional_int(request.args.get("month")),
            student_id=optional_int(request.args.get("student_id")),
            status=_report_status(status) if status else None,
        )
        return ok(service.list_monthly_reports(actor, report_filter))

    @app.route("/dashboard/reports/monthly", methods=["POST"], endpoint="create_monthly_report")
    @json_endpoint
    def create_monthly_report():
        actor = current_actor(container.auth_service)
        body = payload()
        year = require_positive_id(body.get("year"), "Year")
        month = optional_int(body.get("month")) or 0
        template_type = optional_int(body.get("template_type"))

        class_id = optional_int(body.get("class_id"))
        if class_id is not None:
            result = service.create_monthly_reports_for_class(actor, class_id=class_id, year=year, month=month)
            return ok(result, message=f"{result.created} reports created, {result.skipped} skipped", status=201)

        report_id = service.create_monthly_report(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            year=year,
            month=month,
            template_type=template_type,
        )
        return ok({"id": report_id}, message="Report created", status=201)

    @app.route("/dashboard/reports/monthly/<int:report_id>", methods=["GET"], endpoint="get_monthly_report")
    @json_endpoint
    def get_monthly_report(report_id: int):
        actor = current_actor(container.auth_service)
        return ok(service.get_monthly_report(actor, report_id=report_id))

    @app.route("/dashboard/reports/monthly/<int:report_id>", methods=["PATCH"], endpoint="update_monthly_report")
    @json_endpoint
    def update_monthly_report(report_id: int):
        actor = current_actor(container.auth_service)
        report = service.update_monthly_report(actor, report_id=report_id, fields=payload())
        return ok(report, message="Report updated")

    @app.route("/dashboard/reports/monthly/<int:report_id>/status", methods=["POST"], endpoint="update_report_status")
    @json_endpoint
    def update_report_status(report_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        method = body.get("send_method")
        try:
            send_method = SendMethod(method) if method else None
        except ValueError:
            raise ValidationError("Send method must be kakao, pdf or print")
        report = service.update_report_status(
            actor,
            report_id=report_id,
            status=_report_status(body.get("status")),
            send_method=send_method,
        )
        return ok(report, message="Status updated")

    @app.route("/dashboard/reports/monthly/<int:report_id>", methods=["DELETE"], endpoint="delete_monthly_report")
    @json_endpoint
    def delete_monthly_report(report_id: int):
        actor = current_actor(container.auth_service)
        service.delete_monthly_report(actor, report_id=report_id)
        return ok(message="Report deleted")

    @app.route("/dashboard/reports/weekly", methods=["POST"], endpoint="generate_weekly_report")
    @json_endpoint
    def generate_weekly_report():
        actor = current_actor(container.auth_service)
        body = payload()
        start_date = date_value(body.get("start_date"), "Start date")
        end_date = date_value(body.get("end_date"), "End date")

        class_id = optional_int(body.get("class_id"))
        if class_id is not None:
            result = weekly_service.generate_bulk_weekly_reports(
                actor, class_id=class_id, start_date=start_date, end_date=end_date
            )
            return ok(result, message=f"{len(result.reports)} reports generated, {len(result.errors)} failed")

        report = weekly_service.generate_weekly_report(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            start_date=start_date,
            end_date=end_date,
        )
        return ok(report)
