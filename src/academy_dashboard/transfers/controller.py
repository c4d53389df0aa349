from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_local
from ..common.validators import require_positive_id
from ..common.web import current_actor, date_value, json_endpoint, ok, payload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/transfers/move", methods=["POST"], endpoint="move_student")
    @json_endpoint
    def move_student():
        actor = current_actor(container.auth_service)
        body = payload()
        outcome = container.transfer_service.move_student(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            effective_date=date_value(body.get("effective_date"), "Effective date"),
            from_schedule_id=require_positive_id(body.get("from_schedule_id"), "Source block"),
            to_schedule_id=require_positive_id(body.get("to_schedule_id"), "Target block"),
            scope=body.get("scope"),
            group_key=body.get("group_key") or None,
            reason=body.get("reason"),
        )
        message = "Transfer request submitted" if outcome.requested else "Student moved"
        return ok(outcome, message=message)

    @app.route("/dashboard/transfers/move-class", methods=["POST"], endpoint="move_student_to_class")
    @json_endpoint
    def move_student_to_class():
        actor = current_actor(container.auth_service)
        body = payload()
        moved = container.transfer_service.move_student_to_class(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            from_class_id=require_positive_id(body.get("from_class_id"), "Source class"),
            to_class_id=require_positive_id(body.get("to_class_id"), "Target class"),
            on_date=date_value(body.get("on_date"), "Date", default=now_local().date()),
        )
        return ok({"moved": moved}, message="Student moved")

    @app.route("/dashboard/transfers/requests", methods=["GET"], endpoint="pending_transfer_requests")
    @json_endpoint
    def pending_transfer_requests():
        actor = current_actor(container.auth_service)
        return ok(container.transfer_service.list_pending_transfer_requests(actor))

    @app.route("/dashboard/transfers/requests", methods=["POST"], endpoint="create_transfer_request")
    @json_endpoint
    def create_transfer_request():
        actor = current_actor(container.auth_service)
        body = payload()
        request_id = container.transfer_service.create_transfer_request(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            effective_date=date_value(body.get("effective_date"), "Effective date"),
            from_schedule_id=require_positive_id(body.get("from_schedule_id"), "Source block"),
            to_schedule_id=require_positive_id(body.get("to_schedule_id"), "Target block"),
            scope=body.get("scope"),
            group_key=body.get("group_key") or None,
            reason=body.get("reason"),
        )
        return ok({"id": request_id}, message="Transfer request submitted", status=201)

    @app.route("/dashboard/transfers/requests/<int:request_id>/approve", methods=["POST"], endpoint="approve_transfer")
    @json_endpoint
    def approve_transfer(request_id: int):
        actor = current_actor(container.auth_service)
        moved = container.transfer_service.approve_transfer_request(actor, request_id=request_id)
        return ok({"moved": moved}, message="Request approved")

    @app.route("/dashboard/transfers/requests/<int:request_id>/reject", methods=["POST"], endpoint="reject_transfer")
    @json_endpoint
    def reject_transfer(request_id: int):
        actor = current_actor(container.auth_service)
        container.transfer_service.reject_transfer_request(actor, request_id=request_id, note=payload().get("note"))
        return ok(message="Request rejected")

    @app.route("/dashboard/transfers/requests/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_transfer")
    @json_endpoint
    def cancel_transfer(request_id: int):
        actor = current_actor(container.auth_service)
        container.transfer_service.cancel_transfer_request(actor, request_id=request_id)
        return ok(message="Request cancelled")

    @app.route("/dashboard/class-changes", methods=["GET"], endpoint="class_change_requests")
    @json_endpoint
    def class_change_requests():
        actor = current_actor(container.auth_service)
        return ok(container.transfer_service.list_class_change_requests(actor))

    @app.route("/dashboard/class-changes", methods=["POST"], endpoint="create_class_change")
    @json_endpoint
    def create_class_change():
        actor = current_actor(container.auth_service)
        body = payload()
        request_id = container.transfer_service.create_class_change_request(
            actor,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            message=body.get("message"),
        )
        return ok({"id": request_id}, message="Request submitted", status=201)

    @app.route("/dashboard/class-changes/<int:request_id>/done", methods=["POST"], endpoint="complete_class_change")
    @json_endpoint
    def complete_class_change(request_id: int):
        actor = current_actor(container.auth_service)
        container.transfer_service.complete_class_change_request(actor, request_id=request_id)
        return ok(message="Request completed")
