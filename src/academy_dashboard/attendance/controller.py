from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.web import current_actor, date_value, json_endpoint, ok, payload
from ..container import Container
from ..core.enums import MakeupStatus
from ..core.exceptions import ValidationError


def _status_arg(value):
    if not value:
        return None
    try:
        return MakeupStatus(value)
    except ValueError:
        raise ValidationError("Status must be pending, completed or cancelled")


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/absences", endpoint="list_absents")
    @json_endpoint
    def list_absents():
        actor = current_actor(container.auth_service)
        today = now_local().date()
        start = date_value(request.args.get("start"), "Start date", default=today.replace(day=1))
        end = date_value(request.args.get("end"), "End date", default=today)
        return ok(container.makeup_service.list_absents(actor, start=start, end=end))

    @app.route("/dashboard/makeup/tickets", endpoint="list_makeup_tickets")
    @json_endpoint
    def list_makeup_tickets():
        actor = current_actor(container.auth_service)
        start = request.args.get("start")
        end = request.args.get("end")
        return ok(
            container.makeup_service.list_makeup_tickets(
                actor,
                status=_status_arg(request.args.get("status")),
                start=date_value(start, "Start date") if start else None,
                end=date_value(end, "End date") if end else None,
            )
        )

    @app.route("/dashboard/makeup/tickets/pending", endpoint="pending_makeup_tickets")
    @json_endpoint
    def pending_makeup_tickets():
        actor = current_actor(container.auth_service)
        return ok(container.makeup_service.list_pending_tickets(actor))

    @app.route("/dashboard/makeup/tickets/<int:ticket_id>/complete", methods=["POST"], endpoint="complete_makeup")
    @json_endpoint
    def complete_makeup(ticket_id: int):
        actor = current_actor(container.auth_service)
        container.makeup_service.complete_ticket(actor, ticket_id=ticket_id, note=payload().get("note"))
        return ok(message="Makeup completed")

    @app.route("/dashboard/makeup/tickets/<int:ticket_id>/cancel", methods=["POST"], endpoint="cancel_makeup")
    @json_endpoint
    def cancel_makeup(ticket_id: int):
        actor = current_actor(container.auth_service)
        container.makeup_service.cancel_ticket(actor, ticket_id=ticket_id)
        return ok(message="Makeup cancelled")

    @app.route("/dashboard/makeup/tickets/<int:ticket_id>/reopen", methods=["POST"], endpoint="reopen_makeup")
    @json_endpoint
    def reopen_makeup(ticket_id: int):
        actor = current_actor(container.auth_service)
        container.makeup_service.reopen_ticket(actor, ticket_id=ticket_id)
        return ok(message="Makeup re-opened")

    @app.route("/dashboard/makeup/classes/<int:class_id>/search", endpoint="search_makeup_students")
    @json_endpoint
    def search_makeup_students(class_id: int):
        actor = current_actor(container.auth_service)
        query = request.args.get("q", "")
        return ok(container.makeup_service.search_makeup_students(actor, class_id=class_id, query=query))
