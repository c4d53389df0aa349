from __future__ import annotations

from flask import Flask

from ..common.validators import require_positive_id
from ..common.web import current_actor, json_endpoint, ok, payload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/timetable", methods=["GET"], endpoint="timetable")
    @json_endpoint
    def timetable():
        actor = current_actor(container.auth_service)
        return ok(container.timetable_service.get_schedule_blocks(actor))

    @app.route("/dashboard/timetable/blocks/<int:schedule_id>/students", endpoint="block_students")
    @json_endpoint
    def block_students(schedule_id: int):
        actor = current_actor(container.auth_service)
        return ok(container.timetable_service.get_block_students(actor, schedule_id=schedule_id))

    @app.route("/dashboard/timetable/blocks", methods=["POST"], endpoint="create_block")
    @json_endpoint
    def create_block():
        actor = current_actor(container.auth_service)
        body = payload()
        schedule_id = container.timetable_service.create_schedule(
            actor,
            class_id=require_positive_id(body.get("class_id"), "Class"),
            day_of_week=body.get("day_of_week"),
            start_time=body.get("start_time", ""),
            end_time=body.get("end_time", ""),
        )
        return ok({"id": schedule_id}, message="Block created", status=201)

    @app.route("/dashboard/timetable/blocks/<int:schedule_id>", methods=["DELETE"], endpoint="delete_block")
    @json_endpoint
    def delete_block(schedule_id: int):
        actor = current_actor(container.auth_service)
        container.timetable_service.delete_schedule(actor, schedule_id=schedule_id)
        return ok(message="Block deleted")

    @app.route("/dashboard/timetable/classes", endpoint="timetable_classes")
    @json_endpoint
    def timetable_classes():
        actor = current_actor(container.auth_service)
        return ok(container.timetable_service.get_classes_for_schedule(actor))
