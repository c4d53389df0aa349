from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.validators import require_positive_id
from ..common.web import current_actor, date_value, json_endpoint, ok, payload
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/classes", methods=["GET"], endpoint="list_classes")
    @json_endpoint
    def list_classes():
        actor = current_actor(container.auth_service)
        return ok(container.class_service.list_classes(actor))

    @app.route("/dashboard/classes", methods=["POST"], endpoint="create_class")
    @json_endpoint
    def create_class():
        actor = current_actor(container.auth_service)
        body = payload()
        class_id = container.class_service.create_class(actor, name=body.get("name", ""), color=body.get("color"))
        return ok({"id": class_id}, message="Class created", status=201)

    @app.route("/dashboard/classes/<int:class_id>/teachers", methods=["POST"], endpoint="assign_class_teacher")
    @json_endpoint
    def assign_class_teacher(class_id: int):
        actor = current_actor(container.auth_service)
        teacher_id = require_positive_id(payload().get("teacher_id"), "Teacher")
        container.class_service.assign_teacher(actor, class_id=class_id, teacher_id=teacher_id)
        return ok(message="Teacher assigned")

    @app.route(
        "/dashboard/classes/<int:class_id>/teachers/<int:teacher_id>",
        methods=["DELETE"],
        endpoint="unassign_class_teacher",
    )
    @json_endpoint
    def unassign_class_teacher(class_id: int, teacher_id: int):
        actor = current_actor(container.auth_service)
        container.class_service.unassign_teacher(actor, class_id=class_id, teacher_id=teacher_id)
        return ok(message="Teacher removed")

    @app.route("/dashboard/classes/<int:class_id>/students", methods=["POST"], endpoint="enroll_student")
    @json_endpoint
    def enroll_student(class_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        group_key = container.class_service.enroll_student(
            actor,
            class_id=class_id,
            student_id=require_positive_id(body.get("student_id"), "Student"),
            start_date=date_value(body.get("start_date"), "Start date", default=now_local().date()),
        )
        return ok({"group_key": group_key}, message="Student enrolled", status=201)

    @app.route(
        "/dashboard/classes/<int:class_id>/students/<int:student_id>",
        methods=["DELETE"],
        endpoint="unenroll_student",
    )
    @json_endpoint
    def unenroll_student(class_id: int, student_id: int):
        actor = current_actor(container.auth_service)
        ended = container.class_service.unenroll_student(
            actor,
            class_id=class_id,
            student_id=student_id,
            end_date=date_value(request.args.get("end_date"), "End date", default=now_local().date()),
        )
        return ok({"ended": ended})

    @app.route("/dashboard/students", methods=["GET"], endpoint="list_students")
    @json_endpoint
    def list_students():
        actor = current_actor(container.auth_service)
        query = request.args.get("q")
        if query is not None:
            return ok(container.class_service.search_students(actor, query))
        return ok(container.class_service.list_students(actor))

    @app.route("/dashboard/students", methods=["POST"], endpoint="create_student")
    @json_endpoint
    def create_student():
        actor = current_actor(container.auth_service)
        body = payload()
        student_id = container.class_service.create_student(
            actor,
            name=body.get("name", ""),
            display_code=body.get("display_code"),
            school=body.get("school"),
        )
        return ok({"id": student_id}, message="Student created", status=201)
