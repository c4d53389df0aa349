from __future__ import annotations

from flask import Flask, request

from ..common.web import current_actor, date_value, json_endpoint, ok, payload
from ..container import Container
from ..core.exceptions import ValidationError
from .model import SaveFeedPayload


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard/feeds/classes", endpoint="feed_classes")
    @json_endpoint
    def feed_classes():
        actor = current_actor(container.auth_service)
        return ok(container.feed_service.get_teacher_classes(actor))

    @app.route("/dashboard/feeds/classes/<int:class_id>/students", endpoint="feed_class_students")
    @json_endpoint
    def feed_class_students(class_id: int):
        actor = current_actor(container.auth_service)
        return ok(container.feed_service.get_class_students(actor, class_id=class_id))

    @app.route("/dashboard/feeds/option-sets", endpoint="feed_option_sets")
    @json_endpoint
    def feed_option_sets():
        actor = current_actor(container.auth_service)
        return ok(container.feed_service.get_feed_option_sets(actor))

    @app.route("/dashboard/feeds", methods=["POST"], endpoint="save_feed")
    @json_endpoint
    def save_feed():
        actor = current_actor(container.auth_service)
        result = container.feed_service.save_feed(actor, SaveFeedPayload.from_dict(payload()))
        return ok(result, message="Feed saved")

    @app.route("/dashboard/feeds/bulk", methods=["POST"], endpoint="save_all_feeds")
    @json_endpoint
    def save_all_feeds():
        actor = current_actor(container.auth_service)
        items = payload().get("feeds")
        if not isinstance(items, list) or not items:
            raise ValidationError("No feeds to save")
        result = container.feed_service.save_all_feeds(actor, [SaveFeedPayload.from_dict(i) for i in items])
        return ok(result, message=None if result.success else "Some feeds were not saved")

    @app.route("/dashboard/feeds/classes/<int:class_id>", endpoint="saved_feeds")
    @json_endpoint
    def saved_feeds(class_id: int):
        actor = current_actor(container.auth_service)
        feed_date = date_value(request.args.get("date"), "Date")
        return ok(container.feed_service.get_saved_feeds(actor, class_id=class_id, feed_date=feed_date))

    @app.route("/dashboard/feeds/classes/<int:class_id>/previous-progress", endpoint="previous_progress")
    @json_endpoint
    def previous_progress(class_id: int):
        actor = current_actor(container.auth_service)
        before = date_value(request.args.get("before"), "Date")
        raw_ids = request.args.getlist("student_id", type=int)
        progress = container.feed_service.get_previous_progress(
            actor, class_id=class_id, before=before, student_ids=raw_ids or None
        )
        return ok({str(k): v for k, v in progress.items()})
