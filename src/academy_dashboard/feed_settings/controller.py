from __future__ import annotations

from typing import Optional

from flask import Flask

from ..common.validators import require_positive_id
from ..common.web import current_actor, json_endpoint, ok, payload
from ..container import Container
from ..core.exceptions import ValidationError
from .model import OptionOrderUpdate


def _score(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("Score must be a number")


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "on", "yes")
    return bool(value)


def register(app: Flask, container: Container) -> None:
    service = container.feed_settings_service

    @app.route("/dashboard/feed-settings", endpoint="feed_settings")
    @json_endpoint
    def feed_settings():
        actor = current_actor(container.auth_service)
        config = service.ensure_active_config(actor)
        return ok({"config": config, "option_sets": service.load_option_sets(actor, config_id=config.config_id)})

    @app.route("/dashboard/feed-settings/<int:config_id>/sets", methods=["POST"], endpoint="create_option_set")
    @json_endpoint
    def create_option_set(config_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        set_id = service.create_option_set(
            actor,
            config_id=config_id,
            name=body.get("name", ""),
            set_key=body.get("set_key", ""),
            is_scored=_flag(body.get("is_scored")),
            category=body.get("category"),
            score_step=_score(body.get("score_step")),
        )
        return ok({"id": set_id}, message="Item created", status=201)

    @app.route("/dashboard/feed-settings/<int:config_id>/template", methods=["POST"], endpoint="apply_feed_template")
    @json_endpoint
    def apply_feed_template(config_id: int):
        actor = current_actor(container.auth_service)
        sets = service.apply_template(actor, config_id=config_id, template_key=payload().get("template_key", ""))
        return ok(sets, message="Template applied")

    @app.route("/dashboard/feed-settings/<int:config_id>/archive", methods=["POST"], endpoint="archive_option_sets")
    @json_endpoint
    def archive_option_sets(config_id: int):
        actor = current_actor(container.auth_service)
        return ok({"archived": service.archive_all_option_sets(actor, config_id=config_id)})

    @app.route("/dashboard/feed-settings/sets/<int:set_id>", methods=["PATCH"], endpoint="update_option_set")
    @json_endpoint
    def update_option_set(set_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        if "name" in body:
            service.update_option_set_name(actor, set_id=set_id, name=body["name"])
        if "is_active" in body:
            service.toggle_option_set_active(actor, set_id=set_id, is_active=_flag(body["is_active"]))
        if "category" in body:
            service.change_option_set_category(actor, set_id=set_id, category=body["category"])
        if "is_in_weekly_stats" in body:
            service.update_option_set_weekly_stats(
                actor,
                set_id=set_id,
                is_in_weekly_stats=_flag(body["is_in_weekly_stats"]),
                stats_category=body.get("stats_category"),
            )
        return ok(message="Item updated")

    @app.route("/dashboard/feed-settings/sets/<int:set_id>/duplicate", methods=["POST"], endpoint="duplicate_option_set")
    @json_endpoint
    def duplicate_option_set(set_id: int):
        actor = current_actor(container.auth_service)
        config_id = require_positive_id(payload().get("config_id"), "Configuration")
        new_id = service.duplicate_option_set(actor, set_id=set_id, config_id=config_id)
        return ok({"id": new_id}, message="Item duplicated", status=201)

    @app.route("/dashboard/feed-settings/sets/<int:set_id>", methods=["DELETE"], endpoint="delete_option_set")
    @json_endpoint
    def delete_option_set(set_id: int):
        actor = current_actor(container.auth_service)
        service.delete_option_set(actor, set_id=set_id)
        return ok(message="Item deleted")

    @app.route("/dashboard/feed-settings/sets/<int:set_id>/options", methods=["POST"], endpoint="create_option")
    @json_endpoint
    def create_option(set_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        option_id = service.create_option(
            actor,
            set_id=set_id,
            label=body.get("label", ""),
            score=_score(body.get("score")),
            display_order=int(body.get("display_order") or 0),
            category=body.get("category"),
        )
        return ok({"id": option_id}, message="Option created", status=201)

    @app.route("/dashboard/feed-settings/options/<int:option_id>", methods=["PATCH"], endpoint="update_option")
    @json_endpoint
    def update_option(option_id: int):
        actor = current_actor(container.auth_service)
        body = payload()
        service.update_option(actor, option_id=option_id, label=body.get("label", ""), score=_score(body.get("score")))
        return ok(message="Option updated")

    @app.route("/dashboard/feed-settings/options/<int:option_id>", methods=["DELETE"], endpoint="delete_option")
    @json_endpoint
    def delete_option(option_id: int):
        actor = current_actor(container.auth_service)
        service.delete_option(actor, option_id=option_id)
        return ok(message="Option deleted")

    @app.route("/dashboard/feed-settings/options/order", methods=["POST"], endpoint="update_option_order")
    @json_endpoint
    def update_option_order():
        actor = current_actor(container.auth_service)
        updates = [
            OptionOrderUpdate(
                option_id=require_positive_id(u.get("id"), "Option"),
                display_order=int(u.get("display_order") or 0),
            )
            for u in payload().get("updates") or []
        ]
        return ok({"updated": service.update_option_order(actor, updates)})

    @app.route("/dashboard/feed-settings/presets", methods=["GET"], endpoint="list_feed_presets")
    @json_endpoint
    def list_feed_presets():
        actor = current_actor(container.auth_service)
        return ok(service.list_feed_presets(actor))

    @app.route("/dashboard/feed-settings/presets", methods=["POST"], endpoint="save_feed_preset")
    @json_endpoint
    def save_feed_preset():
        actor = current_actor(container.auth_service)
        body = payload()
        preset_id = service.save_feed_preset(
            actor,
            name=body.get("name", ""),
            config_id=require_positive_id(body.get("config_id"), "Configuration"),
        )
        return ok({"id": preset_id}, message="Preset saved", status=201)

    @app.route("/dashboard/feed-settings/presets/<int:preset_id>/apply", methods=["POST"], endpoint="apply_feed_preset")
    @json_endpoint
    def apply_feed_preset(preset_id: int):
        actor = current_actor(container.auth_service)
        return ok(service.apply_feed_preset(actor, preset_id=preset_id), message="Preset applied")

    @app.route("/dashboard/feed-settings/presets/<int:preset_id>", methods=["DELETE"], endpoint="delete_feed_preset")
    @json_endpoint
    def delete_feed_preset(preset_id: int):
        actor = current_actor(container.auth_service)
        service.delete_feed_preset(actor, preset_id=preset_id)
        return ok(message="Preset deleted")
