from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_category, require_non_empty
from ..core.constants import DEFAULT_CONFIG_NAME
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import ActorContext
from .model import (
    FeedConfig,
    FeedPresetSummary,
    NewOption,
    NewOptionSet,
    OptionOrderUpdate,
    OptionSet,
    OptionSetsWithOptions,
)
from .preset_repository import FeedPresetRepository
from .repository import FeedSettingsRepository
from .templates import FEED_TEMPLATES

logger = logging.getLogger(__name__)


class FeedSettingsService:
    """Use case: manage the evaluation items teachers fill in on feeds.

    Reads are open to every signed-in profile; mutations are owner only.
    """

    def __init__(self, settings: FeedSettingsRepository, presets: FeedPresetRepository):
        self._settings = settings
        self._presets = presets

    @staticmethod
    def _require_owner(actor: ActorContext) -> None:
        if not actor.is_owner:
            raise AuthorizationError("Only the academy owner can change feed settings")

    def _require_config(self, actor: ActorContext, config_id: int) -> FeedConfig:
        config = self._settings.get_config(actor.tenant_id, config_id)
        if not config:
            raise NotFoundError("Feed configuration not found")
        return config

    def _require_set(self, actor: ActorContext, set_id: int) -> OptionSet:
        option_set = self._settings.get_set(actor.tenant_id, set_id)
        if not option_set:
            raise NotFoundError("Option set not found")
        return option_set

    # configs

    def ensure_active_config(self, actor: ActorContext) -> FeedConfig:
        config = self._settings.get_active_config(actor.tenant_id)
        if config:
            return config
        config = self._settings.create_config(
            tenant_id=actor.tenant_id, config_name=DEFAULT_CONFIG_NAME, applied_at=now_local()
        )
        logger.info("Feed configuration %s created for tenant %s", config.config_id, actor.tenant_id)
        return config

    def load_option_sets(self, actor: ActorContext, *, config_id: int) -> OptionSetsWithOptions:
        sets = list(self._settings.list_sets(actor.tenant_id, config_id))
        options: dict[int, list] = {s.set_id: [] for s in sets}
        for opt in self._settings.list_options(actor.tenant_id, list(options)):
            options.setdefault(opt.set_id, []).append(opt)
        for opts in options.values():
            opts.sort(key=lambda o: (o.display_order, o.option_id))
        return OptionSetsWithOptions(sets=sets, options=options)

    # option sets

    def create_option_set(
        self,
        actor: ActorContext,
        *,
        config_id: int,
        name: str,
        set_key: str,
        is_scored: bool,
        category,
        score_step: Optional[float] = None,
    ) -> int:
        self._require_owner(actor)
        self._require_config(actor, config_id)
        new_set = NewOptionSet(
            name=require_non_empty(name, "Item name"),
            set_key=require_non_empty(set_key, "Item key"),
            is_scored=bool(is_scored),
            report_category=require_category(category),
            score_step=score_step if is_scored else None,
        )
        set_id = self._settings.create_set(tenant_id=actor.tenant_id, config_id=config_id, new_set=new_set)
        logger.info("Option set %s created in config %s", set_id, config_id)
        return set_id

    def update_option_set_name(self, actor: ActorContext, *, set_id: int, name: str) -> None:
        self._require_owner(actor)
        self._require_set(actor, set_id)
        self._settings.rename_set(actor.tenant_id, set_id, require_non_empty(name, "Item name"))

    def toggle_option_set_active(self, actor: ActorContext, *, set_id: int, is_active: bool) -> None:
        self._require_owner(actor)
        self._require_set(actor, set_id)
        self._settings.set_set_active(actor.tenant_id, set_id, bool(is_active))

    def change_option_set_category(self, actor: ActorContext, *, set_id: int, category) -> None:
        self._require_owner(actor)
        category = require_category(category)
        self._require_set(actor, set_id)
        self._settings.change_set_category(actor.tenant_id, set_id, category)

    def update_option_set_weekly_stats(
        self,
        actor: ActorContext,
        *,
        set_id: int,
        is_in_weekly_stats: bool,
        stats_category: Optional[str] = None,
    ) -> None:
        self._require_owner(actor)
        self._require_set(actor, set_id)
        self._settings.set_weekly_stats(
            actor.tenant_id,
            set_id,
            is_in_weekly_stats=bool(is_in_weekly_stats),
            stats_category=(stats_category or "").strip() or None,
        )

    def duplicate_option_set(self, actor: ActorContext, *, set_id: int, config_id: int) -> int:
        self._require_owner(actor)
        source = self._require_set(actor, set_id)
        self._require_config(actor, config_id)

        options = sorted(
            self._settings.list_options(actor.tenant_id, [set_id]),
            key=lambda o: (o.display_order, o.option_id),
        )
        copy = NewOptionSet(
            name=f"{source.name} (copy)",
            set_key=f"{source.set_key}_copy_{int(time.time() * 1000)}",
            is_scored=source.is_scored,
            report_category=source.default_report_category,
            score_step=source.score_step,
            options=tuple(NewOption(o.label, o.score, o.report_category) for o in options),
        )
        new_id = self._settings.create_set(tenant_id=actor.tenant_id, config_id=config_id, new_set=copy)
        logger.info("Option set %s duplicated as %s", set_id, new_id)
        return new_id

    def delete_option_set(self, actor: ActorContext, *, set_id: int) -> None:
        self._require_owner(actor)
        if not self._settings.soft_delete_set(actor.tenant_id, set_id, at=now_local()):
            raise NotFoundError("Option set not found")
        logger.info("Option set %s deleted", set_id)

    def archive_all_option_sets(self, actor: ActorContext, *, config_id: int) -> int:
        self._require_owner(actor)
        self._require_config(actor, config_id)
        return self._settings.archive_sets(actor.tenant_id, config_id, at=now_local())

    # options

    def create_option(
        self,
        actor: ActorContext,
        *,
        set_id: int,
        label: str,
        score: Optional[float] = None,
        display_order: int = 0,
        category=None,
    ) -> int:
        self._require_owner(actor)
        option_set = self._require_set(actor, set_id)
        resolved = require_category(category) if category is not None else option_set.default_report_category
        return self._settings.create_option(
            tenant_id=actor.tenant_id,
            set_id=set_id,
            label=require_non_empty(label, "Option label"),
            score=score,
            display_order=int(display_order),
            category=resolved,
        )

    def update_option(self, actor: ActorContext, *, option_id: int, label: str, score: Optional[float]) -> None:
        self._require_owner(actor)
        if not self._settings.get_option(actor.tenant_id, option_id):
            raise NotFoundError("Option not found")
        self._settings.update_option(actor.tenant_id, option_id, label=require_non_empty(label, "Option label"), score=score)

    def delete_option(self, actor: ActorContext, *, option_id: int) -> None:
        self._require_owner(actor)
        if not self._settings.get_option(actor.tenant_id, option_id):
            raise NotFoundError("Option not found")
        self._settings.deactivate_option(actor.tenant_id, option_id)

    def update_option_order(self, actor: ActorContext, updates: Sequence[OptionOrderUpdate]) -> int:
        self._require_owner(actor)
        if not updates:
            return 0
        return self._settings.update_option_order(actor.tenant_id, list(updates))

    # templates

    def apply_template(self, actor: ActorContext, *, config_id: int, template_key: str) -> OptionSetsWithOptions:
        self._require_owner(actor)
        template = FEED_TEMPLATES.get(template_key)
        if template is None:
            raise ValidationError(f"Unknown template: {template_key}")
        self._require_config(actor, config_id)

        self._settings.replace_sets(actor.tenant_id, config_id, template.sets, at=now_local())
        logger.info("Template %r applied to config %s", template_key, config_id)
        return self.load_option_sets(actor, config_id=config_id)

    # presets

    def save_feed_preset(self, actor: ActorContext, *, name: str, config_id: int) -> int:
        """Snapshot the config's current items and options under a reusable name."""
        self._require_owner(actor)
        name = require_non_empty(name, "Preset name")
        self._require_config(actor, config_id)

        loaded = self.load_option_sets(actor, config_id=config_id)
        if not loaded.sets:
            raise ValidationError("There are no items to save")
        sets = [
            NewOptionSet(
                name=s.name,
                set_key=s.set_key,
                is_scored=s.is_scored,
                report_category=s.default_report_category,
                score_step=s.score_step,
                options=tuple(NewOption(o.label, o.score, o.report_category) for o in loaded.options.get(s.set_id, [])),
            )
            for s in loaded.sets
        ]
        preset_id = self._presets.create(tenant_id=actor.tenant_id, name=name, created_by=actor.user_id, sets=sets)
        logger.info("Feed preset %s saved from config %s (%s items)", preset_id, config_id, len(sets))
        return preset_id

    def list_feed_presets(self, actor: ActorContext) -> list[FeedPresetSummary]:
        return list(self._presets.list_summaries(actor.tenant_id))

    def apply_feed_preset(self, actor: ActorContext, *, preset_id: int) -> OptionSetsWithOptions:
        """Replace the active config's items with the preset's, creating the config if needed."""
        self._require_owner(actor)
        sets = self._presets.load_sets(actor.tenant_id, preset_id)
        if sets is None:
            raise NotFoundError("Preset not found")
        config = self.ensure_active_config(actor)

        # archived sets keep their keys
        stamp = format(int(time.time() * 1000), "x")[-6:]
        fresh = [replace(s, set_key=f"{s.set_key[:80]}_{stamp}{idx}") for idx, s in enumerate(sets)]
        self._settings.replace_sets(actor.tenant_id, config.config_id, fresh, at=now_local())
        logger.info("Feed preset %s applied to config %s", preset_id, config.config_id)
        return self.load_option_sets(actor, config_id=config.config_id)

    def delete_feed_preset(self, actor: ActorContext, *, preset_id: int) -> None:
        self._require_owner(actor)
        if not self._presets.delete(actor.tenant_id, preset_id):
            raise NotFoundError("Preset not found")
        logger.info("Feed preset %s deleted", preset_id)
