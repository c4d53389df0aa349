from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ReportCategory
from .model import FeedConfig, NewOptionSet, Option, OptionOrderUpdate, OptionSet


class FeedSettingsRepository(Protocol):
    # configs
    def get_active_config(self, tenant_id: int) -> Optional[FeedConfig]:
        raise NotImplementedError

    def get_config(self, tenant_id: int, config_id: int) -> Optional[FeedConfig]:
        raise NotImplementedError

    def create_config(self, *, tenant_id: int, config_name: str, applied_at: datetime) -> FeedConfig:
        raise NotImplementedError

    # option sets
    def list_sets(self, tenant_id: int, config_id: int, *, active_only: bool = False) -> Sequence[OptionSet]:
        raise NotImplementedError

    def get_set(self, tenant_id: int, set_id: int) -> Optional[OptionSet]:
        raise NotImplementedError

    def list_sets_by_ids(self, tenant_id: int, set_ids: Sequence[int]) -> Sequence[OptionSet]:
        """Archived sets included, flagged with `is_archived`."""
        raise NotImplementedError

    def create_set(self, *, tenant_id: int, config_id: int, new_set: NewOptionSet) -> int:
        """Insert the set and its options (display_order from 0) in one transaction."""
        raise NotImplementedError

    def rename_set(self, tenant_id: int, set_id: int, name: str) -> bool:
        raise NotImplementedError

    def set_set_active(self, tenant_id: int, set_id: int, is_active: bool) -> bool:
        raise NotImplementedError

    def change_set_category(self, tenant_id: int, set_id: int, category: ReportCategory) -> bool:
        """Update the set and every option of it."""
        raise NotImplementedError

    def set_weekly_stats(
        self, tenant_id: int, set_id: int, *, is_in_weekly_stats: bool, stats_category: Optional[str]
    ) -> bool:
        raise NotImplementedError

    def soft_delete_set(self, tenant_id: int, set_id: int, *, at: datetime) -> bool:
        raise NotImplementedError

    def archive_sets(self, tenant_id: int, config_id: int, *, at: datetime) -> int:
        raise NotImplementedError

    def replace_sets(
        self, tenant_id: int, config_id: int, new_sets: Sequence[NewOptionSet], *, at: datetime
    ) -> list[int]:
        """Archive every live set of the config and create `new_sets`, in one transaction."""
        raise NotImplementedError

    # options
    def list_options(self, tenant_id: int, set_ids: Sequence[int], *, active_only: bool = True) -> Sequence[Option]:
        raise NotImplementedError

    def get_option(self, tenant_id: int, option_id: int) -> Optional[Option]:
        raise NotImplementedError

    def create_option(
        self,
        *,
        tenant_id: int,
        set_id: int,
        label: str,
        score: Optional[float],
        display_order: int,
        category: ReportCategory,
    ) -> int:
        raise NotImplementedError

    def update_option(self, tenant_id: int, option_id: int, *, label: str, score: Optional[float]) -> bool:
        raise NotImplementedError

    def deactivate_option(self, tenant_id: int, option_id: int) -> bool:
        raise NotImplementedError

    def update_option_order(self, tenant_id: int, updates: Sequence[OptionOrderUpdate]) -> int:
        raise NotImplementedError
