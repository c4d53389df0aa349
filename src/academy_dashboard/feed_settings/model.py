from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import ReportCategory


@dataclass(frozen=True)
class FeedConfig:
    config_id: int
    tenant_id: int
    config_name: str
    is_active: bool = True
    applied_at: Optional[datetime] = None


@dataclass(frozen=True)
class OptionSet:
    """A feed evaluation item (e.g. homework) owned by a config."""

    set_id: int
    tenant_id: int
    config_id: int
    name: str
    set_key: str
    category: Optional[str] = None
    is_scored: bool = False
    score_step: Optional[float] = None
    is_active: bool = True
    default_report_category: ReportCategory = ReportCategory.NONE
    is_in_weekly_stats: bool = False
    stats_category: Optional[str] = None
    is_archived: bool = False


@dataclass(frozen=True)
class Option:
    option_id: int
    tenant_id: int
    set_id: int
    label: str
    score: Optional[float] = None
    display_order: int = 0
    is_active: bool = True
    report_category: ReportCategory = ReportCategory.NONE


@dataclass(frozen=True)
class OptionSetsWithOptions:
    sets: list[OptionSet] = field(default_factory=list)
    options: dict[int, list[Option]] = field(default_factory=dict)


@dataclass(frozen=True)
class OptionOrderUpdate:
    option_id: int
    display_order: int


@dataclass(frozen=True)
class NewOption:
    label: str
    score: Optional[float] = None
    report_category: Optional[ReportCategory] = None


@dataclass(frozen=True)
class NewOptionSet:
    """A set plus its options, created together."""

    name: str
    set_key: str
    is_scored: bool
    report_category: ReportCategory
    score_step: Optional[float] = None
    options: tuple[NewOption, ...] = ()


@dataclass(frozen=True)
class FeedPresetSummary:
    preset_id: int
    name: str
    set_count: int = 0
    option_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
