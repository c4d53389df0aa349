from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Mapping, Optional, Sequence

from ...classes.model import Student
from ...common.datetime_utils import round_half_up
from ...core.enums import MessageTone
from ...feed_settings.model import Option, OptionSet
from ...feeds.model import FeedValue, StudentFeed
from ..model import (
    CategoryStat,
    ConfigChange,
    ScoreCategoryStat,
    StrengthWeakness,
    TextCategoryStat,
    WeeklyReport,
    WeeklyReportSettings,
)

PRAISE_TEMPLATES: dict[MessageTone, tuple[str, ...]] = {
    MessageTone.FORMAL: (
        "Balanced progress in every area this period. Consistency is the greatest strength.",
        "Every learning goal was completed diligently with nothing to improve. Please keep it up.",
        "Steady achievement across all items and continued growth. An excellent attitude to learning.",
    ),
    MessageTone.FRIENDLY: (
        "Great job again! Doing well in every area, just keep going like this!",
        "Careful, thorough work with nothing extra to watch out for. Keep it up next time!",
        "Wow, strong results across the board! Your steady effort really shows!",
    ),
    MessageTone.CONCISE: (
        "All items good. Keep the current pace.",
        "Nothing to improve. Stay consistent.",
        "Stable in every area. Maintain.",
    ),
}

_GOAL_PREFIX = {
    MessageTone.FORMAL: "Focused study needed: ",
    MessageTone.FRIENDLY: "Next time just pay attention to: ",
    MessageTone.CONCISE: "",
}


def _value_score(v: FeedValue, options: Mapping[int, Option]) -> Optional[float]:
    if v.score is not None:
        return float(v.score)
    option = options.get(v.option_id) if v.option_id is not None else None
    return float(option.score) if option and option.score is not None else None


class WeeklyAggregator:
    """Per-item statistics over a date range of regular feeds.

    - scored items: average of the stored score, else the option's score
    - text items: the most chosen option (first one seen wins a tie)
    - strengths are averages above the strength threshold, weaknesses below
      the weakness threshold
    """

    def __init__(self, *, pick: Callable[[Sequence[str]], str] = random.choice):
        self._pick = pick

    def build(
        self,
        student: Student,
        *,
        start_date,
        end_date,
        feeds: Sequence[StudentFeed],
        values: Sequence[FeedValue],
        stats_sets: Mapping[int, OptionSet],
        options: Mapping[int, Option],
        settings: WeeklyReportSettings,
        generated_at: datetime,
    ) -> WeeklyReport:
        stats = self.category_stats(values, stats_sets, options)
        averages = [s.avg_score for s in stats if isinstance(s, ScoreCategoryStat)]
        return WeeklyReport(
            student_id=student.student_id,
            student_name=student.name,
            display_code=student.display_code or "",
            start_date=start_date,
            end_date=end_date,
            category_stats=stats,
            overall_avg_score=round_half_up(sum(averages) / len(averages)) if averages else None,
            analysis=self.analyze(stats, settings),
            generated_at=generated_at,
            config_changes=self.config_changes(feeds, values, stats_sets),
        )

    @staticmethod
    def category_stats(
        values: Sequence[FeedValue], stats_sets: Mapping[int, OptionSet], options: Mapping[int, Option]
    ) -> list[CategoryStat]:
        out: list[CategoryStat] = []
        for set_id in sorted(stats_sets):
            option_set = stats_sets[set_id]
            category = option_set.stats_category or option_set.name
            set_values = [v for v in values if v.set_id == set_id]

            if option_set.is_scored:
                scores = [s for s in (_value_score(v, options) for v in set_values) if s is not None]
                if scores:
                    out.append(
                        ScoreCategoryStat(
                            stats_category=category,
                            set_name=option_set.name,
                            avg_score=round_half_up(sum(scores) / len(scores)),
                            sample_count=len(scores),
                            is_archived=option_set.is_archived,
                        )
                    )
                continue

            counts: dict[int, int] = {}
            for v in set_values:
                if v.option_id is not None and v.option_id in options:
                    counts[v.option_id] = counts.get(v.option_id, 0) + 1
            if not counts:
                continue
            top_id = None
            for option_id, count in counts.items():
                if top_id is None or count > counts[top_id]:
                    top_id = option_id
            out.append(
                TextCategoryStat(
                    stats_category=category,
                    set_name=option_set.name,
                    top_option=options[top_id].label,
                    top_count=counts[top_id],
                    total_count=sum(counts.values()),
                    is_archived=option_set.is_archived,
                )
            )
        return out

    def analyze(self, stats: Sequence[CategoryStat], settings: WeeklyReportSettings) -> StrengthWeakness:
        scored = [s for s in stats if isinstance(s, ScoreCategoryStat)]
        strengths = [s.stats_category for s in scored if s.avg_score > settings.strength_threshold]
        weaknesses = [s.stats_category for s in scored if s.avg_score < settings.weakness_threshold]

        tone = settings.message_tone
        if not weaknesses:
            next_goal = self._pick(PRAISE_TEMPLATES[tone])
        else:
            next_goal = _GOAL_PREFIX[tone] + ", ".join(weaknesses)
        return StrengthWeakness(strengths=strengths, weaknesses=weaknesses, next_goal=next_goal)

    @staticmethod
    def config_changes(
        feeds: Sequence[StudentFeed], values: Sequence[FeedValue], stats_sets: Mapping[int, OptionSet]
    ) -> list[ConfigChange]:
        """Dates on which the filled-in stats items differ from the previous feed's."""
        by_feed: dict[int, set[int]] = {}
        for v in values:
            if v.set_id not in stats_sets:
                continue
            by_feed.setdefault(v.feed_id, set()).add(v.set_id)

        groups: list[tuple] = []
        for f in sorted(feeds, key=lambda f: (f.feed_date, f.feed_id)):
            set_ids = frozenset(by_feed.get(f.feed_id, ()))
            if not set_ids:
                continue
            if not groups or groups[-1][1] != set_ids:
                groups.append((f.feed_date, set_ids))

        def names(set_ids) -> list[str]:
            return [stats_sets[i].stats_category or stats_sets[i].name for i in sorted(set_ids)]

        return [
            ConfigChange(change_date=after[0], before_items=names(before[1]), after_items=names(after[1]))
            for before, after in zip(groups, groups[1:])
        ]
