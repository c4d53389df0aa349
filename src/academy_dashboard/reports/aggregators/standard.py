from __future__ import annotations

from typing import Mapping, Sequence

from ...common.datetime_utils import round_half_up, week_of_month
from ...core.enums import AttendanceStatus
from ...feed_settings.model import OptionSet
from ...feeds.model import FeedValue, StudentFeed
from ..model import (
    AttendanceSummary,
    ExamRecord,
    ExamSummary,
    MonthlySummary,
    ProgressItem,
    ScoreSummary,
)
from .base import MonthlyAggregator


class StandardMonthlyAggregator(MonthlyAggregator):
    """Standard rule set.

    - only feeds counted in stats take part (makeup feeds are not)
    - scores: option values of scored sets shown in weekly stats, averaged per stats category
    - exam: values without an option
    """

    def aggregate(
        self,
        feeds: Sequence[StudentFeed],
        values: Sequence[FeedValue],
        sets: Mapping[int, OptionSet],
    ) -> MonthlySummary:
        counted = [f for f in feeds if f.is_counted_in_stats]
        feed_dates = {f.feed_id: f.feed_date for f in counted}
        counted_values = [v for v in values if v.feed_id in feed_dates]
        return MonthlySummary(
            attendance=self.attendance(counted),
            scores=self.scores(counted_values, sets),
            progress=self.progress(counted),
            exam=self.exam(counted_values, sets, feed_dates),
        )

    @staticmethod
    def attendance(feeds: Sequence[StudentFeed]) -> AttendanceSummary:
        total = len(feeds)
        attended = sum(1 for f in feeds if f.attendance_status == AttendanceStatus.PRESENT)
        late = sum(1 for f in feeds if f.attendance_status == AttendanceStatus.LATE)
        absent = sum(1 for f in feeds if f.attendance_status == AttendanceStatus.ABSENT)
        rate = round_half_up(attended / total * 100) if total else 0
        return AttendanceSummary(total_days=total, attended=attended, late=late, absent=absent, rate=rate)

    @staticmethod
    def scores(values: Sequence[FeedValue], sets: Mapping[int, OptionSet]) -> dict[str, ScoreSummary]:
        buckets: dict[str, list[float]] = {}
        for v in values:
            option_set = sets.get(v.set_id)
            if v.option_id is None or v.score is None or option_set is None:
                continue
            if not (option_set.is_scored and option_set.is_in_weekly_stats):
                continue
            buckets.setdefault(option_set.stats_category or option_set.name, []).append(float(v.score))
        return {
            category: ScoreSummary(average=round_half_up(sum(scores) / len(scores)), count=len(scores))
            for category, scores in buckets.items()
        }

    @staticmethod
    def progress(feeds: Sequence[StudentFeed]) -> list[ProgressItem]:
        latest: dict[int, StudentFeed] = {}
        for f in sorted(feeds, key=lambda f: (f.feed_date, f.feed_id)):
            if f.progress_text and f.progress_text.strip():
                latest[week_of_month(f.feed_date)] = f
        return [ProgressItem(week=week, content=latest[week].progress_text.strip()) for week in sorted(latest)]

    @staticmethod
    def exam(values: Sequence[FeedValue], sets: Mapping[int, OptionSet], feed_dates: Mapping) -> ExamSummary:
        records = sorted(
            (
                ExamRecord(
                    date=feed_dates[v.feed_id],
                    exam_name=sets[v.set_id].name if v.set_id in sets else "",
                    score=float(v.score),
                )
                for v in values
                if v.option_id is None and v.score is not None
            ),
            key=lambda r: r.date,
        )
        if not records:
            return ExamSummary()

        highest = records[0]
        lowest = records[0]
        for r in records[1:]:
            if r.score > highest.score:
                highest = r
            if r.score < lowest.score:
                lowest = r
        return ExamSummary(
            average=round_half_up(sum(r.score for r in records) / len(records)),
            highest=highest,
            lowest=lowest,
            count=len(records),
            records=records,
        )
