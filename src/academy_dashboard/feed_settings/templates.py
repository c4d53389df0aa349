"""Starter option-set templates an owner can apply to a config."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import ReportCategory
from .model import NewOption, NewOptionSet

SCORE_STEP_PRECISE = 5
SCORE_STEP_GENERAL = 10


@dataclass(frozen=True)
class FeedTemplate:
    name: str
    description: str
    sets: tuple[NewOptionSet, ...] = ()


FEED_TEMPLATES: dict[str, FeedTemplate] = {
    "custom": FeedTemplate(name="Custom", description="Start from an empty list"),
    "basic": FeedTemplate(
        name="Basic (10-point)",
        description="General academies",
        sets=(
            NewOptionSet(
                name="Homework",
                set_key="homework",
                is_scored=True,
                score_step=SCORE_STEP_GENERAL,
                report_category=ReportCategory.STUDY,
                options=(
                    NewOption("Done", 100),
                    NewOption("Fair", 80),
                    NewOption("Poor", 50),
                    NewOption("Not done", 0),
                ),
            ),
            NewOptionSet(
                name="Attitude",
                set_key="attitude",
                is_scored=True,
                score_step=SCORE_STEP_GENERAL,
                report_category=ReportCategory.ATTITUDE,
                options=(
                    NewOption("Active", 100),
                    NewOption("Fair", 70),
                    NewOption("Distracted", 40),
                ),
            ),
        ),
    ),
    "english": FeedTemplate(
        name="English (5-point)",
        description="Language schools",
        sets=(
            NewOptionSet(
                name="Vocabulary test",
                set_key="vocabulary",
                is_scored=True,
                score_step=SCORE_STEP_PRECISE,
                report_category=ReportCategory.STUDY,
                options=(
                    NewOption("Pass", 100),
                    NewOption("1-2 wrong", 90),
                    NewOption("Retest", 50),
                ),
            ),
            NewOptionSet(
                name="Pronunciation",
                set_key="pronunciation",
                is_scored=True,
                score_step=SCORE_STEP_PRECISE,
                report_category=ReportCategory.STUDY,
                options=(
                    NewOption("Native-like", 100),
                    NewOption("Good", 85),
                    NewOption("Needs work", 70),
                ),
            ),
        ),
    ),
    "text": FeedTemplate(
        name="Text",
        description="No scores",
        sets=(
            NewOptionSet(
                name="Attendance",
                set_key="attendance",
                is_scored=False,
                report_category=ReportCategory.ATTENDANCE,
                options=(NewOption("Arrived"), NewOption("Late"), NewOption("Absent")),
            ),
            NewOptionSet(
                name="Notes",
                set_key="notes",
                is_scored=False,
                report_category=ReportCategory.NONE,
                options=(NewOption("In good shape"), NewOption("Tired"), NewOption("Focused")),
            ),
        ),
    ),
}
