from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Union

from ..core.constants import DEFAULT_STRENGTH_THRESHOLD, DEFAULT_WEAKNESS_THRESHOLD
from ..core.enums import MessageTone, ReportStatus, SendMethod


@dataclass(frozen=True)
class AttendanceSummary:
    total_days: int = 0
    attended: int = 0
    late: int = 0
    absent: int = 0
    rate: int = 0


@dataclass(frozen=True)
class ScoreSummary:
    average: int
    count: int


@dataclass(frozen=True)
class ProgressItem:
    week: int
    content: str


@dataclass(frozen=True)
class ExamRecord:
    date: date
    exam_name: str
    score: float


@dataclass(frozen=True)
class ExamSummary:
    average: int = 0
    highest: Optional[ExamRecord] = None
    lowest: Optional[ExamRecord] = None
    count: int = 0
    records: list[ExamRecord] = field(default_factory=list)


@dataclass(frozen=True)
class MonthlySummary:
    """Everything a monthly report shows, aggregated from one student's feeds."""

    attendance: AttendanceSummary = field(default_factory=AttendanceSummary)
    scores: dict[str, ScoreSummary] = field(default_factory=dict)
    progress: list[ProgressItem] = field(default_factory=list)
    exam: ExamSummary = field(default_factory=ExamSummary)


@dataclass(frozen=True)
class MonthlyReport:
    report_id: int
    tenant_id: int
    student_id: int
    report_year: int
    report_month: int
    template_type: int
    status: ReportStatus
    attendance_summary: dict = field(default_factory=dict)
    score_summary: dict = field(default_factory=dict)
    progress_summary: list = field(default_factory=list)
    exam_summary: dict = field(default_factory=dict)
    teacher_praise: Optional[str] = None
    teacher_improve: Optional[str] = None
    teacher_comment: Optional[str] = None
    parent_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    sent_method: Optional[SendMethod] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class MonthlyReportView:
    id: int
    student_id: int
    student_name: str
    report_year: int
    report_month: int
    template_type: int
    status: ReportStatus
    sent_at: Optional[datetime] = None
    sent_method: Optional[SendMethod] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReportFilter:
    year: Optional[int] = None
    month: Optional[int] = None
    student_id: Optional[int] = None
    status: Optional[ReportStatus] = None


@dataclass(frozen=True)
class ClassReportResult:
    created: int
    skipped: int
    report_ids: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklyReportSettings:
    strength_threshold: int = DEFAULT_STRENGTH_THRESHOLD
    weakness_threshold: int = DEFAULT_WEAKNESS_THRESHOLD
    message_tone: MessageTone = MessageTone.FRIENDLY


@dataclass(frozen=True)
class ScoreCategoryStat:
    stats_category: str
    set_name: str
    avg_score: int
    sample_count: int
    is_archived: bool = False
    is_scored: bool = True


@dataclass(frozen=True)
class TextCategoryStat:
    stats_category: str
    set_name: str
    top_option: str
    top_count: int
    total_count: int
    is_archived: bool = False
    is_scored: bool = False


CategoryStat = Union[ScoreCategoryStat, TextCategoryStat]


@dataclass(frozen=True)
class ConfigChange:
    """The set of items filled in changed on `change_date`."""

    change_date: date
    before_items: list[str]
    after_items: list[str]


@dataclass(frozen=True)
class StrengthWeakness:
    strengths: list[str]
    weaknesses: list[str]
    next_goal: str


@dataclass(frozen=True)
class WeeklyReport:
    student_id: int
    student_name: str
    display_code: str
    start_date: date
    end_date: date
    category_stats: list[CategoryStat]
    overall_avg_score: Optional[int]
    analysis: StrengthWeakness
    generated_at: datetime
    config_changes: list[ConfigChange] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklyBulkResult:
    reports: list[WeeklyReport] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


EDITABLE_FIELDS = ("template_type", "teacher_praise", "teacher_improve", "teacher_comment", "parent_message", "status")


def summary_to_columns(summary: MonthlySummary) -> dict[str, Any]:
    """JSON column values of a report, keyed by column name."""

    def record(r: Optional[ExamRecord]) -> Optional[dict]:
        if r is None:
            return None
        return {"date": r.date.isoformat(), "exam_name": r.exam_name, "score": r.score}

    exam = summary.exam
    return {
        "attendance_summary": {
            "total_days": summary.attendance.total_days,
            "attended": summary.attendance.attended,
            "late": summary.attendance.late,
            "absent": summary.attendance.absent,
            "rate": summary.attendance.rate,
        },
        "score_summary": {k: {"average": v.average, "count": v.count} for k, v in summary.scores.items()},
        "progress_summary": [{"week": p.week, "content": p.content} for p in summary.progress],
        "exam_summary": {
            "summary": {
                "average": exam.average,
                "highest": record(exam.highest),
                "lowest": record(exam.lowest),
                "count": exam.count,
            },
            "records": [record(r) for r in exam.records],
        },
    }
