from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import ReportStatus, SendMethod
from .model import MonthlyReport, ReportFilter, WeeklyReportSettings


class ReportRepository(Protocol):
    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        report_year: int,
        report_month: int,
        template_type: int,
        summaries: Mapping[str, Any],
        created_by: int,
    ) -> int:
        """Raises ConflictError when the student already has a live report for the month."""
        raise NotImplementedError

    def get(self, tenant_id: int, report_id: int) -> Optional[MonthlyReport]:
        raise NotImplementedError

    def find_live(self, tenant_id: int, student_id: int, year: int, month: int) -> Optional[MonthlyReport]:
        raise NotImplementedError

    def list_view(self, tenant_id: int, report_filter: ReportFilter) -> Sequence[dict]:
        raise NotImplementedError

    def update_fields(self, tenant_id: int, report_id: int, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def update_status(
        self,
        tenant_id: int,
        report_id: int,
        *,
        status: ReportStatus,
        sent_at: Optional[datetime] = None,
        sent_method: Optional[SendMethod] = None,
    ) -> None:
        raise NotImplementedError

    def soft_delete(self, tenant_id: int, report_id: int, *, at: datetime) -> bool:
        raise NotImplementedError


class ReportSettingsRepository(Protocol):
    def get_template_type(self, tenant_id: int) -> Optional[int]:
        raise NotImplementedError

    def get_weekly_settings(self, tenant_id: int) -> WeeklyReportSettings:
        """Thresholds and message tone; defaults when the academy saved none."""
        raise NotImplementedError
