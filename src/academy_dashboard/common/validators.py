from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from ..core.enums import ReportCategory
from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_positive_id(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if v <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return v


def require_day_of_week(value) -> int:
    try:
        day = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Day of week is invalid")
    if day < 0 or day > 6:
        raise ValidationError("Day of week must be between 0 (Sun) and 6 (Sat)")
    return day


def parse_hhmm(value: Optional[str], field_name: str) -> time:
    v = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"{field_name} must be HH:MM")


def require_category(value) -> ReportCategory:
    try:
        return ReportCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ReportCategory)
        raise ValidationError(f"Category must be one of: {allowed}")
