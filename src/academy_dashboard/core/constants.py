"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_IDEMPOTENCY_TTL_HOURS = 24

UNASSIGNED_LABEL = "Unassigned"
UNKNOWN_LABEL = "Unknown"
DEFAULT_TEACHER_COLOR = "#6366F1"
UNASSIGNED_LEGEND_COLOR = "#9CA3AF"

DEFAULT_CONFIG_NAME = "Default settings V1"
DEFAULT_MONTHLY_TEMPLATE = 1
MONTHLY_TEMPLATE_TYPES = (1, 2, 3, 4, 5)
DEFAULT_STRENGTH_THRESHOLD = 80
DEFAULT_WEAKNESS_THRESHOLD = 75

STUDENT_SEARCH_LIMIT = 50
MAKEUP_SEARCH_LIMIT = 10
MAKEUP_SEARCH_MIN_CHARS = 2

FEATURE_MAKEUP_SYSTEM = "makeup_system"
FEATURE_MONTHLY_REPORT = "monthly_report"

# Absence reason -> whether a makeup lesson is owed by default.
ABSENCE_REASON_SICK = "sick"
ABSENCE_REASON_FAMILY = "family"
ABSENCE_REASON_SCHOOL_EVENT = "school_event"
ABSENCE_REASON_UNEXCUSED = "unexcused"
ABSENCE_REASON_OTHER = "other"

DEFAULT_MAKEUP_BY_REASON = {
    ABSENCE_REASON_SICK: True,
    ABSENCE_REASON_SCHOOL_EVENT: True,
    ABSENCE_REASON_FAMILY: False,
    ABSENCE_REASON_UNEXCUSED: False,
    ABSENCE_REASON_OTHER: True,
}
