from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Profile role used for permission checks."""

    OWNER = "owner"
    TEACHER = "teacher"
    MANAGER = "manager"


class AttendanceStatus(str, Enum):
    """Attendance status stored on a student feed."""

    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


class SessionType(str, Enum):
    REGULAR = "regular"
    MAKEUP = "makeup"


class TransferScope(str, Enum):
    """How far a student move reaches.

    THIS_DAY moves a single block, SAME_GROUP moves every recurring block
    sharing the assignment's group key.
    """

    THIS_DAY = "this_day"
    SAME_GROUP = "same_group"


class TransferStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ClassChangeStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


class MakeupStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReportCategory(str, Enum):
    """Fixed categories an option set or option reports under."""

    STUDY = "study"
    ATTITUDE = "attitude"
    ATTENDANCE = "attendance"
    NONE = "none"


class ReportStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    REVIEWED = "reviewed"
    SENT = "sent"


class SendMethod(str, Enum):
    KAKAO = "kakao"
    PDF = "pdf"
    PRINT = "print"


class MessageTone(str, Enum):
    """Voice used for generated report sentences."""

    FORMAL = "formal"
    FRIENDLY = "friendly"
    CONCISE = "concise"
