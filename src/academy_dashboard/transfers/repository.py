from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import TransferScope, TransferStatus
from .model import Approval, ClassChangeRequest, MovePlan, TransferRequest


class TransferRequestRepository(Protocol):
    def create(
        self,
        *,
        tenant_id: int,
        student_id: int,
        effective_date: date,
        from_schedule_id: int,
        to_schedule_id: int,
        from_class_id: Optional[int],
        to_class_id: Optional[int],
        from_teacher_id: Optional[int],
        to_teacher_id: Optional[int],
        scope: TransferScope,
        group_key: Optional[str],
        requested_by: int,
        reason: Optional[str],
    ) -> int:
        """Raise ConflictError when the same move is already pending."""
        raise NotImplementedError

    def get(self, tenant_id: int, request_id: int) -> Optional[TransferRequest]:
        raise NotImplementedError

    def list_pending_view(self, tenant_id: int) -> Sequence[dict]:
        raise NotImplementedError

    def close(
        self,
        tenant_id: int,
        request_id: int,
        *,
        status: TransferStatus,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        review_note: Optional[str] = None,
    ) -> bool:
        """Move a pending request to a final status; False when it was not pending."""
        raise NotImplementedError


class ClassChangeRepository(Protocol):
    def create(self, *, tenant_id: int, student_id: int, message: Optional[str], requested_by: int) -> int:
        raise NotImplementedError

    def get(self, tenant_id: int, request_id: int) -> Optional[ClassChangeRequest]:
        raise NotImplementedError

    def list_pending_view(self, tenant_id: int) -> Sequence[dict]:
        raise NotImplementedError

    def mark_done(self, tenant_id: int, request_id: int, *, at: datetime) -> bool:
        raise NotImplementedError


class MoveApplier(Protocol):
    """Applies a MovePlan (and optionally approves a request) in one transaction."""

    def apply(self, tenant_id: int, plan: MovePlan, *, approval: Optional[Approval] = None) -> int:
        raise NotImplementedError
