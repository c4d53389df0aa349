from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Protocol, Sequence

from .model import FeedValue, FeedValueInput, FeedWrite, StudentFeed


class FeedRepository(Protocol):
    def find_regular(self, tenant_id: int, *, class_id: int, student_id: int, feed_date: date) -> Optional[StudentFeed]:
        raise NotImplementedError

    def find_by_ticket(self, tenant_id: int, ticket_id: int) -> Optional[StudentFeed]:
        raise NotImplementedError

    def save(
        self,
        tenant_id: int,
        write: FeedWrite,
        *,
        feed_id: Optional[int],
        values: Sequence[FeedValueInput],
    ) -> int:
        """Insert (feed_id None) or update the feed and replace its values, in one transaction."""
        raise NotImplementedError

    def list_for_class_date(self, tenant_id: int, class_id: int, feed_date: date) -> Sequence[StudentFeed]:
        raise NotImplementedError

    def list_for_student_range(self, tenant_id: int, student_id: int, start: date, end: date) -> Sequence[StudentFeed]:
        raise NotImplementedError

    def list_values(self, tenant_id: int, feed_ids: Sequence[int]) -> Sequence[FeedValue]:
        raise NotImplementedError

    def latest_progress(self, tenant_id: int, student_ids: Sequence[int], *, before: date) -> Mapping[int, str]:
        raise NotImplementedError


class IdempotencyRepository(Protocol):
    def get(self, tenant_id: int, key: str, *, now: datetime) -> Optional[dict]:
        """Stored response of an unexpired key."""
        raise NotImplementedError

    def put(self, tenant_id: int, key: str, response: dict, *, expires_at: datetime) -> None:
        raise NotImplementedError
