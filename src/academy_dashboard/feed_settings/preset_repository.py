from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import FeedPresetSummary, NewOptionSet


class FeedPresetRepository(Protocol):
    def create(self, *, tenant_id: int, name: str, created_by: int, sets: Sequence[NewOptionSet]) -> int:
        """Store the preset with its sets and options; a taken name raises ConflictError."""
        raise NotImplementedError

    def list_summaries(self, tenant_id: int) -> Sequence[FeedPresetSummary]:
        raise NotImplementedError

    def load_sets(self, tenant_id: int, preset_id: int) -> Optional[list[NewOptionSet]]:
        """None when the preset does not belong to the tenant."""
        raise NotImplementedError

    def delete(self, tenant_id: int, preset_id: int) -> bool:
        raise NotImplementedError
