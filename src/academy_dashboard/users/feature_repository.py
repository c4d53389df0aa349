from __future__ import annotations

from datetime import datetime
from typing import Protocol


class FeatureRepository(Protocol):
    def is_enabled(self, tenant_id: int, feature_key: str, *, at: datetime) -> bool:
        raise NotImplementedError
