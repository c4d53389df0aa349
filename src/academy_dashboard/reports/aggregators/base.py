from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from ...feed_settings.model import OptionSet
from ...feeds.model import FeedValue, StudentFeed
from ..model import MonthlySummary


class MonthlyAggregator(ABC):
    """Aggregator interface (Strategy Pattern for monthly summaries)."""

    @abstractmethod
    def aggregate(
        self,
        feeds: Sequence[StudentFeed],
        values: Sequence[FeedValue],
        sets: Mapping[int, OptionSet],
    ) -> MonthlySummary:
        raise NotImplementedError
