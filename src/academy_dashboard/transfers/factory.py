from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import TransferScope
from .scopes.base import MoveScope
from .scopes.same_group import SameGroupScope
from .scopes.this_day import ThisDayScope


@dataclass
class MoveScopeFactory:
    """Factory Pattern: choose the move strategy for a transfer scope."""

    def for_scope(self, scope: TransferScope) -> MoveScope:
        if scope == TransferScope.SAME_GROUP:
            return SameGroupScope()
        return ThisDayScope()
