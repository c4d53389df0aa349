from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Profile


class ProfileRepository(Protocol):
    """Repository interface for dashboard profiles.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, profile_id: int) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Profile]:
        raise NotImplementedError

    def list_by_role(self, tenant_id: int, role: str) -> Sequence[Profile]:
        raise NotImplementedError
