from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Profile:
    """A dashboard user belonging to one academy (tenant)."""

    profile_id: int
    tenant_id: int
    username: str
    password_hash: str
    role: Role
    name: str
    display_name: Optional[str] = None
    calendar_color: Optional[str] = None
    is_active: bool = True

    @property
    def label(self) -> str:
        return self.display_name or self.name


@dataclass(frozen=True)
class ActorContext:
    """Identity every service operation acts on behalf of."""

    user_id: int
    tenant_id: int
    role: Role

    @property
    def is_owner(self) -> bool:
        return self.role == Role.OWNER
