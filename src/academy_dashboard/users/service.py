from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import ActorContext, Profile
from .repository import ProfileRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    tenant_id: int
    name: str
    role: Role


class AuthService:
    """Use case: sign in and resolve the acting profile of a session."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def authenticate(self, username: str, password: str) -> SessionUser:
        username = require_non_empty(username, "Username")
        profile = self._profiles.get_by_username(username)
        if not profile or not profile.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(profile.password_hash, password or "")
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        logger.info("Profile %s signed in (tenant=%s)", profile.profile_id, profile.tenant_id)
        return SessionUser(
            user_id=profile.profile_id,
            tenant_id=profile.tenant_id,
            name=profile.label,
            role=profile.role,
        )

    def resolve_actor(self, user_id: int) -> ActorContext:
        profile = self._profiles.get_by_id(user_id)
        if not profile or not profile.is_active:
            raise AuthenticationError("Profile not found")
        return ActorContext(user_id=profile.profile_id, tenant_id=profile.tenant_id, role=profile.role)


class UserService:
    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def list_teachers(self, actor: ActorContext) -> Sequence[Profile]:
        return self._profiles.list_by_role(actor.tenant_id, Role.TEACHER.value)
