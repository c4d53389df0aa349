from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Profile
from .repository import ProfileRepository

_PROFILE_COLUMNS = "id, tenant_id, username, password_hash, role, name, display_name, calendar_color, is_active"


def _to_profile(row: dict) -> Profile:
    return Profile(
        profile_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        name=row["name"],
        display_name=row.get("display_name"),
        calendar_color=row.get("calendar_color"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, profile_id: int) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE id=%s", (profile_id,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def get_by_username(self, username: str) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE username=%s", (username,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def list_by_role(self, tenant_id: int, role: str) -> Sequence[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_PROFILE_COLUMNS}
                FROM profiles
                WHERE tenant_id=%s AND role=%s AND is_active=1
                ORDER BY name
                """,
                (tenant_id, role),
            )
            return [_to_profile(r) for r in fetchall(cur)]
