from __future__ import annotations

from datetime import datetime

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .feature_repository import FeatureRepository


class MySQLFeatureRepository(FeatureRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_enabled(self, tenant_id: int, feature_key: str, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT is_enabled, expires_at
                FROM tenant_features
                WHERE tenant_id=%s AND feature_key=%s
                """,
                (tenant_id, feature_key),
            )
            row = fetchone(cur)
            if not row or not row.get("is_enabled"):
                return False
            expires_at = row.get("expires_at")
            return expires_at is None or expires_at > at
