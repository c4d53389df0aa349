from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ReportCategory
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import FeedConfig, NewOptionSet, Option, OptionOrderUpdate, OptionSet
from .repository import FeedSettingsRepository

_SET_COLUMNS = (
    "id, tenant_id, config_id, name, set_key, category, is_scored, score_step, is_active, "
    "default_report_category, is_in_weekly_stats, stats_category, deleted_at"
)
_OPTION_COLUMNS = "id, tenant_id, set_id, label, score, display_order, is_active, report_category"


def _to_config(row: dict) -> FeedConfig:
    return FeedConfig(
        config_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        config_name=row["config_name"],
        is_active=bool(row["is_active"]),
        applied_at=row.get("applied_at"),
    )


def _to_set(row: dict) -> OptionSet:
    return OptionSet(
        set_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        config_id=int(row["config_id"]),
        name=row["name"],
        set_key=row["set_key"],
        category=row.get("category"),
        is_scored=bool(row.get("is_scored")),
        score_step=float(row["score_step"]) if row.get("score_step") is not None else None,
        is_active=bool(row.get("is_active")),
        default_report_category=ReportCategory(row.get("default_report_category") or "none"),
        is_in_weekly_stats=bool(row.get("is_in_weekly_stats")),
        stats_category=row.get("stats_category"),
        is_archived=row.get("deleted_at") is not None,
    )


def _to_option(row: dict) -> Option:
    return Option(
        option_id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        set_id=int(row["set_id"]),
        label=row["label"],
        score=float(row["score"]) if row.get("score") is not None else None,
        display_order=int(row.get("display_order") or 0),
        is_active=bool(row.get("is_active")),
        report_category=ReportCategory(row.get("report_category") or "none"),
    )


def _insert_set(cur, tenant_id: int, config_id: int, new_set: NewOptionSet) -> int:
    cur.execute(
        """
        INSERT INTO feed_option_sets(
            tenant_id, config_id, name, set_key, category, is_scored, score_step,
            is_active, default_report_category
        )
        VALUES(%s,%s,%s,%s,%s,%s,%s,1,%s)
        """,
        (
            tenant_id,
            config_id,
            new_set.name,
            new_set.set_key,
            new_set.report_category.value,
            int(new_set.is_scored),
            new_set.score_step,
            new_set.report_category.value,
        ),
    )
    set_id = int(cur.lastrowid)
    if new_set.options:
        cur.executemany(
            """
            INSERT INTO feed_options(tenant_id, set_id, label, score, display_order, is_active, report_category)
            VALUES(%s,%s,%s,%s,%s,1,%s)
            """,
            [
                (
                    tenant_id,
                    set_id,
                    o.label,
                    o.score,
                    idx,
                    (o.report_category or new_set.report_category).value,
                )
                for idx, o in enumerate(new_set.options)
            ],
        )
    return set_id


def _archive(cur, tenant_id: int, config_id: int, at: datetime) -> int:
    cur.execute(
        "SELECT id FROM feed_option_sets WHERE tenant_id=%s AND config_id=%s AND deleted_at IS NULL",
        (tenant_id, config_id),
    )
    ids = [int(r["id"]) for r in fetchall(cur)]
    if not ids:
        return 0
    cur.execute(
        f"UPDATE feed_option_sets SET deleted_at=%s, is_active=0 WHERE id IN ({in_clause(ids)})",
        (at, *ids),
    )
    cur.execute(f"UPDATE feed_options SET is_active=0 WHERE set_id IN ({in_clause(ids)})", tuple(ids))
    return len(ids)


class MySQLFeedSettingsRepository(FeedSettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active_config(self, tenant_id: int) -> Optional[FeedConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, tenant_id, config_name, is_active, applied_at FROM feed_configs
                WHERE tenant_id=%s AND is_active=1 AND deleted_at IS NULL
                ORDER BY id DESC LIMIT 1
                """,
                (tenant_id,),
            )
            row = fetchone(cur)
            return _to_config(row) if row else None

    def get_config(self, tenant_id: int, config_id: int) -> Optional[FeedConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, tenant_id, config_name, is_active, applied_at FROM feed_configs
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (tenant_id, config_id),
            )
            row = fetchone(cur)
            return _to_config(row) if row else None

    def create_config(self, *, tenant_id: int, config_name: str, applied_at: datetime) -> FeedConfig:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO feed_configs(tenant_id, config_name, is_active, applied_at) VALUES(%s,%s,1,%s)",
                (tenant_id, config_name, applied_at),
            )
            return FeedConfig(
                config_id=int(cur.lastrowid),
                tenant_id=tenant_id,
                config_name=config_name,
                is_active=True,
                applied_at=applied_at,
            )

    def list_sets(self, tenant_id: int, config_id: int, *, active_only: bool = False) -> Sequence[OptionSet]:
        sql = f"SELECT {_SET_COLUMNS} FROM feed_option_sets WHERE tenant_id=%s AND config_id=%s AND deleted_at IS NULL"
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY created_at, id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (tenant_id, config_id))
            return [_to_set(r) for r in fetchall(cur)]

    def get_set(self, tenant_id: int, set_id: int) -> Optional[OptionSet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SET_COLUMNS} FROM feed_option_sets WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (tenant_id, set_id),
            )
            row = fetchone(cur)
            return _to_set(row) if row else None

    def list_sets_by_ids(self, tenant_id: int, set_ids: Sequence[int]) -> Sequence[OptionSet]:
        if not set_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SET_COLUMNS} FROM feed_option_sets WHERE tenant_id=%s AND id IN ({in_clause(set_ids)}) ORDER BY id",
                (tenant_id, *set_ids),
            )
            return [_to_set(r) for r in fetchall(cur)]

    def create_set(self, *, tenant_id: int, config_id: int, new_set: NewOptionSet) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert_set(cur, tenant_id, config_id, new_set)

    def rename_set(self, tenant_id: int, set_id: int, name: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE feed_option_sets SET name=%s WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (name, tenant_id, set_id),
            )
            return cur.rowcount > 0

    def set_set_active(self, tenant_id: int, set_id: int, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE feed_option_sets SET is_active=%s WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL",
                (int(is_active), tenant_id, set_id),
            )
            return cur.rowcount > 0

    def change_set_category(self, tenant_id: int, set_id: int, category: ReportCategory) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE feed_option_sets SET default_report_category=%s
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (category.value, tenant_id, set_id),
            )
            cur.execute(
                "UPDATE feed_options SET report_category=%s WHERE tenant_id=%s AND set_id=%s",
                (category.value, tenant_id, set_id),
            )
            return True

    def set_weekly_stats(
        self, tenant_id: int, set_id: int, *, is_in_weekly_stats: bool, stats_category: Optional[str]
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE feed_option_sets SET is_in_weekly_stats=%s, stats_category=%s
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (int(is_in_weekly_stats), stats_category, tenant_id, set_id),
            )
            return cur.rowcount > 0

    def soft_delete_set(self, tenant_id: int, set_id: int, *, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE feed_option_sets SET deleted_at=%s, is_active=0
                WHERE tenant_id=%s AND id=%s AND deleted_at IS NULL
                """,
                (at, tenant_id, set_id),
            )
            if cur.rowcount == 0:
                return False
            cur.execute("UPDATE feed_options SET is_active=0 WHERE tenant_id=%s AND set_id=%s", (tenant_id, set_id))
            return True

    def archive_sets(self, tenant_id: int, config_id: int, *, at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return _archive(cur, tenant_id, config_id, at)

    def replace_sets(
        self, tenant_id: int, config_id: int, new_sets: Sequence[NewOptionSet], *, at: datetime
    ) -> list[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            _archive(cur, tenant_id, config_id, at)
            return [_insert_set(cur, tenant_id, config_id, s) for s in new_sets]

    def list_options(self, tenant_id: int, set_ids: Sequence[int], *, active_only: bool = True) -> Sequence[Option]:
        if not set_ids:
            return []
        sql = f"SELECT {_OPTION_COLUMNS} FROM feed_options WHERE tenant_id=%s AND set_id IN ({in_clause(set_ids)})"
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY set_id, display_order, id"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (tenant_id, *set_ids))
            return [_to_option(r) for r in fetchall(cur)]

    def get_option(self, tenant_id: int, option_id: int) -> Optional[Option]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_OPTION_COLUMNS} FROM feed_options WHERE tenant_id=%s AND id=%s", (tenant_id, option_id))
            row = fetchone(cur)
            return _to_option(row) if row else None

    def create_option(
        self,
        *,
        tenant_id: int,
        set_id: int,
        label: str,
        score: Optional[float],
        display_order: int,
        category: ReportCategory,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO feed_options(tenant_id, set_id, label, score, display_order, is_active, report_category)
                VALUES(%s,%s,%s,%s,%s,1,%s)
                """,
                (tenant_id, set_id, label, score, display_order, category.value),
            )
            return int(cur.lastrowid)

    def update_option(self, tenant_id: int, option_id: int, *, label: str, score: Optional[float]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE feed_options SET label=%s, score=%s WHERE tenant_id=%s AND id=%s",
                (label, score, tenant_id, option_id),
            )
            return cur.rowcount > 0

    def deactivate_option(self, tenant_id: int, option_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE feed_options SET is_active=0 WHERE tenant_id=%s AND id=%s", (tenant_id, option_id))
            return cur.rowcount > 0

    def update_option_order(self, tenant_id: int, updates: Sequence[OptionOrderUpdate]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "UPDATE feed_options SET display_order=%s WHERE tenant_id=%s AND id=%s",
                [(u.display_order, tenant_id, u.option_id) for u in updates],
            )
            return len(updates)
