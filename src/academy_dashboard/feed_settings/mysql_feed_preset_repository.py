from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector

from ..core.enums import ReportCategory
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, is_duplicate_key
from .model import FeedPresetSummary, NewOption, NewOptionSet
from .preset_repository import FeedPresetRepository


def _score(value) -> Optional[float]:
    return float(value) if value is not None else None


class MySQLFeedPresetRepository(FeedPresetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, tenant_id: int, name: str, created_by: int, sets: Sequence[NewOptionSet]) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO feed_presets(tenant_id, name, created_by) VALUES(%s,%s,%s)",
                    (tenant_id, name, created_by),
                )
                preset_id = int(cur.lastrowid)
                for order, s in enumerate(sets):
                    cur.execute(
                        """
                        INSERT INTO feed_preset_sets(
                            preset_id, name, set_key, is_scored, score_step, default_report_category, display_order
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s)
                        """,
                        (
                            preset_id,
                            s.name,
                            s.set_key,
                            int(s.is_scored),
                            s.score_step,
                            s.report_category.value,
                            order,
                        ),
                    )
                    preset_set_id = int(cur.lastrowid)
                    if s.options:
                        cur.executemany(
                            """
                            INSERT INTO feed_preset_options(preset_set_id, label, score, report_category, display_order)
                            VALUES(%s,%s,%s,%s,%s)
                            """,
                            [
                                (
                                    preset_set_id,
                                    o.label,
                                    o.score,
                                    (o.report_category or s.report_category).value,
                                    idx,
                                )
                                for idx, o in enumerate(s.options)
                            ],
                        )
                return preset_id
        except mysql.connector.IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("A preset with that name already exists") from e
            raise

    def list_summaries(self, tenant_id: int) -> Sequence[FeedPresetSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT p.id, p.name, p.created_at, p.updated_at,
                       COUNT(DISTINCT s.id) AS set_count, COUNT(o.id) AS option_count
                FROM feed_presets p
                LEFT JOIN feed_preset_sets s ON s.preset_id = p.id
                LEFT JOIN feed_preset_options o ON o.preset_set_id = s.id
                WHERE p.tenant_id=%s
                GROUP BY p.id, p.name, p.created_at, p.updated_at
                ORDER BY p.updated_at DESC, p.id DESC
                """,
                (tenant_id,),
            )
            return [
                FeedPresetSummary(
                    preset_id=int(r["id"]),
                    name=r["name"],
                    set_count=int(r["set_count"] or 0),
                    option_count=int(r["option_count"] or 0),
                    created_at=r.get("created_at"),
                    updated_at=r.get("updated_at"),
                )
                for r in fetchall(cur)
            ]

    def load_sets(self, tenant_id: int, preset_id: int) -> Optional[list[NewOptionSet]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM feed_presets WHERE tenant_id=%s AND id=%s", (tenant_id, preset_id))
            if not fetchone(cur):
                return None
            cur.execute(
                """
                SELECT id, name, set_key, is_scored, score_step, default_report_category
                FROM feed_preset_sets WHERE preset_id=%s ORDER BY display_order, id
                """,
                (preset_id,),
            )
            set_rows = fetchall(cur)
            if not set_rows:
                return []

            ids = [int(r["id"]) for r in set_rows]
            cur.execute(
                f"""
                SELECT preset_set_id, label, score, report_category FROM feed_preset_options
                WHERE preset_set_id IN ({in_clause(ids)}) ORDER BY preset_set_id, display_order, id
                """,
                tuple(ids),
            )
            options: dict[int, list[NewOption]] = {}
            for r in fetchall(cur):
                options.setdefault(int(r["preset_set_id"]), []).append(
                    NewOption(r["label"], _score(r.get("score")), ReportCategory(r.get("report_category") or "none"))
                )

            return [
                NewOptionSet(
                    name=r["name"],
                    set_key=r["set_key"],
                    is_scored=bool(r.get("is_scored")),
                    report_category=ReportCategory(r.get("default_report_category") or "none"),
                    score_step=_score(r.get("score_step")),
                    options=tuple(options.get(int(r["id"]), ())),
                )
                for r in set_rows
            ]

    def delete(self, tenant_id: int, preset_id: int) -> bool:
        # sets and options go with it (ON DELETE CASCADE)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM feed_presets WHERE tenant_id=%s AND id=%s", (tenant_id, preset_id))
            return cur.rowcount > 0
