from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import FreezeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import PassFreeze
from .repository import FreezeRepository


class MySQLFreezeRepository(FreezeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_active(self, class_id: int) -> Optional[PassFreeze]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT freeze_id, class_id, teacher_id, freeze_type, started_at, ends_at, is_active
                FROM pass_freezes
                WHERE class_id=%s AND is_active=1
                ORDER BY started_at DESC
                LIMIT 1
                """,
                (int(class_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return PassFreeze(
                freeze_id=int(r["freeze_id"]),
                class_id=int(r["class_id"]),
                teacher_id=int(r["teacher_id"]),
                freeze_type=FreezeType(r["freeze_type"]),
                started_at=r["started_at"],
                ends_at=r.get("ends_at"),
                is_active=bool(r["is_active"]),
            )

    def create(
        self,
        *,
        class_id: int,
        teacher_id: int,
        freeze_type: FreezeType,
        started_at: datetime,
        ends_at: Optional[datetime],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO pass_freezes(class_id, teacher_id, freeze_type, started_at, ends_at, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (int(class_id), int(teacher_id), freeze_type.value, started_at, ends_at),
            )
            return int(cur.lastrowid)

    def deactivate(self, *, class_id: int, freeze_id: Optional[int] = None) -> int:
        sql = "UPDATE pass_freezes SET is_active=0 WHERE class_id=%s AND is_active=1"
        params: list[object] = [int(class_id)]
        if freeze_id is not None:
            sql += " AND freeze_id=%s"
            params.append(int(freeze_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return int(cur.rowcount)
