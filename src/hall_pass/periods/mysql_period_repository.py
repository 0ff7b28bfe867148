from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time
from .model import Period
from .repository import PeriodRepository

_SELECT = """
    SELECT period_id, organization_id, period_order, name, start_time, end_time
    FROM periods
"""


def _to_period(r: dict) -> Period:
    return Period(
        period_id=int(r["period_id"]),
        organization_id=int(r["organization_id"]),
        period_order=int(r["period_order"]),
        name=r["name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
    )


class MySQLPeriodRepository(PeriodRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Period]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} ORDER BY organization_id, period_order")
            return [_to_period(r) for r in fetchall(cur)]

    def list_for_organization(self, organization_id: int) -> Sequence[Period]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE organization_id=%s ORDER BY period_order", (int(organization_id),))
            return [_to_period(r) for r in fetchall(cur)]
