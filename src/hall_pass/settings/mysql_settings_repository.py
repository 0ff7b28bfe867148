from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import OrganizationSettings
from .repository import SettingsRepository


class MySQLSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, organization_id: int) -> Optional[OrganizationSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT organization_id, weekly_bathroom_limit, max_concurrent_bathroom,
                       bathroom_expected_minutes, locker_expected_minutes, office_expected_minutes
                FROM organization_settings
                WHERE organization_id=%s
                """,
                (int(organization_id),),
            )
            r = fetchone(cur)
            if not r:
                return None

            defaults = OrganizationSettings.defaults(organization_id)
            # NULL columns fall back to the defaults individually.
            return OrganizationSettings(
                organization_id=int(r["organization_id"]),
                weekly_bathroom_limit=int(r.get("weekly_bathroom_limit") or defaults.weekly_bathroom_limit),
                max_concurrent_bathroom=int(r.get("max_concurrent_bathroom") or defaults.max_concurrent_bathroom),
                bathroom_expected_minutes=int(r.get("bathroom_expected_minutes") or defaults.bathroom_expected_minutes),
                locker_expected_minutes=int(r.get("locker_expected_minutes") or defaults.locker_expected_minutes),
                office_expected_minutes=int(r.get("office_expected_minutes") or defaults.office_expected_minutes),
            )

    def upsert(self, settings: OrganizationSettings) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO organization_settings(
                    organization_id, weekly_bathroom_limit, max_concurrent_bathroom,
                    bathroom_expected_minutes, locker_expected_minutes, office_expected_minutes
                )
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    weekly_bathroom_limit=VALUES(weekly_bathroom_limit),
                    max_concurrent_bathroom=VALUES(max_concurrent_bathroom),
                    bathroom_expected_minutes=VALUES(bathroom_expected_minutes),
                    locker_expected_minutes=VALUES(locker_expected_minutes),
                    office_expected_minutes=VALUES(office_expected_minutes)
                """,
                (
                    int(settings.organization_id),
                    int(settings.weekly_bathroom_limit),
                    int(settings.max_concurrent_bathroom),
                    int(settings.bathroom_expected_minutes),
                    int(settings.locker_expected_minutes),
                    int(settings.office_expected_minutes),
                ),
            )
