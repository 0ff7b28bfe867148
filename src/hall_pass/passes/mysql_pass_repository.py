from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

from ..core.enums import OPEN_STATUSES, OUT_OF_ROOM_STATUSES, Destination, PassStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Pass
from .repository import PassRepository

_SELECT = """
    SELECT p.pass_id, p.student_id, p.class_id, p.destination, p.status, p.requested_at,
           p.approved_at, p.approved_by, p.denied_at, p.denied_by, p.returned_at,
           p.confirmed_by, p.expected_return_at, p.is_quota_override,
           u.full_name AS student_name, c.name AS class_name
    FROM passes p
    LEFT JOIN users u ON u.user_id = p.student_id
    LEFT JOIN classes c ON c.class_id = p.class_id
"""

# Columns a status transition may stamp.
_TRANSITION_COLUMNS = frozenset(
    {
        "approved_at",
        "approved_by",
        "denied_at",
        "denied_by",
        "returned_at",
        "confirmed_by",
        "expected_return_at",
        "is_quota_override",
    }
)


def _to_pass(r: dict) -> Pass:
    return Pass(
        pass_id=int(r["pass_id"]),
        student_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        destination=Destination(r["destination"]),
        status=PassStatus(r["status"]),
        requested_at=r["requested_at"],
        approved_at=r.get("approved_at"),
        approved_by=r.get("approved_by"),
        denied_at=r.get("denied_at"),
        denied_by=r.get("denied_by"),
        returned_at=r.get("returned_at"),
        confirmed_by=r.get("confirmed_by"),
        expected_return_at=r.get("expected_return_at"),
        is_quota_override=bool(r.get("is_quota_override")),
        student_name=r.get("student_name"),
        class_name=r.get("class_name"),
    )


class MySQLPassRepository(PassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        student_id: int,
        class_id: int,
        destination: Destination,
        status: PassStatus,
        requested_at: datetime,
        approved_at: Optional[datetime] = None,
        approved_by: Optional[int] = None,
        expected_return_at: Optional[datetime] = None,
        is_quota_override: bool = False,
    ) -> int:
        open_sql, open_params = in_clause(OPEN_STATUSES)
        with db_cursor(self._conn_factory) as (_, cur):
            # Lock the student's open rows so two requests cannot both pass the check.
            cur.execute(
                f"SELECT pass_id FROM passes WHERE student_id=%s AND status IN {open_sql} FOR UPDATE",
                (int(student_id), *open_params),
            )
            if fetchall(cur):
                return 0

            cur.execute(
                """
                INSERT INTO passes(
                    student_id, class_id, destination, status, requested_at,
                    approved_at, approved_by, expected_return_at, is_quota_override
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(student_id),
                    int(class_id),
                    destination.value,
                    status.value,
                    requested_at,
                    approved_at,
                    approved_by,
                    expected_return_at,
                    int(bool(is_quota_override)),
                ),
            )
            return int(cur.lastrowid)

    def get(self, pass_id: int) -> Optional[Pass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE p.pass_id=%s", (int(pass_id),))
            r = fetchone(cur)
            return _to_pass(r) if r else None

    def get_open_for_student(self, student_id: int) -> Optional[Pass]:
        open_sql, open_params = in_clause(OPEN_STATUSES)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE p.student_id=%s AND p.status IN {open_sql} ORDER BY p.requested_at DESC LIMIT 1",
                (int(student_id), *open_params),
            )
            r = fetchone(cur)
            return _to_pass(r) if r else None

    def count_for_student(
        self,
        *,
        student_id: int,
        destination: Destination,
        statuses: Iterable[PassStatus],
        since: datetime,
        until: datetime,
    ) -> int:
        status_sql, status_params = in_clause(statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM passes
                WHERE student_id=%s AND destination=%s AND status IN {status_sql}
                  AND requested_at >= %s AND requested_at <= %s
                """,
                (int(student_id), destination.value, *status_params, since, until),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_in_class(self, *, class_id: int, destination: Destination, statuses: Iterable[PassStatus]) -> int:
        status_sql, status_params = in_clause(statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM passes
                WHERE class_id=%s AND destination=%s AND status IN {status_sql}
                """,
                (int(class_id), destination.value, *status_params),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def list_in_class(
        self,
        *,
        class_id: int,
        statuses: Iterable[PassStatus],
        destination: Optional[Destination] = None,
    ) -> Sequence[Pass]:
        status_sql, status_params = in_clause(statuses)
        clauses = ["p.class_id=%s", f"p.status IN {status_sql}"]
        params: list[object] = [int(class_id), *status_params]
        if destination is not None:
            clauses.append("p.destination=%s")
            params.append(destination.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {' AND '.join(clauses)} ORDER BY p.requested_at ASC",
                tuple(params),
            )
            return [_to_pass(r) for r in fetchall(cur)]

    def list_for_student(self, *, student_id: int, limit: int = 50) -> Sequence[Pass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE p.student_id=%s ORDER BY p.requested_at DESC LIMIT %s",
                (int(student_id), int(limit)),
            )
            return [_to_pass(r) for r in fetchall(cur)]

    def list_for_organization(
        self,
        *,
        organization_id: int,
        statuses: Optional[Iterable[PassStatus]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Pass]:
        clauses = ["c.organization_id=%s"]
        params: list[object] = [int(organization_id)]
        if statuses is not None:
            status_sql, status_params = in_clause(statuses)
            clauses.append(f"p.status IN {status_sql}")
            params.extend(status_params)
        if since is not None:
            clauses.append("p.requested_at >= %s")
            params.append(since)
        if until is not None:
            clauses.append("p.requested_at < %s")
            params.append(until)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {' AND '.join(clauses)} ORDER BY p.requested_at DESC, p.pass_id DESC LIMIT %s OFFSET %s",
                tuple(params + [int(limit), int(offset)]),
            )
            return [_to_pass(r) for r in fetchall(cur)]

    def update_status(
        self,
        *,
        pass_id: int,
        from_status: PassStatus,
        to_status: PassStatus,
        fields: Mapping[str, Any],
    ) -> bool:
        unknown = set(fields) - _TRANSITION_COLUMNS
        if unknown:
            raise ValueError(f"Cannot stamp columns {sorted(unknown)}")

        assignments = ["status=%s"]
        params: list[object] = [to_status.value]
        for column, value in fields.items():
            assignments.append(f"{column}=%s")
            params.append(int(value) if isinstance(value, bool) else value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE passes SET {', '.join(assignments)} WHERE pass_id=%s AND status=%s",
                tuple(params + [int(pass_id), from_status.value]),
            )
            return cur.rowcount > 0

    def clear_class(self, *, class_id: int, now: datetime) -> Tuple[int, int]:
        out_sql, out_params = in_clause(OUT_OF_ROOM_STATUSES)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE passes
                SET status=%s, returned_at=COALESCE(returned_at, %s)
                WHERE class_id=%s AND status IN {out_sql}
                """,
                (PassStatus.RETURNED.value, now, int(class_id), *out_params),
            )
            returned = int(cur.rowcount)

            cur.execute(
                """
                UPDATE passes
                SET status=%s, denied_at=%s
                WHERE class_id=%s AND status=%s
                """,
                (PassStatus.DENIED.value, now, int(class_id), PassStatus.PENDING.value),
            )
            denied = int(cur.rowcount)
            return returned, denied
