from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import RosterStudent, SchoolClass
from .repository import ClassRepository

_COLUMNS = """
    c.class_id, c.organization_id, c.teacher_id, c.name, c.period_order, c.join_code,
    c.max_concurrent_bathroom, c.is_queue_autonomous, c.auto_clear_queue
"""


def _to_class(r: dict) -> SchoolClass:
    max_concurrent = r.get("max_concurrent_bathroom")
    return SchoolClass(
        class_id=int(r["class_id"]),
        organization_id=int(r["organization_id"]),
        teacher_id=int(r["teacher_id"]),
        name=r["name"],
        period_order=int(r["period_order"]),
        join_code=r["join_code"],
        max_concurrent_bathroom=int(max_concurrent) if max_concurrent is not None else None,
        is_queue_autonomous=bool(r.get("is_queue_autonomous")),
        auto_clear_queue=bool(r.get("auto_clear_queue")),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM classes c WHERE c.class_id=%s", (int(class_id),))
            r = fetchone(cur)
            return _to_class(r) if r else None

    def get_by_join_code(self, join_code: str) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM classes c WHERE c.join_code=%s", (join_code,))
            r = fetchone(cur)
            return _to_class(r) if r else None

    def create(
        self,
        *,
        organization_id: int,
        teacher_id: int,
        name: str,
        period_order: int,
        join_code: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO classes(organization_id, teacher_id, name, period_order, join_code)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(organization_id), int(teacher_id), name, int(period_order), join_code),
            )
            return int(cur.lastrowid)

    def update_settings(
        self,
        *,
        class_id: int,
        max_concurrent_bathroom: Optional[int],
        is_queue_autonomous: bool,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE classes
                SET max_concurrent_bathroom=%s, is_queue_autonomous=%s
                WHERE class_id=%s
                """,
                (max_concurrent_bathroom, int(bool(is_queue_autonomous)), int(class_id)),
            )

    def set_auto_clear(self, *, class_id: int, enabled: bool) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE classes SET auto_clear_queue=%s WHERE class_id=%s",
                (int(bool(enabled)), int(class_id)),
            )

    def set_auto_clear_for_teacher(self, *, teacher_id: int, enabled: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE classes SET auto_clear_queue=%s WHERE teacher_id=%s",
                (int(bool(enabled)), int(teacher_id)),
            )
            return int(cur.rowcount)

    def list_for_teacher(self, teacher_id: int) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM classes c WHERE c.teacher_id=%s ORDER BY c.period_order, c.class_id",
                (int(teacher_id),),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM classes c
                JOIN class_enrollments e ON e.class_id = c.class_id
                WHERE e.student_id=%s
                ORDER BY c.period_order, c.class_id
                """,
                (int(student_id),),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def list_auto_clear(self, *, organization_id: int, period_order: int) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM classes c
                WHERE c.organization_id=%s AND c.period_order=%s AND c.auto_clear_queue=1
                """,
                (int(organization_id), int(period_order)),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def enroll(self, *, class_id: int, student_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO class_enrollments(class_id, student_id) VALUES(%s,%s)",
                (int(class_id), int(student_id)),
            )

    def is_enrolled(self, *, class_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM class_enrollments WHERE class_id=%s AND student_id=%s",
                (int(class_id), int(student_id)),
            )
            return fetchone(cur) is not None

    def list_students(self, class_id: int) -> Sequence[RosterStudent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.full_name
                FROM class_enrollments e
                JOIN users u ON u.user_id = e.student_id
                WHERE e.class_id=%s
                ORDER BY u.full_name, u.user_id
                """,
                (int(class_id),),
            )
            return [RosterStudent(student_id=int(r["user_id"]), full_name=r["full_name"]) for r in fetchall(cur)]
