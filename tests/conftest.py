from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

import pytest

from hall_pass.classes.model import RosterStudent, SchoolClass
from hall_pass.container import Container, wire_container
from hall_pass.core.enums import Destination, FreezeType, OPEN_STATUSES, OUT_OF_ROOM_STATUSES, PassStatus, Role
from hall_pass.freezes.model import PassFreeze
from hall_pass.passes.model import Pass
from hall_pass.passes.state_machine import sweep_target
from hall_pass.periods.model import Period
from hall_pass.settings.model import OrganizationSettings
from hall_pass.users.model import User

# Wednesday; the week started Monday 2026-03-09 00:00.
FIXED_NOW = datetime(2026, 3, 11, 10, 0, 0)
ORG_ID = 1


class InMemoryUsers:
    def __init__(self):
        self._by_id: dict[int, User] = {}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._by_id.get(int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self._by_id.values() if u.username == username), None)

    def create_user(self, *, organization_id, full_name, username, password_hash, role) -> int:
        user_id = len(self._by_id) + 1
        self._by_id[user_id] = User(
            user_id=user_id,
            organization_id=int(organization_id),
            full_name=full_name,
            username=username,
            password_hash=password_hash,
            role=role,
        )
        return user_id

    def list_for_organization(self, organization_id: int):
        return [u for u in self._by_id.values() if u.organization_id == int(organization_id)]


class InMemorySettings:
    def __init__(self):
        self._by_org: dict[int, OrganizationSettings] = {}

    def get(self, organization_id: int) -> Optional[OrganizationSettings]:
        return self._by_org.get(int(organization_id))

    def upsert(self, settings: OrganizationSettings) -> None:
        self._by_org[settings.organization_id] = settings


class InMemoryClasses:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self._by_id: dict[int, SchoolClass] = {}
        self._enrollments: set[tuple[int, int]] = set()

    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        return self._by_id.get(int(class_id))

    def get_by_join_code(self, join_code: str) -> Optional[SchoolClass]:
        return next((c for c in self._by_id.values() if c.join_code == join_code), None)

    def create(self, *, organization_id, teacher_id, name, period_order, join_code) -> int:
        class_id = len(self._by_id) + 1
        self._by_id[class_id] = SchoolClass(
            class_id=class_id,
            organization_id=int(organization_id),
            teacher_id=int(teacher_id),
            name=name,
            period_order=int(period_order),
            join_code=join_code,
        )
        return class_id

    def update_settings(self, *, class_id, max_concurrent_bathroom, is_queue_autonomous) -> None:
        c = self._by_id[int(class_id)]
        self._by_id[c.class_id] = replace(
            c, max_concurrent_bathroom=max_concurrent_bathroom, is_queue_autonomous=is_queue_autonomous
        )

    def set_auto_clear(self, *, class_id, enabled) -> None:
        c = self._by_id[int(class_id)]
        self._by_id[c.class_id] = replace(c, auto_clear_queue=bool(enabled))

    def set_auto_clear_for_teacher(self, *, teacher_id, enabled) -> int:
        mine = [c for c in self._by_id.values() if c.teacher_id == int(teacher_id)]
        for c in mine:
            self._by_id[c.class_id] = replace(c, auto_clear_queue=bool(enabled))
        return len(mine)

    def list_for_teacher(self, teacher_id: int):
        return sorted(
            (c for c in self._by_id.values() if c.teacher_id == int(teacher_id)),
            key=lambda c: c.period_order,
        )

    def list_for_student(self, student_id: int):
        return [c for c in self._by_id.values() if (c.class_id, int(student_id)) in self._enrollments]

    def list_auto_clear(self, *, organization_id, period_order):
        return [
            c
            for c in self._by_id.values()
            if c.organization_id == int(organization_id) and c.period_order == int(period_order) and c.auto_clear_queue
        ]

    def enroll(self, *, class_id, student_id) -> None:
        self._enrollments.add((int(class_id), int(student_id)))

    def is_enrolled(self, *, class_id, student_id) -> bool:
        return (int(class_id), int(student_id)) in self._enrollments

    def list_students(self, class_id: int):
        students = [
            RosterStudent(student_id=u.user_id, full_name=u.full_name)
            for u in (self._users.get_by_id(s) for c, s in self._enrollments if c == int(class_id))
            if u is not None
        ]
        return sorted(students, key=lambda s: (s.full_name, s.student_id))


class InMemoryFreezes:
    def __init__(self):
        self._rows: list[PassFreeze] = []
        # Runs at the start of deactivate (simulates a teacher acting concurrently).
        self.before_deactivate: Optional[Callable[[], None]] = None

    def get_active(self, class_id: int) -> Optional[PassFreeze]:
        active = [f for f in self._rows if f.class_id == int(class_id) and f.is_active]
        return active[-1] if active else None

    def create(self, *, class_id, teacher_id, freeze_type: FreezeType, started_at, ends_at) -> int:
        freeze_id = len(self._rows) + 1
        self._rows.append(
            PassFreeze(
                freeze_id=freeze_id,
                class_id=int(class_id),
                teacher_id=int(teacher_id),
                freeze_type=freeze_type,
                started_at=started_at,
                ends_at=ends_at,
            )
        )
        return freeze_id

    def deactivate(self, *, class_id, freeze_id=None) -> int:
        if self.before_deactivate is not None:
            hook, self.before_deactivate = self.before_deactivate, None
            hook()
        changed = 0
        for i, f in enumerate(self._rows):
            if f.class_id == int(class_id) and f.is_active and freeze_id in (None, f.freeze_id):
                self._rows[i] = replace(f, is_active=False)
                changed += 1
        return changed


class InMemoryPasses:
    def __init__(self, users: InMemoryUsers, classes: InMemoryClasses):
        self._users = users
        self._classes = classes
        self._by_id: dict[int, Pass] = {}
        # Runs between the service's read and its guarded write (simulates a concurrent writer).
        self.before_update: Optional[Callable[[int], None]] = None

    def _named(self, p: Pass) -> Pass:
        user = self._users.get_by_id(p.student_id)
        school_class = self._classes.get_by_id(p.class_id)
        return replace(
            p,
            student_name=user.full_name if user else None,
            class_name=school_class.name if school_class else None,
        )

    def insert(self, hall_pass: Pass) -> int:
        pass_id = len(self._by_id) + 1
        self._by_id[pass_id] = replace(hall_pass, pass_id=pass_id)
        return pass_id

    def create(
        self,
        *,
        student_id,
        class_id,
        destination,
        status,
        requested_at,
        approved_at=None,
        approved_by=None,
        expected_return_at=None,
        is_quota_override=False,
    ) -> int:
        if self.get_open_for_student(student_id):
            return 0
        return self.insert(
            Pass(
                pass_id=0,
                student_id=int(student_id),
                class_id=int(class_id),
                destination=destination,
                status=status,
                requested_at=requested_at,
                approved_at=approved_at,
                approved_by=approved_by,
                expected_return_at=expected_return_at,
                is_quota_override=bool(is_quota_override),
            )
        )

    def get(self, pass_id: int) -> Optional[Pass]:
        p = self._by_id.get(int(pass_id))
        return self._named(p) if p else None

    def get_open_for_student(self, student_id: int) -> Optional[Pass]:
        for p in self._by_id.values():
            if p.student_id == int(student_id) and p.status in OPEN_STATUSES:
                return self._named(p)
        return None

    def count_for_student(self, *, student_id, destination, statuses, since, until) -> int:
        statuses = set(statuses)
        return sum(
            1
            for p in self._by_id.values()
            if p.student_id == int(student_id)
            and p.destination == destination
            and p.status in statuses
            and since <= p.requested_at <= until
        )

    def count_in_class(self, *, class_id, destination, statuses) -> int:
        statuses = set(statuses)
        return sum(
            1
            for p in self._by_id.values()
            if p.class_id == int(class_id) and p.destination == destination and p.status in statuses
        )

    def list_in_class(self, *, class_id, statuses, destination=None):
        statuses = set(statuses)
        rows = [
            self._named(p)
            for p in self._by_id.values()
            if p.class_id == int(class_id)
            and p.status in statuses
            and (destination is None or p.destination == destination)
        ]
        return sorted(rows, key=lambda p: p.requested_at)

    def list_for_student(self, *, student_id, limit=50):
        rows = [self._named(p) for p in self._by_id.values() if p.student_id == int(student_id)]
        return sorted(rows, key=lambda p: p.requested_at, reverse=True)[:limit]

    def list_for_organization(self, *, organization_id, statuses=None, since=None, until=None, limit=50, offset=0):
        statuses = set(statuses) if statuses is not None else None
        rows = []
        for p in self._by_id.values():
            school_class = self._classes.get_by_id(p.class_id)
            if school_class is None or school_class.organization_id != int(organization_id):
                continue
            if statuses is not None and p.status not in statuses:
                continue
            if since is not None and p.requested_at < since:
                continue
            if until is not None and p.requested_at >= until:
                continue
            rows.append(self._named(p))
        rows.sort(key=lambda p: (p.requested_at, p.pass_id), reverse=True)
        return rows[offset : offset + limit]

    def update_status(self, *, pass_id, from_status, to_status, fields) -> bool:
        if self.before_update is not None:
            self.before_update(int(pass_id))
        p = self._by_id.get(int(pass_id))
        if not p or p.status != from_status:
            return False
        self._by_id[p.pass_id] = replace(p, status=to_status, **fields)
        return True

    def clear_class(self, *, class_id, now):
        returned = denied = 0
        for p in list(self._by_id.values()):
            if p.class_id != int(class_id):
                continue
            target = sweep_target(p.status)
            if target == PassStatus.RETURNED:
                self._by_id[p.pass_id] = replace(p, status=target, returned_at=p.returned_at or now)
                returned += 1
            elif target == PassStatus.DENIED:
                self._by_id[p.pass_id] = replace(p, status=target, denied_at=now)
                denied += 1
        return returned, denied

    def force_status(self, pass_id: int, status: PassStatus) -> None:
        p = self._by_id[int(pass_id)]
        self._by_id[p.pass_id] = replace(p, status=status)


class InMemoryPeriods:
    def __init__(self):
        self.periods: list[Period] = []

    def list_all(self):
        return list(self.periods)

    def list_for_organization(self, organization_id: int):
        return sorted(
            (p for p in self.periods if p.organization_id == int(organization_id)),
            key=lambda p: p.period_order,
        )


class Harness:
    """Container wired to in-memory repositories plus helpers to arrange data."""

    def __init__(self):
        self.users = InMemoryUsers()
        self.settings = InMemorySettings()
        self.classes = InMemoryClasses(self.users)
        self.freezes = InMemoryFreezes()
        self.passes = InMemoryPasses(self.users, self.classes)
        self.periods = InMemoryPeriods()
        self.container: Container = wire_container(
            users_repo=self.users,
            settings_repo=self.settings,
            classes_repo=self.classes,
            freezes_repo=self.freezes,
            passes_repo=self.passes,
            periods_repo=self.periods,
        )

    def add_user(
        self,
        role: Role,
        name: str,
        *,
        username: Optional[str] = None,
        password_hash: str = "x",
        organization_id: int = ORG_ID,
    ) -> int:
        return self.users.create_user(
            organization_id=organization_id,
            full_name=name,
            username=username or name.lower().replace(" ", "."),
            password_hash=password_hash,
            role=role,
        )

    def add_class(
        self,
        teacher_id: int,
        *,
        name: str = "Biology",
        period_order: int = 1,
        join_code: str = "ABC234",
        organization_id: int = ORG_ID,
    ) -> int:
        return self.classes.create(
            organization_id=organization_id,
            teacher_id=teacher_id,
            name=name,
            period_order=period_order,
            join_code=join_code,
        )

    def add_student(self, class_id: int, name: str) -> int:
        student_id = self.add_user(Role.STUDENT, name)
        self.classes.enroll(class_id=class_id, student_id=student_id)
        return student_id

    def set_settings(self, **overrides) -> OrganizationSettings:
        settings = replace(OrganizationSettings.defaults(ORG_ID), **overrides)
        self.settings.upsert(settings)
        return settings

    def seed_pass(
        self,
        *,
        student_id: int,
        class_id: int,
        status: PassStatus,
        requested_at: datetime,
        destination: Destination = Destination.RESTROOM,
        **fields,
    ) -> int:
        return self.passes.insert(
            Pass(
                pass_id=0,
                student_id=student_id,
                class_id=class_id,
                destination=destination,
                status=status,
                requested_at=requested_at,
                **fields,
            )
        )

    def out_of_room(self, class_id: int) -> int:
        return self.passes.count_in_class(
            class_id=class_id, destination=Destination.RESTROOM, statuses=OUT_OF_ROOM_STATUSES
        )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def classroom(harness: Harness) -> dict:
    """One teacher, one class (period 1) and two enrolled students."""
    teacher_id = harness.add_user(Role.TEACHER, "Ms Rivera")
    class_id = harness.add_class(teacher_id)
    return {
        "teacher_id": teacher_id,
        "class_id": class_id,
        "alice": harness.add_student(class_id, "Alice Chen"),
        "bob": harness.add_student(class_id, "Bob Okafor"),
    }
