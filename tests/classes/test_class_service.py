from __future__ import annotations

import pytest

from hall_pass.classes.service import ClassService, generate_join_code
from hall_pass.core.constants import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH
from hall_pass.core.enums import Role
from hall_pass.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from hall_pass.settings.model import OrganizationSettings


def test_join_codes_avoid_look_alike_characters():
    for _ in range(50):
        code = generate_join_code()
        assert len(code) == JOIN_CODE_LENGTH
        assert set(code) <= set(JOIN_CODE_ALPHABET)
        assert not set(code) & set("IO01")


def test_create_class_retries_taken_codes(harness):
    teacher = harness.add_user(Role.TEACHER, "Ms Rivera")
    harness.add_class(teacher, join_code="AAAAAA")
    codes = iter(["AAAAAA", "BBBBBB"])
    service = ClassService(harness.classes, code_generator=lambda: next(codes))

    created = service.create_class(
        current_role=Role.TEACHER, teacher_id=teacher, organization_id=1, name=" Chemistry ", period_order="3"
    )

    assert created.join_code == "BBBBBB"
    assert created.name == "Chemistry"
    assert created.period_order == 3


def test_create_class_gives_up_after_repeated_collisions(harness):
    teacher = harness.add_user(Role.TEACHER, "Ms Rivera")
    harness.add_class(teacher, join_code="AAAAAA")
    service = ClassService(harness.classes, code_generator=lambda: "AAAAAA")
    with pytest.raises(ValidationError, match="unique join code"):
        service.create_class(current_role=Role.TEACHER, teacher_id=teacher, organization_id=1, name="Art", period_order=2)


def test_students_cannot_create_classes(harness):
    with pytest.raises(AuthorizationError):
        harness.container.class_service.create_class(
            current_role=Role.STUDENT, teacher_id=1, organization_id=1, name="Art", period_order=1
        )


def test_join_by_code(harness, classroom):
    service = harness.container.class_service
    newcomer = harness.add_user(Role.STUDENT, "Nina Park")

    joined = service.join_by_code(current_role=Role.STUDENT, student_id=newcomer, organization_id=1, join_code=" abc234 ")

    assert joined.class_id == classroom["class_id"]
    assert service.is_enrolled(class_id=classroom["class_id"], student_id=newcomer)
    assert [c.class_id for c in service.list_for_student(newcomer)] == [classroom["class_id"]]

    with pytest.raises(ValidationError, match="already enrolled"):
        service.join_by_code(current_role=Role.STUDENT, student_id=newcomer, organization_id=1, join_code="ABC234")
    with pytest.raises(NotFoundError):
        service.join_by_code(current_role=Role.STUDENT, student_id=newcomer, organization_id=1, join_code="ZZZZZZ")


def test_class_cap_overrides_organization(harness, classroom):
    service = harness.container.class_service
    updated = service.update_class_settings(
        current_role=Role.TEACHER,
        actor_id=classroom["teacher_id"],
        class_id=classroom["class_id"],
        max_concurrent_bathroom="3",
        is_queue_autonomous=True,
    )
    assert updated.is_queue_autonomous
    assert updated.effective_max_concurrent(OrganizationSettings.defaults(1)) == 3

    cleared = service.update_class_settings(
        current_role=Role.TEACHER, actor_id=classroom["teacher_id"], class_id=classroom["class_id"], max_concurrent_bathroom=""
    )
    assert cleared.effective_max_concurrent(OrganizationSettings.defaults(1)) == 2
    assert cleared.is_queue_autonomous

    turned_off = service.update_class_settings(
        current_role=Role.TEACHER,
        actor_id=classroom["teacher_id"],
        class_id=classroom["class_id"],
        is_queue_autonomous=False,
    )
    assert not turned_off.is_queue_autonomous


def test_auto_clear_toggles(harness, classroom):
    service = harness.container.class_service
    second = harness.add_class(classroom["teacher_id"], name="Physics", period_order=2, join_code="XYZ789")

    toggled = service.set_auto_clear(
        current_role=Role.TEACHER, actor_id=classroom["teacher_id"], class_id=classroom["class_id"], enabled=True
    )
    assert toggled.auto_clear_queue

    assert service.set_auto_clear_all(current_role=Role.TEACHER, teacher_id=classroom["teacher_id"], enabled=True) == 2
    assert service.get(second).auto_clear_queue
    assert [c.period_order for c in service.list_for_teacher(classroom["teacher_id"])] == [1, 2]


def test_unknown_class(harness):
    with pytest.raises(NotFoundError):
        harness.container.class_service.get(404)


def test_join_codes_only_work_inside_the_school(harness, classroom):
    outsider = harness.add_user(Role.STUDENT, "Omar Diaz", organization_id=2)
    with pytest.raises(NotFoundError):
        harness.container.class_service.join_by_code(
            current_role=Role.STUDENT, student_id=outsider, organization_id=2, join_code="ABC234"
        )
    assert not harness.container.class_service.is_enrolled(class_id=classroom["class_id"], student_id=outsider)


def test_admins_manage_only_their_own_school(harness, classroom):
    service = harness.container.class_service
    home_admin = harness.add_user(Role.ADMIN, "Principal Ortiz")
    other_admin = harness.add_user(Role.ADMIN, "Principal Webb", organization_id=2)

    managed = service.get_managed(
        current_role=Role.ADMIN, actor_id=home_admin, class_id=classroom["class_id"], organization_id=1
    )
    assert managed.class_id == classroom["class_id"]

    with pytest.raises(AuthorizationError):
        service.get_managed(current_role=Role.ADMIN, actor_id=other_admin, class_id=classroom["class_id"], organization_id=2)
    with pytest.raises(AuthorizationError):
        service.get_managed(current_role=Role.ADMIN, actor_id=home_admin, class_id=classroom["class_id"])
    with pytest.raises(AuthorizationError):
        service.set_auto_clear(
            current_role=Role.ADMIN, actor_id=other_admin, class_id=classroom["class_id"], enabled=True, organization_id=2
        )
    assert not service.get(classroom["class_id"]).auto_clear_queue


def test_class_roster_lists_enrolled_students_by_name(harness, classroom):
    roster = harness.container.class_service.list_students(classroom["class_id"])
    assert [(s.student_id, s.full_name) for s in roster] == [
        (classroom["alice"], "Alice Chen"),
        (classroom["bob"], "Bob Okafor"),
    ]
