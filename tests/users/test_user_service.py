from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from hall_pass.core.enums import Role
from hall_pass.core.exceptions import AuthenticationError, AuthorizationError, ValidationError


def test_authenticate(harness):
    harness.add_user(Role.TEACHER, "Ms Rivera", username="rivera", password_hash=generate_password_hash("secret1"))

    s_user = harness.container.auth_service.authenticate("rivera", "secret1")
    assert s_user.role == Role.TEACHER
    assert s_user.organization_id == 1

    with pytest.raises(AuthenticationError):
        harness.container.auth_service.authenticate("rivera", "wrong")
    with pytest.raises(AuthenticationError):
        harness.container.auth_service.authenticate("nobody", "secret1")


def test_placeholder_hash_never_authenticates(harness):
    harness.add_user(Role.STUDENT, "Legacy", username="legacy", password_hash="CHANGE_ME")
    with pytest.raises(AuthenticationError):
        harness.container.auth_service.authenticate("legacy", "CHANGE_ME")


def test_admin_creates_accounts(harness):
    service = harness.container.user_service
    user_id = service.create_account(
        current_role=Role.ADMIN,
        organization_id=1,
        full_name="Alice Chen",
        username="alice",
        password="student1",
        role=Role.STUDENT,
    )

    assert harness.container.auth_service.authenticate("alice", "student1").user_id == user_id
    assert [u["username"] for u in service.list_for_organization(current_role=Role.ADMIN, organization_id=1)] == ["alice"]

    with pytest.raises(ValidationError, match="already exists"):
        service.create_account(
            current_role=Role.ADMIN, organization_id=1, full_name="A", username="alice", password="student1", role=Role.STUDENT
        )


def test_account_rules(harness):
    service = harness.container.user_service
    with pytest.raises(AuthorizationError):
        service.create_account(
            current_role=Role.TEACHER, organization_id=1, full_name="B", username="b", password="123456", role=Role.STUDENT
        )
    with pytest.raises(ValidationError, match="at least 6"):
        service.create_account(
            current_role=Role.ADMIN, organization_id=1, full_name="B", username="b", password="123", role=Role.STUDENT
        )
    with pytest.raises(ValidationError, match="Admin accounts"):
        service.create_account(
            current_role=Role.ADMIN, organization_id=1, full_name="B", username="b", password="123456", role=Role.ADMIN
        )
