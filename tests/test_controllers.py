from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from hall_pass.core.enums import Role
from hall_pass.main import create_app


@pytest.fixture
def app(monkeypatch, harness):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container=harness.container)


@pytest.fixture
def accounts(harness):
    hashed = generate_password_hash("secret1")
    teacher = harness.add_user(Role.TEACHER, "Ms Rivera", username="teacher", password_hash=hashed)
    class_id = harness.add_class(teacher)
    student = harness.add_user(Role.STUDENT, "Alice Chen", username="alice", password_hash=hashed)
    harness.classes.enroll(class_id=class_id, student_id=student)
    admin = harness.add_user(Role.ADMIN, "Admin", username="admin", password_hash=hashed)
    return {"teacher": teacher, "student": student, "admin": admin, "class_id": class_id}


def _login(app, username):
    client = app.test_client()
    resp = client.post("/login", json={"username": username, "password": "secret1"})
    assert resp.status_code == 200, resp.get_json()
    return client


def test_login_failure_and_anonymous_access(app, accounts):
    client = app.test_client()
    resp = client.post("/login", json={"username": "alice", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid username or password"}

    assert client.get("/passes/active").status_code == 401


def test_pass_round_trip_over_http(app, accounts):
    student = _login(app, "alice")
    teacher = _login(app, "teacher")
    class_id = accounts["class_id"]

    created = student.post("/passes", json={"class_id": class_id, "destination": "Restroom"})
    assert created.status_code == 201
    pass_id = created.get_json()["pass_id"]
    assert created.get_json()["status"] == "pending"

    queue = student.get(f"/passes/{pass_id}/queue").get_json()
    assert queue["position"] == 1

    board = teacher.get(f"/classes/{class_id}/board").get_json()
    assert [row["pass_id"] for row in board["pending"]] == [pass_id]

    approved = teacher.post(f"/passes/{pass_id}/approve")
    assert approved.get_json()["status"] == "approved"

    again = teacher.post(f"/passes/{pass_id}/approve")
    assert again.status_code == 409

    assert student.get("/passes/active").get_json()["pass"]["pass_id"] == pass_id
    assert student.post(f"/passes/{pass_id}/check-in").get_json()["status"] == "pending_return"
    assert teacher.post(f"/passes/{pass_id}/confirm-return").get_json()["status"] == "returned"

    quota = student.get("/passes/quota").get_json()
    assert quota == {"weekly_limit": 4, "used_passes": 1, "remaining": 3, "is_exceeded": False}
    assert [row["pass_id"] for row in student.get("/passes/history").get_json()["passes"]] == [pass_id]


def test_roles_are_enforced(app, accounts):
    student = _login(app, "alice")
    assert student.get(f"/classes/{accounts['class_id']}/board").status_code == 403
    assert student.get("/admin/settings").status_code == 403

    teacher = _login(app, "teacher")
    assert teacher.post("/passes", json={"class_id": accounts["class_id"], "destination": "Restroom"}).status_code == 403


def test_freeze_blocks_requests_over_http(app, accounts):
    teacher = _login(app, "teacher")
    student = _login(app, "alice")
    class_id = accounts["class_id"]

    frozen = teacher.post(f"/classes/{class_id}/freeze", json={"freeze_type": "bathroom", "duration_minutes": 10})
    assert frozen.status_code == 201
    assert frozen.get_json()["seconds_remaining"] == 600

    blocked = student.post("/passes", json={"class_id": class_id, "destination": "Restroom"})
    assert blocked.status_code == 400
    assert "frozen" in blocked.get_json()["error"]

    assert teacher.delete(f"/classes/{class_id}/freeze").get_json()["unfrozen"] is True
    assert student.post("/passes", json={"class_id": class_id, "destination": "Restroom"}).status_code == 201


def test_quick_pass_and_clear(app, accounts):
    teacher = _login(app, "teacher")
    class_id = accounts["class_id"]

    quick = teacher.post(f"/classes/{class_id}/quick-pass", json={"student_id": accounts["student"], "destination": "Locker"})
    assert quick.status_code == 201
    assert quick.get_json()["status"] == "approved"

    cleared = teacher.post(f"/classes/{class_id}/clear").get_json()
    assert cleared == {"class_id": class_id, "returned": 1, "denied": 0}


def test_class_management_and_join(app, accounts):
    teacher = _login(app, "teacher")
    created = teacher.post("/classes", json={"name": "Physics", "period_order": 2})
    assert created.status_code == 201
    code = created.get_json()["join_code"]

    patched = teacher.patch(f"/classes/{created.get_json()['class_id']}", json={"max_concurrent_bathroom": 1})
    assert patched.get_json()["max_concurrent_bathroom"] == 1

    student = _login(app, "alice")
    joined = student.post("/classes/join", json={"join_code": code.lower()})
    assert joined.status_code == 201
    assert student.post("/classes/join", json={"join_code": "ZZZZZZ"}).status_code == 404
    assert len(student.get("/classes").get_json()["classes"]) == 2


def test_admin_settings_and_users(app, accounts):
    admin = _login(app, "admin")

    assert admin.get("/admin/settings").get_json()["weekly_bathroom_limit"] == 4
    updated = admin.put("/admin/settings", json={"weekly_bathroom_limit": 6})
    assert updated.status_code == 200
    assert updated.get_json()["weekly_bathroom_limit"] == 6
    assert updated.get_json()["max_concurrent_bathroom"] == 2

    bad = admin.put("/admin/settings", json={"weekly_bathroom_limit": 0})
    assert bad.status_code == 400

    created = admin.post(
        "/admin/users", json={"full_name": "Bob Okafor", "username": "bob", "password": "student1", "role": "student"}
    )
    assert created.status_code == 201
    assert "bob" in [u["username"] for u in admin.get("/admin/users").get_json()["users"]]


def test_sweep_cli(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["sweep-passes", "--window", "5"])
    assert result.exit_code == 0
    assert "class(es) swept" in result.output


def test_history_limit_is_validated(app, accounts):
    student = _login(app, "alice")
    assert student.get("/passes/history?limit=-1").status_code == 400
    assert student.get("/passes/history?limit=abc").status_code == 400
    assert student.get("/passes/history?limit=1000").status_code == 200


def test_staff_roster_history_and_admin_views(app, accounts):
    teacher = _login(app, "teacher")
    class_id = accounts["class_id"]
    student_id = accounts["student"]

    teacher.post(f"/classes/{class_id}/quick-pass", json={"student_id": student_id, "destination": "Restroom"})

    roster = teacher.get(f"/classes/{class_id}/roster").get_json()
    assert [s["full_name"] for s in roster["students"]] == ["Alice Chen"]
    assert roster["students"][0]["open_pass"]["status"] == "approved"

    history = teacher.get(f"/classes/{class_id}/students/{student_id}/history").get_json()
    assert [row["destination"] for row in history["passes"]] == ["Restroom"]
    assert teacher.get(f"/classes/{class_id}/students/{accounts['admin']}/history").status_code == 404

    assert teacher.get("/admin/hallway").status_code == 403

    admin = _login(app, "admin")
    hallway = admin.get("/admin/hallway").get_json()["passes"]
    assert [(row["student_name"], row["class_name"]) for row in hallway] == [("Alice Chen", "Biology")]

    log = admin.get("/admin/passes?status=approved").get_json()["passes"]
    assert len(log) == 1
    assert admin.get("/admin/passes?status=denied").get_json()["passes"] == []
    assert admin.get("/admin/passes?date=2020-01-01").get_json()["passes"] == []
    assert admin.get("/admin/passes?date=yesterday").status_code == 400


def test_admin_of_another_school_is_refused(app, harness, accounts):
    harness.add_user(
        Role.ADMIN, "Principal Webb", username="webb", password_hash=generate_password_hash("secret1"), organization_id=2
    )
    student = _login(app, "alice")
    pass_id = student.post("/passes", json={"class_id": accounts["class_id"], "destination": "Restroom"}).get_json()[
        "pass_id"
    ]

    outsider = _login(app, "webb")
    assert outsider.post(f"/passes/{pass_id}/approve").status_code == 403
    assert outsider.get(f"/classes/{accounts['class_id']}/board").status_code == 403
    assert outsider.get("/admin/hallway").get_json()["passes"] == []

    admin = _login(app, "admin")
    assert admin.post(f"/passes/{pass_id}/approve").get_json()["status"] == "approved"
