from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify

from ..common.web import (
    api_errors,
    current_organization_id,
    current_role,
    current_user_id,
    login_required,
    payload,
    roles_required,
)
from ..container import Container
from ..core.enums import Role


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def register(app: Flask, container: Container) -> None:
    staff = (Role.TEACHER, Role.ADMIN)

    @app.route("/classes", methods=["GET"], endpoint="my_classes")
    @login_required
    @api_errors
    def my_classes():
        if current_role() == Role.STUDENT:
            classes = container.class_service.list_for_student(current_user_id())
        else:
            classes = container.class_service.list_for_teacher(current_user_id())
        return jsonify({"classes": [asdict(c) for c in classes]})

    @app.route("/classes", methods=["POST"], endpoint="create_class")
    @roles_required(*staff)
    @api_errors
    def create_class():
        data = payload()
        school_class = container.class_service.create_class(
            current_role=current_role(),
            teacher_id=current_user_id(),
            organization_id=current_organization_id(),
            name=data.get("name", ""),
            period_order=data.get("period_order"),
        )
        return jsonify(asdict(school_class)), 201

    @app.route("/classes/<int:class_id>", methods=["PATCH"], endpoint="update_class")
    @roles_required(*staff)
    @api_errors
    def update_class(class_id: int):
        data = payload()
        current = container.class_service.get_managed(
            current_role=current_role(),
            actor_id=current_user_id(),
            class_id=class_id,
            organization_id=current_organization_id(),
        )
        autonomous = data.get("is_queue_autonomous")
        school_class = container.class_service.update_class_settings(
            current_role=current_role(),
            actor_id=current_user_id(),
            class_id=class_id,
            organization_id=current_organization_id(),
            max_concurrent_bathroom=data.get("max_concurrent_bathroom", current.max_concurrent_bathroom),
            is_queue_autonomous=None if autonomous is None else _as_bool(autonomous),
        )
        return jsonify(asdict(school_class))

    @app.route("/classes/<int:class_id>/auto-clear", methods=["POST"], endpoint="class_auto_clear")
    @roles_required(*staff)
    @api_errors
    def class_auto_clear(class_id: int):
        school_class = container.class_service.set_auto_clear(
            current_role=current_role(),
            actor_id=current_user_id(),
            class_id=class_id,
            organization_id=current_organization_id(),
            enabled=_as_bool(payload().get("enabled", True)),
        )
        return jsonify(asdict(school_class))

    @app.route("/classes/auto-clear", methods=["POST"], endpoint="all_classes_auto_clear")
    @roles_required(Role.TEACHER)
    @api_errors
    def all_classes_auto_clear():
        changed = container.class_service.set_auto_clear_all(
            current_role=current_role(),
            teacher_id=current_user_id(),
            enabled=_as_bool(payload().get("enabled", True)),
        )
        return jsonify({"updated": changed})

    @app.route("/classes/join", methods=["POST"], endpoint="join_class")
    @roles_required(Role.STUDENT)
    @api_errors
    def join_class():
        school_class = container.class_service.join_by_code(
            current_role=current_role(),
            student_id=current_user_id(),
            organization_id=current_organization_id(),
            join_code=payload().get("join_code", ""),
        )
        return jsonify({"class_id": school_class.class_id, "name": school_class.name}), 201
