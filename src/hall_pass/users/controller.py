from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.web import (
    api_errors,
    current_organization_id,
    current_role,
    json_error,
    login_required,
    payload,
    roles_required,
)
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    @api_errors
    def login():
        data = payload()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session["user_id"] = s_user.user_id
        session["organization_id"] = s_user.organization_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        logger.info("User %s logged in as %s", s_user.user_id, s_user.role.value)

        return jsonify(
            {
                "user_id": s_user.user_id,
                "full_name": s_user.full_name,
                "role": s_user.role.value,
                "organization_id": s_user.organization_id,
            }
        )

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"ok": True})

    @app.route("/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        if "organization_id" not in session:
            return json_error("Session expired, please log in again", 401)
        return jsonify(
            {
                "user_id": session["user_id"],
                "full_name": session.get("name"),
                "role": session.get("role"),
                "organization_id": session["organization_id"],
            }
        )

    @app.route("/admin/users", methods=["GET"], endpoint="admin_users")
    @roles_required(Role.ADMIN)
    @api_errors
    def admin_users():
        users = container.user_service.list_for_organization(
            current_role=current_role(),
            organization_id=current_organization_id(),
        )
        return jsonify({"users": list(users)})

    @app.route("/admin/users", methods=["POST"], endpoint="add_user")
    @roles_required(Role.ADMIN)
    @api_errors
    def add_user():
        data = payload()
        try:
            role = Role(data.get("role", "student"))
        except ValueError:
            raise ValidationError("Invalid account type")

        user_id = container.user_service.create_account(
            current_role=current_role(),
            organization_id=current_organization_id(),
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=role,
        )
        return jsonify({"user_id": user_id}), 201
