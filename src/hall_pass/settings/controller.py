from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify

from ..common.web import api_errors, current_organization_id, current_role, payload, roles_required
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    @app.route("/admin/settings", methods=["GET"], endpoint="get_settings")
    @roles_required(Role.ADMIN)
    @api_errors
    def get_settings():
        return jsonify(asdict(container.settings_service.get(current_organization_id())))

    @app.route("/admin/settings", methods=["PUT"], endpoint="update_settings")
    @roles_required(Role.ADMIN)
    @api_errors
    def update_settings():
        data = payload()
        current = container.settings_service.get(current_organization_id())
        updated = container.settings_service.update(
            current_role=current_role(),
            organization_id=current_organization_id(),
            weekly_bathroom_limit=data.get("weekly_bathroom_limit", current.weekly_bathroom_limit),
            max_concurrent_bathroom=data.get("max_concurrent_bathroom", current.max_concurrent_bathroom),
            bathroom_expected_minutes=data.get("bathroom_expected_minutes", current.bathroom_expected_minutes),
            locker_expected_minutes=data.get("locker_expected_minutes", current.locker_expected_minutes),
            office_expected_minutes=data.get("office_expected_minutes", current.office_expected_minutes),
        )
        return jsonify(asdict(updated))
