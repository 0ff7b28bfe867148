from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import now_local
from ..common.web import api_errors, current_organization_id, current_role, current_user_id, payload, roles_required
from ..container import Container
from ..core.enums import Role
from .service import FreezeService


def register(app: Flask, container: Container) -> None:
    @app.route("/classes/<int:class_id>/freeze", methods=["POST"], endpoint="freeze_class")
    @roles_required(Role.TEACHER, Role.ADMIN)
    @api_errors
    def freeze_class(class_id: int):
        data = payload()
        now = now_local()
        freeze = container.freeze_service.freeze(
            current_role=current_role(),
            actor_id=current_user_id(),
            class_id=class_id,
            organization_id=current_organization_id(),
            freeze_type=data.get("freeze_type", ""),
            duration_minutes=data.get("duration_minutes"),
            now=now,
        )
        return jsonify(FreezeService.to_view(freeze, now)), 201

    @app.route("/classes/<int:class_id>/freeze", methods=["DELETE"], endpoint="unfreeze_class")
    @roles_required(Role.TEACHER, Role.ADMIN)
    @api_errors
    def unfreeze_class(class_id: int):
        changed = container.freeze_service.unfreeze(
            current_role=current_role(),
            actor_id=current_user_id(),
            class_id=class_id,
            organization_id=current_organization_id(),
        )
        return jsonify({"class_id": class_id, "unfrozen": changed})
