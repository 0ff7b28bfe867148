from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_positive_int
from ..common.web import (
    api_errors,
    current_organization_id,
    current_role,
    current_user_id,
    json_error,
    payload,
    roles_required,
)
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT, STAFF_HISTORY_LIMIT
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .service import PassOutcome, PassService


def _outcome_view(outcome: PassOutcome) -> dict:
    data = PassService.to_view(outcome.hall_pass)
    data["warnings"] = list(outcome.warnings)
    if outcome.decision is not None:
        data["quota_exceeded"] = outcome.decision.quota_exceeded
        data["is_full"] = outcome.decision.is_full
    return data


def register(app: Flask, container: Container) -> None:
    staff = (Role.TEACHER, Role.ADMIN)

    # -------- student --------
    @app.route("/passes", methods=["POST"], endpoint="request_pass")
    @roles_required(Role.STUDENT)
    @api_errors
    def request_pass():
        data = payload()
        outcome = container.pass_service.request_pass(
            current_role=current_role(),
            student_id=current_user_id(),
            class_id=require_positive_int(data.get("class_id"), "Class"),
            destination=data.get("destination", ""),
        )
        return jsonify(_outcome_view(outcome)), 201

    @app.route("/passes/<int:pass_id>/check-in", methods=["POST"], endpoint="check_in_pass")
    @roles_required(Role.STUDENT)
    @api_errors
    def check_in_pass(pass_id: int):
        hall_pass = container.pass_service.check_in(
            current_role=current_role(),
            student_id=current_user_id(),
            pass_id=pass_id,
        )
        return jsonify(PassService.to_view(hall_pass))

    @app.route("/passes/active", methods=["GET"], endpoint="active_pass")
    @roles_required(Role.STUDENT)
    @api_errors
    def active_pass():
        data = container.pass_service.active_pass_for_student(
            student_id=current_user_id(),
            organization_id=current_organization_id(),
        )
        return jsonify({"pass": data})

    @app.route("/passes/history", methods=["GET"], endpoint="pass_history")
    @roles_required(Role.STUDENT)
    @api_errors
    def pass_history():
        limit = request.args.get("limit", DEFAULT_HISTORY_LIMIT)
        rows = container.pass_service.history_for_student(student_id=current_user_id(), limit=limit)
        return jsonify({"passes": list(rows)})

    @app.route("/passes/quota", methods=["GET"], endpoint="pass_quota")
    @roles_required(Role.STUDENT)
    @api_errors
    def pass_quota():
        quota = container.pass_service.weekly_quota(
            student_id=current_user_id(),
            organization_id=current_organization_id(),
        )
        return jsonify(
            {
                "weekly_limit": quota.weekly_limit,
                "used_passes": quota.used_passes,
                "remaining": quota.remaining,
                "is_exceeded": quota.is_exceeded,
            }
        )

    @app.route("/passes/<int:pass_id>/queue", methods=["GET"], endpoint="pass_queue")
    @roles_required(Role.STUDENT, *staff)
    @api_errors
    def pass_queue(pass_id: int):
        data = container.pass_service.queue_position(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            pass_id=pass_id,
        )
        if data is None:
            return json_error("This pass is not waiting in the restroom queue", 404)
        return jsonify(data)

    # -------- teacher --------
    @app.route("/classes/<int:class_id>/board", methods=["GET"], endpoint="class_board")
    @roles_required(*staff)
    @api_errors
    def class_board(class_id: int):
        board = container.pass_service.teacher_board(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            class_id=class_id,
        )
        return jsonify(board)

    @app.route("/passes/<int:pass_id>/approve", methods=["POST"], endpoint="approve_pass")
    @roles_required(*staff)
    @api_errors
    def approve_pass(pass_id: int):
        outcome = container.pass_service.approve(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            pass_id=pass_id,
        )
        return jsonify(_outcome_view(outcome))

    @app.route("/passes/<int:pass_id>/deny", methods=["POST"], endpoint="deny_pass")
    @roles_required(*staff)
    @api_errors
    def deny_pass(pass_id: int):
        hall_pass = container.pass_service.deny(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            pass_id=pass_id,
        )
        return jsonify(PassService.to_view(hall_pass))

    @app.route("/passes/<int:pass_id>/confirm-return", methods=["POST"], endpoint="confirm_return")
    @roles_required(*staff)
    @api_errors
    def confirm_return(pass_id: int):
        hall_pass = container.pass_service.confirm_return(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            pass_id=pass_id,
        )
        return jsonify(PassService.to_view(hall_pass))

    @app.route("/classes/<int:class_id>/quick-pass", methods=["POST"], endpoint="quick_pass")
    @roles_required(*staff)
    @api_errors
    def quick_pass(class_id: int):
        data = payload()
        outcome = container.pass_service.quick_pass(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            class_id=class_id,
            student_id=require_positive_int(data.get("student_id"), "Student"),
            destination=data.get("destination", ""),
        )
        return jsonify(_outcome_view(outcome)), 201

    @app.route("/classes/<int:class_id>/clear", methods=["POST"], endpoint="clear_class")
    @roles_required(*staff)
    @api_errors
    def clear_class(class_id: int):
        result = container.pass_service.auto_clear_class(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            class_id=class_id,
        )
        return jsonify({"class_id": result.class_id, "returned": result.returned, "denied": result.denied})

    @app.route("/classes/<int:class_id>/roster", methods=["GET"], endpoint="class_roster")
    @roles_required(*staff)
    @api_errors
    def class_roster(class_id: int):
        roster = container.pass_service.class_roster(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            class_id=class_id,
        )
        return jsonify(roster)

    @app.route("/classes/<int:class_id>/students/<int:student_id>/history", methods=["GET"], endpoint="student_history")
    @roles_required(*staff)
    @api_errors
    def student_history(class_id: int, student_id: int):
        rows = container.pass_service.student_history(
            current_role=current_role(),
            actor_id=current_user_id(),
            organization_id=current_organization_id(),
            class_id=class_id,
            student_id=student_id,
            limit=request.args.get("limit", STAFF_HISTORY_LIMIT),
        )
        return jsonify({"student_id": student_id, "passes": list(rows)})

    # -------- admin --------
    @app.route("/admin/hallway", methods=["GET"], endpoint="admin_hallway")
    @roles_required(Role.ADMIN)
    @api_errors
    def admin_hallway():
        rows = container.pass_service.hallway(current_role=current_role(), organization_id=current_organization_id())
        return jsonify({"passes": list(rows)})

    @app.route("/admin/passes", methods=["GET"], endpoint="admin_pass_log")
    @roles_required(Role.ADMIN)
    @api_errors
    def admin_pass_log():
        raw_date = request.args.get("date")
        try:
            on_date = parse_iso_date(raw_date) if raw_date else None
        except ValueError:
            raise ValidationError("Date must be in YYYY-MM-DD format")

        rows = container.pass_service.pass_log(
            current_role=current_role(),
            organization_id=current_organization_id(),
            status=request.args.get("status"),
            on_date=on_date,
            limit=request.args.get("limit", DEFAULT_HISTORY_LIMIT),
            offset=request.args.get("offset", 0, type=int),
        )
        return jsonify({"passes": list(rows)})
