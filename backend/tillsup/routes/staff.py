# Overview: Flask API routes for staff management; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..services import staff_service
from ..services.identity_service import current_actor


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
@require_auth
def list_staff():
    profiles = staff_service.list_staff(
        current_actor(),
        viewing_branch_id=request.args.get("branch_id", type=int),
        include_inactive=request.args.get("include_inactive", "false").lower() == "true",
    )
    return jsonify([profile.to_dict() for profile in profiles]), 200


@staff_bp.post("")
@require_auth
def create_staff():
    data = request.get_json(silent=True) or {}
    profile, temporary_password = staff_service.create_staff(
        current_actor(),
        email=data.get("email"),
        role=data.get("role"),
        branch_id=data.get("branch_id"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        password=data.get("password"),
    )
    payload = {"staff": profile.to_dict()}
    if temporary_password:
        payload["temporary_password"] = temporary_password
    return jsonify(payload), 201


@staff_bp.get("/<int:profile_id>")
@require_auth
def get_staff(profile_id: int):
    profile = staff_service.get_staff(current_actor(), profile_id)
    return jsonify(profile.to_dict()), 200


@staff_bp.patch("/<int:profile_id>")
@require_auth
def update_staff(profile_id: int):
    data = request.get_json(silent=True) or {}
    profile = staff_service.update_staff(
        current_actor(),
        profile_id,
        role=data.get("role"),
        branch_id=data.get("branch_id"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        expected_version=data.get("version_id"),
    )
    return jsonify(profile.to_dict()), 200


@staff_bp.delete("/<int:profile_id>")
@require_auth
def delete_staff(profile_id: int):
    """Soft delete: deactivates the profile and signs it out everywhere."""
    profile = staff_service.deactivate_staff(current_actor(), profile_id)
    return jsonify(profile.to_dict()), 200


@staff_bp.post("/<int:profile_id>/reset-password")
@require_auth
def reset_password(profile_id: int):
    data = request.get_json(silent=True) or {}
    password = staff_service.reset_staff_password(
        current_actor(),
        profile_id,
        new_password=data.get("new_password"),
    )
    return jsonify({"temporary_password": password, "must_change_password": True}), 200
