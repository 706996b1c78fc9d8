# Overview: Flask API routes for branch operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import branch_service
from ..services.identity_service import current_actor


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_auth
def list_branches():
    branches = branch_service.list_branches(current_actor())
    return jsonify([branch.to_dict() for branch in branches]), 200


@branches_bp.post("")
@require_auth
@require_permission("MANAGE_BRANCHES")
def create_branch():
    data = request.get_json(silent=True) or {}
    branch = branch_service.create_branch(
        current_actor(),
        name=data.get("name"),
        location=data.get("location"),
    )
    return jsonify(branch.to_dict()), 201


@branches_bp.patch("/<int:branch_id>")
@require_auth
@require_permission("MANAGE_BRANCHES")
def update_branch(branch_id: int):
    data = request.get_json(silent=True) or {}
    branch = branch_service.update_branch(
        current_actor(),
        branch_id,
        name=data.get("name"),
        location=data.get("location"),
        expected_version=data.get("version_id"),
    )
    return jsonify(branch.to_dict()), 200


@branches_bp.post("/<int:branch_id>/deactivate")
@require_auth
@require_permission("MANAGE_BRANCHES")
def deactivate_branch(branch_id: int):
    branch = branch_service.set_branch_active(current_actor(), branch_id, False)
    return jsonify(branch.to_dict()), 200


@branches_bp.post("/<int:branch_id>/activate")
@require_auth
@require_permission("MANAGE_BRANCHES")
def activate_branch(branch_id: int):
    branch = branch_service.set_branch_active(current_actor(), branch_id, True)
    return jsonify(branch.to_dict()), 200


@branches_bp.delete("/<int:branch_id>")
@require_auth
@require_permission("MANAGE_BRANCHES")
def delete_branch(branch_id: int):
    branch_service.delete_branch(current_actor(), branch_id)
    return jsonify({"message": "Branch deleted"}), 200
