# Overview: Flask API routes for scoped resources; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import ValidationError
from ..services import resource_service
from ..services.identity_service import current_actor


resources_bp = Blueprint("resources", __name__, url_prefix="/api/resources")


@resources_bp.get("")
@require_auth
def list_resources():
    """
    Query params:
        kind: inventory_item | sale | attendance | purchase_order | expense
        branch_id: Owner's viewing branch (omit for all branches)
    """
    resources = resource_service.list_resources(
        current_actor(),
        kind=request.args.get("kind") or None,
        viewing_branch_id=request.args.get("branch_id") or None,
    )
    return jsonify([resource.to_dict() for resource in resources]), 200


@resources_bp.post("")
@require_auth
def create_resource():
    data = request.get_json(silent=True) or {}
    resource = resource_service.create_resource(
        current_actor(),
        kind=data.get("kind"),
        name=data.get("name"),
        branch_id=data.get("branch_id"),
        quantity=data.get("quantity", 0),
        payload=data.get("payload"),
        actor_id=data.get("actor_id"),
    )
    return jsonify(resource.to_dict()), 201


@resources_bp.get("/<int:resource_id>")
@require_auth
def get_resource(resource_id: int):
    resource = resource_service.get_resource(current_actor(), resource_id)
    return jsonify(resource.to_dict()), 200


@resources_bp.post("/<int:resource_id>/adjust")
@require_auth
def adjust_resource(resource_id: int):
    """
    Body: {"delta": int, "version_id": int, "reason": str}

    version_id is the version the client read; 409 CONCURRENCY_CONFLICT means
    reload and retry.
    """
    data = request.get_json(silent=True) or {}
    if data.get("version_id") is None:
        raise ValidationError("version_id is required")

    resource, adjustment = resource_service.adjust_stock(
        current_actor(),
        resource_id,
        delta=data.get("delta"),
        expected_version=data.get("version_id"),
        reason=data.get("reason"),
    )
    return jsonify({"resource": resource.to_dict(), "adjustment": adjustment.to_dict()}), 200


@resources_bp.get("/<int:resource_id>/adjustments")
@require_auth
def list_adjustments(resource_id: int):
    adjustments = resource_service.list_adjustments(current_actor(), resource_id)
    return jsonify([adjustment.to_dict() for adjustment in adjustments]), 200
