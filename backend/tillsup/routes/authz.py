# Overview: Authorization check endpoint for external collaborators (UI, reporting).

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Business, Profile, ScopedResource
from ..permissions import Role, get_role_permissions, permission_catalog
from ..services.identity_service import current_actor
from ..services.policy_service import ResourceRef, authorize


authz_bp = Blueprint("authz", __name__, url_prefix="/api/authz")


def _role(value):
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"Unknown role: {value}")


def _int_field(data: dict, name: str):
    value = data.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number")


def _ref_from_request(ctx, data: dict):
    """
    Build (resource_kind, ResourceRef) from a check request.

    Targets can be named by resource_id or profile_id (loaded by primary
    key) or described inline.
    """
    kind = data.get("resource_kind")

    resource_id = _int_field(data, "resource_id")
    if resource_id is not None:
        resource = db.session.get(ScopedResource, resource_id)
        if resource is None:
            raise NotFoundError("Resource not found")
        return kind or resource.kind, ResourceRef.for_resource(resource)

    profile_id = _int_field(data, "profile_id")
    if profile_id is not None:
        profile = db.session.get(Profile, profile_id)
        if profile is None:
            raise NotFoundError("Staff member not found")
        business = db.session.get(Business, profile.business_id)
        return kind, ResourceRef.for_profile(
            profile,
            business,
            new_role=_role(data.get("new_role")),
            new_branch_id=_int_field(data, "new_branch_id"),
        )

    business_id = _int_field(data, "business_id")
    return kind, ResourceRef(
        business_id=ctx.business_id if business_id is None else business_id,
        branch_id=_int_field(data, "branch_id"),
        actor_id=_int_field(data, "actor_id"),
        role=_role(data.get("role")),
        new_role=_role(data.get("new_role")),
        new_branch_id=_int_field(data, "new_branch_id"),
    )


@authz_bp.post("/check")
@require_auth
def check_route():
    """
    Evaluate a policy decision without performing the operation.

    Always 200 with {allowed, reason, code}; denials are not logged here
    because nothing was attempted.
    """
    data = request.get_json(silent=True) or {}
    operation = data.get("operation")
    if not operation:
        raise ValidationError("operation is required")

    ctx = current_actor()
    kind, ref = _ref_from_request(ctx, data)
    decision = authorize(ctx, operation, kind, ref)
    return jsonify(decision.to_dict()), 200


@authz_bp.get("/permissions")
@require_auth
def permissions_route():
    """
    Permission catalog grouped by category, plus the caller's own grants.

    Read-only reference for UIs deciding which controls to render.
    """
    ctx = current_actor()
    return jsonify({
        "role": ctx.role.value,
        "granted": sorted(get_role_permissions(ctx.role)),
        "catalog": permission_catalog(),
    }), 200
