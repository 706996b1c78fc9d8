# Overview: Flask API routes for the caller's business: ownership repair and audit views.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..models import Business
from ..services import ownership_service
from ..services.identity_service import current_actor
from ..services.policy_service import Operation, ResourceRef, require
from ..services.security_service import list_security_events
from ..services.tenant_service import require_tenant_access


businesses_bp = Blueprint("businesses", __name__, url_prefix="/api/businesses")


def _require_business_owner(business_id: int):
    ctx = current_actor()
    require_tenant_access(ctx, business_id)
    require(ctx, Operation.EDIT_BUSINESS, ref=ResourceRef(business_id=business_id))
    return ctx


@businesses_bp.get("/current")
@require_auth
def current_business():
    ctx = current_actor()
    business = db.session.get(Business, ctx.business_id)
    return jsonify(business.to_dict()), 200


@businesses_bp.post("/<int:business_id>/repair-ownership")
@require_auth
def repair_ownership(business_id: int):
    """
    Owner-triggered ownership check. Operators repair other tenants via
    `flask ownership repair`.
    """
    ctx = _require_business_owner(business_id)
    result = ownership_service.repair_ownership(business_id, triggered_by=f"actor:{ctx.actor_id}")
    status = 200 if result.ok else 409
    return jsonify(result.to_dict()), status


@businesses_bp.get("/<int:business_id>/security-events")
@require_auth
def security_events(business_id: int):
    _require_business_owner(business_id)
    events = list_security_events(
        business_id,
        event_type=request.args.get("event_type") or None,
        limit=min(request.args.get("limit", 100, type=int), 500),
    )
    return jsonify([event.to_dict() for event in events]), 200
