# Overview: Scoped resource reads/writes and versioned stock adjustments.

"""
Scoped Resource Service

MULTI-TENANT: Resources are created in the caller's business and read through
the Branch Scope Filter. Individual reads and writes go through the Role
Policy Evaluator with a ResourceRef built from the stored row.

CONCURRENCY: adjust_stock is serializable per resource. The caller sends the
version it read; the ORM update is also guarded by version_id_col, so two
writers that read the same version cannot both commit. The loser gets
ConcurrencyConflict and no StockAdjustment row.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Profile, ResourceKind, ScopedResource, StockAdjustment
from ..permissions import BRANCH_UNSCOPED_READERS, role_has_permission
from .concurrency import check_expected_version, commit_versioned
from .policy_service import VIEW_PERMISSIONS, Operation, ResourceRef, require
from .scope_service import filter_by_scope
from .tenant_service import require_branch_in_business


def _validate_kind(kind) -> str:
    if kind not in ResourceKind.ALL:
        raise ValidationError(f"Unknown resource kind: {kind}")
    return kind


def _load_resource(resource_id) -> ScopedResource:
    try:
        resource = db.session.get(ScopedResource, int(resource_id))
    except (TypeError, ValueError):
        resource = None
    if resource is None:
        raise NotFoundError("Resource not found")
    return resource


def create_resource(
    ctx,
    kind: str,
    name: str,
    *,
    branch_id: int | None = None,
    quantity: int = 0,
    payload: dict | None = None,
    actor_id: int | None = None,
) -> ScopedResource:
    """
    Create a record in the caller's business.

    Branch-scoped actors default to their own branch; owners and accountants
    create tenant-wide records when no branch is given. Sales and attendance
    default to the caller as the acting profile.
    """
    kind = _validate_kind(kind)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    try:
        quantity = int(quantity or 0)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 0:
        raise ValidationError("Quantity cannot be negative")

    if branch_id is None and ctx.role not in BRANCH_UNSCOPED_READERS:
        branch_id = ctx.branch_id

    if actor_id is None and kind in ResourceKind.ACTIVITY:
        actor_id = ctx.actor_id

    require(
        ctx,
        Operation.WRITE_RESOURCE,
        kind,
        ResourceRef(business_id=ctx.business_id, branch_id=branch_id, actor_id=actor_id),
    )

    if branch_id is not None:
        branch = require_branch_in_business(branch_id, ctx.business_id, ctx=ctx)
        if not branch.is_active:
            raise ValidationError("Cannot record data against an inactive branch")
        branch_id = branch.id

    if actor_id is not None and actor_id != ctx.actor_id:
        subject = db.session.get(Profile, actor_id)
        if subject is None or subject.business_id != ctx.business_id:
            raise NotFoundError("Staff member not found")

    resource = ScopedResource(
        business_id=ctx.business_id,
        branch_id=branch_id,
        kind=kind,
        actor_id=actor_id,
        name=name,
        quantity=quantity,
        payload=payload or {},
    )
    db.session.add(resource)
    db.session.commit()
    return resource


def get_resource(ctx, resource_id) -> ScopedResource:
    resource = _load_resource(resource_id)
    require(ctx, Operation.VIEW_RESOURCE, resource.kind, ResourceRef.for_resource(resource))
    return resource


def list_resources(ctx, kind: str | None = None, viewing_branch_id=None) -> list[ScopedResource]:
    """
    Resources visible to the actor, optionally narrowed to one kind.

    Without a kind, only kinds the actor's role may view are returned.
    """
    query = db.session.query(ScopedResource)

    if kind is not None:
        kind = _validate_kind(kind)
        require(ctx, Operation.VIEW_RESOURCE, kind, ResourceRef(business_id=ctx.business_id))
        query = query.filter(ScopedResource.kind == kind)
    else:
        viewable = [k for k in ResourceKind.ALL if role_has_permission(ctx.role, VIEW_PERMISSIONS[k])]
        query = query.filter(ScopedResource.kind.in_(viewable))

    query = filter_by_scope(ctx, query, viewing_branch_id)
    return query.order_by(ScopedResource.id).all()


def adjust_stock(
    ctx,
    resource_id,
    delta: int,
    expected_version: int | None = None,
    reason: str | None = None,
) -> tuple[ScopedResource, StockAdjustment]:
    """
    Apply a quantity delta to an inventory item with an audit row.

    Args:
        expected_version: version_id the caller read; a mismatch is a conflict

    Raises:
        ConcurrencyConflict: the item changed since expected_version, or a
            concurrent writer committed first
        ValidationError: zero delta, non-inventory resource, or negative result
    """
    try:
        delta = int(delta)
    except (TypeError, ValueError):
        raise ValidationError("Delta must be a whole number")
    if delta == 0:
        raise ValidationError("Delta must be non-zero")

    resource = _load_resource(resource_id)
    require(ctx, Operation.WRITE_RESOURCE, resource.kind, ResourceRef.for_resource(resource))

    if resource.kind != ResourceKind.INVENTORY_ITEM:
        raise ValidationError("Stock can only be adjusted on inventory items")

    check_expected_version(resource, expected_version, "Stock was adjusted by another request; reload and retry")

    before = resource.quantity
    after = before + delta
    if after < 0:
        raise ValidationError(f"Insufficient stock: {before} on hand, adjustment {delta}")

    resource.quantity = after
    adjustment = StockAdjustment(
        resource_id=resource.id,
        business_id=resource.business_id,
        branch_id=resource.branch_id,
        actor_id=ctx.actor_id,
        delta=delta,
        quantity_before=before,
        quantity_after=after,
        reason=reason,
    )
    db.session.add(adjustment)
    commit_versioned("Stock was adjusted by another request; reload and retry")
    return resource, adjustment


def list_adjustments(ctx, resource_id) -> list[StockAdjustment]:
    resource = get_resource(ctx, resource_id)
    return (
        db.session.query(StockAdjustment)
        .filter_by(resource_id=resource.id)
        .order_by(StockAdjustment.id)
        .all()
    )
