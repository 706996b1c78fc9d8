# Overview: Branch management within a business (owner only).

"""
Branch Service

MULTI-TENANT: Branches are created inside the caller's business; IDs from
input are validated with require_branch_in_business.

LIFECYCLE:
- Deactivating keeps every profile and record scoped to the branch; actors
  assigned to it are blocked until reactivated or reassigned
- Deleting is refused while any profile or scoped resource references it
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Branch, Profile, ScopedResource
from ..permissions import role_has_permission
from .concurrency import check_expected_version, commit_versioned
from .policy_service import Operation, ResourceRef, require
from .scope_service import resolve_viewing_branch
from .tenant_service import get_business_branches, require_branch_in_business


def _ensure_unique_name(business_id: int, name: str, exclude_id: int | None = None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Branch name is required")

    query = db.session.query(Branch).filter(
        Branch.business_id == business_id,
        func.lower(Branch.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.filter(Branch.id != exclude_id)
    if query.first() is not None:
        raise ValidationError(f"A branch named '{name}' already exists")
    return name


def list_branches(ctx) -> list[Branch]:
    """VIEW_BRANCHES holders (Owner, Accountant) see every branch; others only their own."""
    own_branch_id = resolve_viewing_branch(ctx)
    if role_has_permission(ctx.role, "VIEW_BRANCHES"):
        return get_business_branches(ctx.business_id)
    return [require_branch_in_business(own_branch_id, ctx.business_id, ctx=ctx)]


def create_branch(ctx, name: str, location: str | None = None) -> Branch:
    require(ctx, Operation.MANAGE_BRANCHES, ref=ResourceRef(business_id=ctx.business_id))
    name = _ensure_unique_name(ctx.business_id, name)

    branch = Branch(business_id=ctx.business_id, name=name, location=location, is_active=True)
    db.session.add(branch)
    db.session.commit()
    return branch


def _load_for_management(ctx, branch_id) -> Branch:
    branch = require_branch_in_business(branch_id, ctx.business_id, ctx=ctx)
    require(ctx, Operation.MANAGE_BRANCHES, ref=ResourceRef.for_branch(branch))
    return branch


def update_branch(
    ctx,
    branch_id,
    *,
    name: str | None = None,
    location: str | None = None,
    expected_version: int | None = None,
) -> Branch:
    branch = _load_for_management(ctx, branch_id)

    check_expected_version(branch, expected_version, "Branch was modified by another request; reload and retry")

    if name is not None:
        branch.name = _ensure_unique_name(ctx.business_id, name, exclude_id=branch.id)
    if location is not None:
        branch.location = location

    commit_versioned("Branch was modified by another request; reload and retry")
    return branch


def set_branch_active(ctx, branch_id, active: bool) -> Branch:
    """
    Activate or deactivate a branch. History scoped to it is kept.
    """
    branch = _load_for_management(ctx, branch_id)
    if branch.is_active == active:
        return branch

    branch.is_active = active
    commit_versioned("Branch was modified by another request; reload and retry")
    return branch


def delete_branch(ctx, branch_id) -> None:
    """
    Hard-delete an unused branch.

    Raises:
        ValidationError if any profile or scoped resource still references it
    """
    branch = _load_for_management(ctx, branch_id)

    assigned = db.session.query(Profile.id).filter(Profile.branch_id == branch.id).count()
    if assigned:
        raise ValidationError(
            f"Branch has {assigned} assigned staff; reassign them or deactivate the branch instead"
        )

    records = db.session.query(ScopedResource.id).filter(ScopedResource.branch_id == branch.id).count()
    if records:
        raise ValidationError("Branch has recorded data; deactivate it instead")

    db.session.delete(branch)
    db.session.commit()
