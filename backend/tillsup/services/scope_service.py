# Overview: Branch scope filter for queries and in-memory lists of scoped resources.

"""
Branch Scope Filter

WHY: Tenant isolation alone lets a Manager read every branch of their
business. This filter narrows visible rows to the actor's branch, with
tenant-wide (null-branch) rows always visible inside the tenant.

RULES:
- Every result is filtered to ctx.business_id first
- Owner: all branches, or one explicitly selected viewing branch
- Accountant: all branches (tenant-wide reader, cannot switch branch)
- Manager / Cashier / Staff: own branch only
- Without VIEW_SALES / MANAGE_ATTENDANCE: sales / attendance limited to
  the actor's own records
- Non-owner on a deactivated branch: BranchInactiveError

The Owner's selected branch is per-session view state passed in explicitly;
there is no process-wide "current branch".
"""

from __future__ import annotations

from sqlalchemy import or_

from ..errors import BranchInactiveError, BranchScopeError, RolePolicyDenied
from ..models import ScopedResource
from ..permissions import BRANCH_UNSCOPED_READERS, Role
from .policy_service import ACTIVITY_OVERSIGHT_PERMISSIONS, can_oversee_activity
from .tenant_service import require_branch_in_business


def resolve_viewing_branch(ctx, requested_branch_id=None) -> int | None:
    """
    Branch the actor is looking at; None means every branch of the tenant.

    Raises:
        BranchInactiveError: non-owner assigned to a deactivated branch
        BranchScopeError: branch-scoped actor asked for another branch
        RolePolicyDenied: accountant asked to switch branch
        NotFoundError: owner selected an unknown or foreign branch
    """
    if not ctx.is_owner and not ctx.branch_active:
        raise BranchInactiveError("Your assigned branch is inactive")

    if requested_branch_id in (None, ""):
        if ctx.role in BRANCH_UNSCOPED_READERS:
            return None
        return ctx.branch_id

    if ctx.is_owner:
        # Deactivated branches stay selectable so their history can be read
        return require_branch_in_business(requested_branch_id, ctx.business_id, ctx=ctx).id

    if ctx.role in BRANCH_UNSCOPED_READERS:
        raise RolePolicyDenied(
            "Only the business owner can switch branches",
            required_role=Role.OWNER.value,
        )

    try:
        requested = int(requested_branch_id)
    except (TypeError, ValueError):
        raise BranchScopeError("Branch is outside your scope")
    if requested != ctx.branch_id:
        raise BranchScopeError("Branch is outside your scope")
    return ctx.branch_id


def _own_activity_kinds(ctx) -> list[str]:
    """Activity kinds the actor may only see for their own records."""
    return sorted(kind for kind in ACTIVITY_OVERSIGHT_PERMISSIONS if not can_oversee_activity(ctx, kind))


def _visible(ctx, resource, branch_id: int | None) -> bool:
    if resource.business_id != ctx.business_id:
        return False
    if branch_id is not None and resource.branch_id not in (None, branch_id):
        return False
    if not can_oversee_activity(ctx, getattr(resource, "kind", None)):
        return getattr(resource, "actor_id", None) in (None, ctx.actor_id)
    return True


def filter_by_scope(ctx, resource_query, viewing_branch_id=None, *, model=ScopedResource):
    """
    Narrow a SQLAlchemy query (or an in-memory list) to what the actor may see.

    Args:
        ctx: resolved ActorContext
        resource_query: Query over `model`, or an iterable of resources
        viewing_branch_id: Owner's branch selection (None = all branches)
        model: mapped class with business_id / branch_id columns

    Returns:
        The narrowed query, or a new list when given a list
    """
    branch_id = resolve_viewing_branch(ctx, viewing_branch_id)

    if not hasattr(resource_query, "filter"):
        return [r for r in resource_query if _visible(ctx, r, branch_id)]

    query = resource_query.filter(model.business_id == ctx.business_id)

    if branch_id is not None:
        query = query.filter(or_(model.branch_id == branch_id, model.branch_id.is_(None)))

    own_only = _own_activity_kinds(ctx)
    if own_only and hasattr(model, "kind") and hasattr(model, "actor_id"):
        query = query.filter(or_(
            model.kind.notin_(own_only),
            model.actor_id == ctx.actor_id,
            model.actor_id.is_(None),
        ))

    return query
