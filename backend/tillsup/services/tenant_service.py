# Overview: Tenant isolation guard and tenant validation helpers.

"""
Multi-Tenant Service: Tenant Isolation Guard

WHY: Every data access is scoped to exactly one business (tenant), and
cross-tenant access is always denied. The check runs in-process against the
already-resolved ActorContext; it never re-reads the profiles table to find
out who the caller is.

SECURITY INVARIANTS:
1. Every authenticated request carries a resolved ActorContext
2. Branch IDs from client input are validated against ctx.business_id
3. Queries touching tenant data filter by business_id (see scope_service)
4. Cross-tenant access attempts are logged as security events

USAGE:
    from tillsup.services.tenant_service import require_tenant_access, require_branch_in_business

    require_tenant_access(ctx, resource.business_id)
    branch = require_branch_in_business(request_branch_id, ctx.business_id)
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, has_request_context, request

from ..errors import (
    AccessControlError,
    NotFoundError,
    OwnershipUnrepairable,
    RolePolicyDenied,
    TenantMismatchError,
)
from ..extensions import db
from ..models import Branch, Business
from ..time_utils import Deadline
from .ownership_service import OwnershipState, inspect_ownership, known_unrepairable, repair_ownership
from .security_service import log_security_event


@dataclass(frozen=True)
class Decision:
    """
    Outcome of an authorization check.

    A denial carries the exception class callers raise, so a Decision can be
    inspected (authz check endpoint) or enforced (raise_for_denial).
    """
    allowed: bool
    reason: str | None = None
    error: type[AccessControlError] | None = None
    required_role: str | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: type[AccessControlError], reason: str, required_role: str | None = None) -> "Decision":
        return cls(allowed=False, reason=reason, error=error, required_role=required_role)

    @property
    def code(self) -> str | None:
        return self.error.code if self.error else None

    def __bool__(self) -> bool:
        return self.allowed

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        if self.error is not None and issubclass(self.error, RolePolicyDenied):
            raise self.error(self.reason, required_role=self.required_role)
        raise (self.error or AccessControlError)(self.reason)

    def to_dict(self) -> dict:
        payload = {"allowed": self.allowed, "reason": self.reason, "code": self.code}
        if self.required_role:
            payload["required_role"] = self.required_role
        return payload


def authorize_tenant_access(ctx, resource_business_id: int | None) -> Decision:
    """
    Allow iff the resource belongs to the actor's business.

    Pure comparison against the resolved context. A resource with no
    business at all is treated as foreign.
    """
    if resource_business_id is not None and resource_business_id == ctx.business_id:
        return Decision.allow()
    return Decision.deny(
        TenantMismatchError,
        "Resource belongs to a different business",
    )


def require_tenant_access(ctx, business_id: int | None) -> None:
    """
    Enforce tenant isolation, logging denials.

    Raises:
        TenantMismatchError if business_id is not the actor's business
    """
    decision = authorize_tenant_access(ctx, business_id)
    if not decision.allowed:
        log_cross_tenant_attempt(
            ctx,
            f"Actor {ctx.actor_id} of business {ctx.business_id} targeted business {business_id}",
        )
        decision.raise_for_denial()


def require_branch_in_business(branch_id: int, business_id: int, *, ctx=None) -> Branch:
    """
    Validate that a client-supplied branch belongs to the business.

    SECURITY: Unknown and foreign branch IDs get the same "Branch not found"
    answer so a probe cannot learn that a branch exists in another tenant.
    The foreign case is still logged as a cross-tenant attempt.

    Raises:
        NotFoundError if the branch doesn't exist or belongs to another business
    """
    try:
        branch_id = int(branch_id)
    except (TypeError, ValueError):
        raise NotFoundError("Branch not found")

    branch = db.session.get(Branch, branch_id)

    if branch is None:
        raise NotFoundError("Branch not found")

    if branch.business_id != business_id:
        # CRITICAL: Cross-tenant access attempt
        log_cross_tenant_attempt(
            ctx,
            f"Branch {branch_id} belongs to business {branch.business_id}, not {business_id}",
            business_id=business_id,
        )
        raise NotFoundError("Branch not found")

    return branch


def get_business_branches(business_id: int, active_only: bool = False) -> list[Branch]:
    query = db.session.query(Branch).filter_by(business_id=business_id)
    if active_only:
        query = query.filter(Branch.is_active.is_(True))
    return query.order_by(Branch.name).all()


def ensure_business_operational(business: Business, deadline: Deadline | None = None) -> Business:
    """
    Fail closed, promptly, on broken ownership linkage.

    VALID passes straight through. ORPHANED and DANGLING trigger an
    opportunistic repair bounded by the remaining deadline; if the business
    cannot be repaired the caller gets OwnershipUnrepairable rather than a
    stall or a fabricated owner.

    A tenant already recorded as unrepairable in the same state fails
    without another repair attempt.
    """
    if inspect_ownership(business) is OwnershipState.VALID:
        return business

    business_id = business.id
    if known_unrepairable(business):
        raise OwnershipUnrepairable(
            "Business ownership is broken and requires operator action",
            business_id=business_id,
        )

    repair_budget = current_app.config.get("OWNERSHIP_REPAIR_TIMEOUT_MS", 500)
    result = repair_ownership(
        business_id,
        deadline=deadline.child(repair_budget) if deadline else None,
        triggered_by="identity_resolver",
    )

    if not result.ok:
        raise OwnershipUnrepairable(
            "Business ownership is broken and requires operator action",
            business_id=business_id,
        )

    return db.session.get(Business, business_id)


def log_cross_tenant_attempt(ctx, reason: str, business_id: int | None = None) -> None:
    """
    Log a cross-tenant access attempt as a security event.

    SECURITY: Critical audit trail for detecting unauthorized access attempts.
    These events should be monitored and alerted on.
    """
    actor_id = getattr(ctx, "actor_id", None)
    if business_id is None:
        business_id = getattr(ctx, "business_id", None)

    current_app.logger.warning("Cross-tenant access denied: %s", reason)
    log_security_event(
        actor_id=actor_id,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        action=request.method if has_request_context() else None,
        reason=reason,
        business_id=business_id,
        branch_id=getattr(ctx, "branch_id", None),
    )
