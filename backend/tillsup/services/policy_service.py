# Overview: Role policy evaluator; (actor, operation, resource) -> Decision.

"""
Role Policy Evaluator

WHY: Authorization is derived from the caller's already-resolved ActorContext
and the target's ResourceRef. Nothing here touches the database, so a policy
decision can never recurse into the table it is protecting.

EVALUATION ORDER:
1. Tenant isolation (absolute, whatever the role)
2. Inactive branch blocks every non-owner actor assigned to it
3. Role permission (DEFAULT_ROLE_PERMISSIONS)
4. Operation rules (branch scope, staff-level limits, self-protection)

SELF-PROTECTION:
- Nobody deletes themselves or demotes their own Owner access
- The registered business owner (businesses.owner_id) cannot be demoted or deleted
- A Manager never creates or promotes anyone to Owner or Manager
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from flask import current_app

from ..errors import (
    BranchScopeError,
    BranchInactiveError,
    RolePolicyDenied,
    TenantMismatchError,
    ValidationError,
)
from ..models import ResourceKind
from ..permissions import (
    BRANCH_UNSCOPED_READERS,
    STAFF_LEVEL_ROLES,
    Role,
    role_has_permission,
    roles_with_permission,
)
from .security_service import log_security_event
from .tenant_service import Decision, authorize_tenant_access, log_cross_tenant_attempt


class Operation(str, Enum):
    CREATE_STAFF = "create_staff"
    UPDATE_STAFF = "update_staff"
    DELETE_STAFF = "delete_staff"
    VIEW_STAFF = "view_staff"
    RESET_PASSWORD = "reset_password"
    VIEW_RESOURCE = "view_resource"
    WRITE_RESOURCE = "write_resource"
    SWITCH_BRANCH = "switch_branch"
    MANAGE_BRANCHES = "manage_branches"
    EDIT_BUSINESS = "edit_business"


# Permission needed to read / write each kind of scoped resource
VIEW_PERMISSIONS = {
    ResourceKind.INVENTORY_ITEM: "VIEW_INVENTORY",
    ResourceKind.SALE: "VIEW_BUSINESS_DATA",
    ResourceKind.ATTENDANCE: "VIEW_BUSINESS_DATA",
    ResourceKind.PURCHASE_ORDER: "VIEW_PURCHASE_ORDERS",
    ResourceKind.EXPENSE: "VIEW_EXPENSES",
}

WRITE_PERMISSIONS = {
    ResourceKind.INVENTORY_ITEM: "EDIT_INVENTORY",
    ResourceKind.SALE: "PROCESS_SALES",
    ResourceKind.ATTENDANCE: "RECORD_ATTENDANCE",
    ResourceKind.PURCHASE_ORDER: "MANAGE_PURCHASE_ORDERS",
    ResourceKind.EXPENSE: "CREATE_EXPENSES",
}

# Reading or writing another actor's activity record needs one more grant
ACTIVITY_OVERSIGHT_PERMISSIONS = {
    ResourceKind.SALE: "VIEW_SALES",
    ResourceKind.ATTENDANCE: "MANAGE_ATTENDANCE",
}


@dataclass(frozen=True)
class ResourceRef:
    """
    What an operation targets.

    For staff operations `role`/`branch_id` describe the target profile as it
    is now and `new_role`/`new_branch_id` the requested change (None means
    unchanged). For create_staff they describe the profile to be created.
    """
    business_id: int
    branch_id: int | None = None
    actor_id: int | None = None
    role: Role | None = None
    new_role: Role | None = None
    new_branch_id: int | None = None
    is_business_owner: bool = False

    @classmethod
    def for_profile(cls, profile, business=None, *, new_role=None, new_branch_id=None) -> "ResourceRef":
        return cls(
            business_id=profile.business_id,
            branch_id=profile.branch_id,
            actor_id=profile.id,
            role=Role(profile.role),
            new_role=Role(new_role) if new_role is not None else None,
            new_branch_id=new_branch_id,
            is_business_owner=business is not None and business.owner_id == profile.id,
        )

    @classmethod
    def for_new_staff(cls, business_id: int, role, branch_id: int | None) -> "ResourceRef":
        return cls(business_id=business_id, branch_id=branch_id, role=Role(role))

    @classmethod
    def for_branch(cls, branch) -> "ResourceRef":
        return cls(business_id=branch.business_id, branch_id=branch.id)

    @classmethod
    def for_resource(cls, resource) -> "ResourceRef":
        return cls(
            business_id=resource.business_id,
            branch_id=resource.branch_id,
            actor_id=resource.actor_id,
        )


def _required_role(permission: str) -> str | None:
    # Least senior role that holds the permission
    roles = roles_with_permission(permission)
    return roles[-1].value if roles else None


def _check_permission(ctx, permission: str) -> Decision | None:
    if role_has_permission(ctx.role, permission):
        return None
    required = _required_role(permission)
    label = Role(required).label if required else "a different"
    return Decision.deny(
        RolePolicyDenied,
        f"{ctx.role.label} role cannot do this; requires {label} role",
        required_role=required,
    )


def _in_own_branch(ctx, branch_id) -> bool:
    return branch_id is not None and branch_id == ctx.branch_id


def can_oversee_activity(ctx, kind) -> bool:
    """True when the actor may act on activity records other actors own."""
    permission = ACTIVITY_OVERSIGHT_PERMISSIONS.get(kind)
    return permission is None or role_has_permission(ctx.role, permission)


# Operation rules. Each receives (ctx, resource_kind, ref) after the tenant
# and inactive-branch checks have passed.

def _view_resource(ctx, kind, ref) -> Decision:
    permission = VIEW_PERMISSIONS.get(kind)
    if permission is None:
        return Decision.deny(ValidationError, f"Unknown resource kind: {kind}")
    denied = _check_permission(ctx, permission)
    if denied is not None:
        return denied

    if ctx.role not in BRANCH_UNSCOPED_READERS:
        # Tenant-wide rows (null branch) are visible to everyone in the tenant
        if ref.branch_id is not None and ref.branch_id != ctx.branch_id:
            return Decision.deny(BranchScopeError, "Resource is outside your branch")

    if not can_oversee_activity(ctx, kind):
        if ref.actor_id is not None and ref.actor_id != ctx.actor_id:
            return Decision.deny(
                RolePolicyDenied,
                "Staff can only view their own activity",
                required_role=Role.MANAGER.value,
            )

    return Decision.allow()


def _write_resource(ctx, kind, ref) -> Decision:
    permission = WRITE_PERMISSIONS.get(kind)
    if permission is None:
        return Decision.deny(ValidationError, f"Unknown resource kind: {kind}")
    denied = _check_permission(ctx, permission)
    if denied is not None:
        return denied

    if ctx.is_owner:
        return Decision.allow()

    if ctx.role is Role.ACCOUNTANT and kind == ResourceKind.EXPENSE:
        return Decision.allow()

    if ref.branch_id is None:
        return Decision.deny(
            RolePolicyDenied,
            "Only the business owner can change tenant-wide records",
            required_role=Role.OWNER.value,
        )

    if ref.branch_id != ctx.branch_id:
        return Decision.deny(BranchScopeError, "Resource is outside your branch")

    if not can_oversee_activity(ctx, kind) and ref.actor_id != ctx.actor_id:
        return Decision.deny(
            RolePolicyDenied,
            "Staff can only record their own activity",
            required_role=Role.MANAGER.value,
        )

    return Decision.allow()


def _create_staff(ctx, kind, ref) -> Decision:
    if ref.role is None:
        return Decision.deny(ValidationError, "Role is required")
    denied = _check_permission(ctx, "CREATE_STAFF")
    if denied is not None:
        return denied

    if ctx.is_owner:
        return Decision.allow()

    if ref.role not in STAFF_LEVEL_ROLES:
        return Decision.deny(
            RolePolicyDenied,
            f"Managers can only create cashier or staff accounts, not {ref.role.label}",
            required_role=Role.OWNER.value,
        )

    if not _in_own_branch(ctx, ref.branch_id):
        return Decision.deny(BranchScopeError, "Managers can only add staff to their own branch")

    return Decision.allow()


def _update_staff(ctx, kind, ref) -> Decision:
    if ref.actor_id == ctx.actor_id:
        if ref.new_role is not None and ref.new_role is not ctx.role:
            if ctx.is_owner:
                return Decision.deny(RolePolicyDenied, "You cannot demote your own owner access")
            return Decision.deny(RolePolicyDenied, "You cannot change your own role")
        if ref.new_branch_id is not None and ref.new_branch_id != ref.branch_id:
            return Decision.deny(RolePolicyDenied, "You cannot change your own branch")
        return Decision.allow()

    denied = _check_permission(ctx, "EDIT_STAFF")
    if denied is not None:
        return denied

    if ctx.is_owner:
        if ref.is_business_owner and ref.new_role not in (None, Role.OWNER):
            return Decision.deny(RolePolicyDenied, "The registered business owner cannot be demoted")
        return Decision.allow()

    if ref.role not in STAFF_LEVEL_ROLES:
        return Decision.deny(
            RolePolicyDenied,
            "Managers can only edit cashier or staff accounts",
            required_role=Role.OWNER.value,
        )
    if not _in_own_branch(ctx, ref.branch_id):
        return Decision.deny(BranchScopeError, "Staff member is outside your branch")
    if ref.new_role is not None and ref.new_role not in STAFF_LEVEL_ROLES:
        return Decision.deny(
            RolePolicyDenied,
            f"Managers cannot promote staff to {ref.new_role.label}",
            required_role=Role.OWNER.value,
        )
    if ref.new_branch_id is not None and ref.new_branch_id != ctx.branch_id:
        return Decision.deny(BranchScopeError, "Managers cannot move staff to another branch")

    return Decision.allow()


def _delete_staff(ctx, kind, ref) -> Decision:
    if ref.actor_id == ctx.actor_id:
        return Decision.deny(RolePolicyDenied, "You cannot delete your own account")
    denied = _check_permission(ctx, "DELETE_STAFF")
    if denied is not None:
        return denied
    if ref.is_business_owner:
        return Decision.deny(RolePolicyDenied, "The registered business owner cannot be deleted")
    return Decision.allow()


def _view_staff(ctx, kind, ref) -> Decision:
    if ref.actor_id == ctx.actor_id:
        return Decision.allow()
    denied = _check_permission(ctx, "VIEW_STAFF")
    if denied is not None:
        return denied
    if ctx.is_owner:
        return Decision.allow()
    if not _in_own_branch(ctx, ref.branch_id):
        return Decision.deny(BranchScopeError, "Staff member is outside your branch")
    return Decision.allow()


def _reset_password(ctx, kind, ref) -> Decision:
    if ref.actor_id == ctx.actor_id:
        return Decision.deny(RolePolicyDenied, "Use change password to update your own password")
    denied = _check_permission(ctx, "RESET_STAFF_PASSWORD")
    if denied is not None:
        return denied
    if ctx.is_owner:
        return Decision.allow()
    if ref.role not in STAFF_LEVEL_ROLES:
        return Decision.deny(
            RolePolicyDenied,
            "Managers can only reset cashier or staff passwords",
            required_role=Role.OWNER.value,
        )
    if not _in_own_branch(ctx, ref.branch_id):
        return Decision.deny(BranchScopeError, "Staff member is outside your branch")
    return Decision.allow()


def _permission_only(permission: str):
    def rule(ctx, kind, ref) -> Decision:
        denied = _check_permission(ctx, permission)
        return denied if denied is not None else Decision.allow()
    return rule


_RULES = {
    Operation.VIEW_RESOURCE: _view_resource,
    Operation.WRITE_RESOURCE: _write_resource,
    Operation.CREATE_STAFF: _create_staff,
    Operation.UPDATE_STAFF: _update_staff,
    Operation.DELETE_STAFF: _delete_staff,
    Operation.VIEW_STAFF: _view_staff,
    Operation.RESET_PASSWORD: _reset_password,
    Operation.SWITCH_BRANCH: _permission_only("SWITCH_BRANCH"),
    Operation.MANAGE_BRANCHES: _permission_only("MANAGE_BRANCHES"),
    Operation.EDIT_BUSINESS: _permission_only("EDIT_BUSINESS"),
}


def authorize(ctx, operation, resource_kind: str | None = None, ref: ResourceRef | None = None) -> Decision:
    """
    Decide whether the actor may perform an operation on a resource.

    Pure function of (ctx, operation, resource_kind, ref); no I/O.
    `ref` defaults to the actor's own business with no branch.
    """
    try:
        operation = Operation(operation)
    except ValueError:
        return Decision.deny(ValidationError, f"Unknown operation: {operation}")

    if ref is None:
        ref = ResourceRef(business_id=ctx.business_id)

    tenant = authorize_tenant_access(ctx, ref.business_id)
    if not tenant.allowed:
        return tenant

    if not ctx.is_owner and not ctx.branch_active:
        return Decision.deny(BranchInactiveError, "Your assigned branch is inactive")

    return _RULES[operation](ctx, resource_kind, ref)


_EVENT_TYPES = (
    (TenantMismatchError, "CROSS_TENANT_ACCESS_DENIED"),
    (BranchScopeError, "BRANCH_SCOPE_DENIED"),
    (RolePolicyDenied, "POLICY_DENIED"),
)


def require(ctx, operation, resource_kind: str | None = None, ref: ResourceRef | None = None) -> Decision:
    """
    Enforce authorize(), raising the typed error on denial.

    Denials are written to the security event log before raising; malformed
    requests (ValidationError) are not security events.
    """
    decision = authorize(ctx, operation, resource_kind, ref)
    if decision.allowed:
        return decision

    op_name = operation.value if isinstance(operation, Operation) else str(operation)
    target = f"{resource_kind or op_name}:{ref.actor_id or ref.branch_id or ref.business_id}" if ref else None

    if decision.error is TenantMismatchError:
        log_cross_tenant_attempt(
            ctx,
            f"{op_name} on {target} denied: {decision.reason}",
        )
    else:
        for error_class, event_type in _EVENT_TYPES:
            if decision.error is not None and issubclass(decision.error, error_class):
                current_app.logger.info(
                    "Denied %s for actor %s: %s", op_name, ctx.actor_id, decision.reason,
                )
                log_security_event(
                    actor_id=ctx.actor_id,
                    event_type=event_type,
                    success=False,
                    action=op_name,
                    reason=decision.reason,
                    business_id=ctx.business_id,
                    branch_id=ctx.branch_id,
                )
                break

    decision.raise_for_denial()
    return decision
