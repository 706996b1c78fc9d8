# Overview: Staff lifecycle; the only mutation path for profile role and branch.

"""
Staff Management Service

WHY: profiles.role and profiles.branch_id decide what every actor can see.
They change only here, after the Role Policy Evaluator approves, and any
change revokes the target's sessions so stale access cannot linger.

MULTI-TENANT: Every lookup is by primary key followed by a policy check
against the caller's resolved business; branch IDs from input are validated
against that business.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AccessControlError,
    AuthenticationError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Business, Identity, Profile
from ..permissions import BRANCH_UNSCOPED_READERS, Role, role_has_permission
from . import auth_service, session_service
from .concurrency import check_expected_version, commit_versioned
from .policy_service import Operation, ResourceRef, require
from .scope_service import resolve_viewing_branch
from .security_service import log_security_event
from .tenant_service import require_branch_in_business


def _parse_role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(f"Unknown role: {value}")


def _load_profile(profile_id) -> Profile:
    try:
        profile = db.session.get(Profile, int(profile_id))
    except (TypeError, ValueError):
        profile = None
    if profile is None:
        raise NotFoundError("Staff member not found")
    return profile


def _assignable_branch(ctx, branch_id):
    branch = require_branch_in_business(branch_id, ctx.business_id, ctx=ctx)
    if not branch.is_active:
        raise ValidationError("Cannot assign staff to an inactive branch")
    return branch


def _log_staff_event(ctx, event_type: str, profile: Profile, reason: str) -> None:
    log_security_event(
        actor_id=ctx.actor_id,
        event_type=event_type,
        success=True,
        resource=f"profile:{profile.id}",
        reason=reason,
        business_id=ctx.business_id,
        branch_id=profile.branch_id,
        commit=False,
    )


def create_staff(
    ctx,
    email: str,
    role,
    branch_id: int | None = None,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    password: str | None = None,
) -> tuple[Profile, str | None]:
    """
    Create an identity and profile in the caller's business.

    Managers default new staff to their own branch. Without a password a
    temporary one is generated and returned once. New accounts always have
    must_change_password set.

    Returns:
        (profile, temporary_password or None)
    """
    role = _parse_role(role)

    if role is Role.OWNER:
        if branch_id is not None:
            raise ValidationError("Owners are not assigned to a branch")
    elif branch_id is None and not ctx.is_owner and ctx.role not in BRANCH_UNSCOPED_READERS:
        branch_id = ctx.branch_id

    require(ctx, Operation.CREATE_STAFF, ref=ResourceRef.for_new_staff(ctx.business_id, role, branch_id))

    if branch_id is not None:
        branch_id = _assignable_branch(ctx, branch_id).id
    elif role not in BRANCH_UNSCOPED_READERS:
        raise ValidationError(f"A branch is required for the {role.label} role")

    temporary_password = None
    if not password:
        password = temporary_password = auth_service.generate_temporary_password()

    try:
        identity = auth_service.create_identity(email, password, commit=False)
        profile = Profile(
            id=identity.id,
            business_id=ctx.business_id,
            branch_id=branch_id,
            role=role.value,
            email=identity.email,
            first_name=first_name,
            last_name=last_name,
            must_change_password=True,
            is_active=True,
        )
        db.session.add(profile)
        db.session.flush()
        _log_staff_event(ctx, "STAFF_CREATED", profile, f"Created {role.value} {identity.email}")
        db.session.commit()
    except AccessControlError:
        db.session.rollback()
        raise
    except SQLAlchemyError:
        db.session.rollback()
        raise

    return profile, temporary_password


def get_staff(ctx, profile_id) -> Profile:
    profile = _load_profile(profile_id)
    require(ctx, Operation.VIEW_STAFF, ref=ResourceRef.for_profile(profile))
    return profile


def list_staff(ctx, viewing_branch_id=None, include_inactive: bool = False) -> list[Profile]:
    """
    Profiles the actor may see.

    Owner: whole tenant (or one selected branch). Manager: own branch.
    Roles without VIEW_STAFF see only themselves.
    """
    if not role_has_permission(ctx.role, "VIEW_STAFF"):
        return [_load_profile(ctx.actor_id)]

    branch_id = resolve_viewing_branch(ctx, viewing_branch_id)
    query = db.session.query(Profile).filter(Profile.business_id == ctx.business_id)
    if branch_id is not None:
        query = query.filter(Profile.branch_id == branch_id)
    if not include_inactive:
        query = query.filter(Profile.is_active.is_(True))
    return query.order_by(Profile.id).all()


def update_staff(
    ctx,
    profile_id,
    *,
    role=None,
    branch_id: int | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    expected_version: int | None = None,
) -> Profile:
    """
    Update a profile's name, role or branch.

    Role and branch changes revoke all of the target's sessions.

    Raises:
        TenantMismatchError / BranchScopeError / RolePolicyDenied via policy
        ConcurrencyConflict if expected_version is stale
    """
    profile = _load_profile(profile_id)
    new_role = _parse_role(role) if role is not None else None
    business = db.session.get(Business, ctx.business_id)

    require(
        ctx,
        Operation.UPDATE_STAFF,
        ref=ResourceRef.for_profile(profile, business, new_role=new_role, new_branch_id=branch_id),
    )

    check_expected_version(profile, expected_version, "Staff member was modified by another request; reload and retry")

    target_role = new_role or Role(profile.role)
    target_branch = profile.branch_id
    if branch_id is not None and branch_id != profile.branch_id:
        target_branch = _assignable_branch(ctx, branch_id).id
    if target_role is Role.OWNER:
        target_branch = None
    elif target_branch is None and target_role not in BRANCH_UNSCOPED_READERS:
        raise ValidationError(f"A branch is required for the {target_role.label} role")

    access_changed = target_role.value != profile.role or target_branch != profile.branch_id

    changes = []
    if first_name is not None:
        profile.first_name = first_name
        changes.append("first_name")
    if last_name is not None:
        profile.last_name = last_name
        changes.append("last_name")
    if target_role.value != profile.role:
        changes.append(f"role {profile.role}->{target_role.value}")
        profile.role = target_role.value
    if target_branch != profile.branch_id:
        changes.append(f"branch {profile.branch_id}->{target_branch}")
        profile.branch_id = target_branch

    if not changes:
        return profile

    if access_changed:
        session_service.revoke_all_sessions(profile.id, reason="Role or branch changed", commit=False)

    _log_staff_event(ctx, "STAFF_UPDATED", profile, ", ".join(changes))
    commit_versioned("Staff member was modified by another request; reload and retry")
    return profile


def deactivate_staff(ctx, profile_id) -> Profile:
    """
    Soft-delete: the profile stays for historical records but can no longer
    authenticate. All sessions are revoked.
    """
    profile = _load_profile(profile_id)
    business = db.session.get(Business, ctx.business_id)
    require(ctx, Operation.DELETE_STAFF, ref=ResourceRef.for_profile(profile, business))

    if not profile.is_active:
        return profile

    profile.is_active = False
    session_service.revoke_all_sessions(profile.id, reason="Account deactivated", commit=False)
    _log_staff_event(ctx, "STAFF_DEACTIVATED", profile, f"Deactivated {profile.email}")
    commit_versioned()
    return profile


def reset_staff_password(ctx, profile_id, new_password: str | None = None) -> str:
    """
    Set a new (temporary) password for another actor.

    The target must change it at next login, and is signed out everywhere.

    Returns:
        The password that was set
    """
    profile = _load_profile(profile_id)
    require(ctx, Operation.RESET_PASSWORD, ref=ResourceRef.for_profile(profile))

    password = new_password or auth_service.generate_temporary_password()
    identity = db.session.get(Identity, profile.id)
    if identity is None:
        raise NotFoundError("Staff member not found")

    auth_service.set_password(identity, password, commit=False)
    profile.must_change_password = True
    session_service.revoke_all_sessions(profile.id, reason="Password reset", commit=False)
    _log_staff_event(ctx, "STAFF_PASSWORD_RESET", profile, f"Password reset for {profile.email}")
    commit_versioned()
    return password


def change_own_password(ctx, current_password: str, new_password: str) -> None:
    """
    Actor changes their own password; clears must_change_password.

    Raises:
        AuthenticationError: current password is wrong
        PasswordValidationError: new password too weak
    """
    identity = db.session.get(Identity, ctx.actor_id)
    if identity is None or not auth_service.verify_password(current_password or "", identity.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password")

    auth_service.set_password(identity, new_password, commit=False)
    profile = db.session.get(Profile, ctx.actor_id)
    if profile is not None:
        profile.must_change_password = False
    commit_versioned()
