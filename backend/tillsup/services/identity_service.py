# Overview: Identity resolver; bearer token -> ActorContext, cached per request.

"""
Identity Resolver

WHY: Every authorization decision needs the caller's business, role and
branch. Reading them through the same policy layer that guards the profiles
table is a self-reference that never terminates, so the caller's own profile
is fetched once through a privileged primary-key lookup and the result is
treated as trusted input for the rest of the request.

RESOLUTION (O(1) queries, bounded by AUTHZ_TIMEOUT_MS):
1. Session token -> identity (hashed token lookup)
2. Identity id -> profile (primary key)
3. profile.business_id -> business (primary key) + ownership guard
4. profile.branch_id -> branch (primary key)

FAILURES:
- AuthenticationError: token missing/invalid/expired/revoked, account deactivated
- IdentityNotFoundError: valid token but no profile (route to provisioning)
- OwnershipUnrepairable: tenant ownership broken beyond automatic repair
- AuthorizationTimeout: the budget elapsed
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, g, request

from ..errors import AuthenticationError, IdentityNotFoundError, OwnershipUnrepairable, TenantMismatchError
from ..extensions import db
from ..models import Branch, Business, Profile
from ..permissions import BRANCH_UNSCOPED_READERS, STAFF_LEVEL_ROLES, Role
from ..time_utils import Deadline
from . import session_service
from .concurrency import apply_statement_timeout, translate_timeouts
from .tenant_service import ensure_business_operational


@dataclass(frozen=True)
class ActorContext:
    """Resolved, trusted view of the caller for one request."""
    actor_id: int
    business_id: int
    role: Role
    branch_id: int | None
    branch_active: bool
    email: str | None = None
    must_change_password: bool = False

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    @property
    def is_staff_level(self) -> bool:
        return self.role in STAFF_LEVEL_ROLES

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "business_id": self.business_id,
            "role": self.role.value,
            "role_label": self.role.label,
            "branch_id": self.branch_id,
            "branch_active": self.branch_active,
            "email": self.email,
            "must_change_password": self.must_change_password,
        }


def context_for_profile(profile: Profile, branch: Branch | None) -> ActorContext:
    """
    Build an ActorContext from already-loaded rows.

    Branch-unscoped roles (owner, accountant) without a branch count as
    active; any other role without a live branch is blocked downstream.
    """
    role = Role(profile.role)
    if profile.branch_id is None:
        branch_active = role in BRANCH_UNSCOPED_READERS
    else:
        branch_active = branch is not None and bool(branch.is_active)

    return ActorContext(
        actor_id=profile.id,
        business_id=profile.business_id,
        role=role,
        branch_id=profile.branch_id,
        branch_active=branch_active,
        email=profile.email,
        must_change_password=bool(profile.must_change_password),
    )


def resolve_actor(token: str | None, *, deadline: Deadline | None = None) -> ActorContext:
    """
    Resolve a bearer token into an ActorContext.

    Raises:
        AuthenticationError, IdentityNotFoundError, TenantMismatchError,
        OwnershipUnrepairable, AuthorizationTimeout
    """
    if deadline is None:
        deadline = Deadline(current_app.config.get("AUTHZ_TIMEOUT_MS", 300))

    if not token:
        raise AuthenticationError("Authentication required")

    session_context = translate_timeouts(
        lambda: session_service.validate_session(token),
        stage="session validation",
    )
    if session_context is None:
        raise AuthenticationError("Invalid or expired token")
    identity_id = session_context.identity.id

    deadline.check("session validation")
    apply_statement_timeout(deadline.remaining_ms)

    # Privileged primary-key read of the caller's own profile
    profile = translate_timeouts(lambda: db.session.get(Profile, identity_id), stage="profile lookup")
    if profile is None:
        raise IdentityNotFoundError("No profile exists for this account; complete business setup")
    if not profile.is_active:
        raise AuthenticationError("Account is deactivated")
    deadline.check("profile lookup")

    business = translate_timeouts(
        lambda: db.session.get(Business, profile.business_id),
        stage="business lookup",
    )
    if business is None:
        raise OwnershipUnrepairable(
            "Profile references a business that does not exist",
            business_id=profile.business_id,
        )
    if not business.is_active:
        raise AuthenticationError("Business account is not active")
    deadline.check("business lookup")

    ensure_business_operational(business, deadline)
    deadline.check("ownership check")
    # A repair commits, which ends the SET LOCAL scope
    apply_statement_timeout(deadline.remaining_ms)

    branch = None
    if profile.branch_id is not None:
        branch = translate_timeouts(lambda: db.session.get(Branch, profile.branch_id), stage="branch lookup")
        if branch is not None and branch.business_id != profile.business_id:
            raise TenantMismatchError("Assigned branch belongs to a different business")
        deadline.check("branch lookup")

    return context_for_profile(profile, branch)


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def current_actor() -> ActorContext:
    """
    ActorContext for the current request, resolved at most once.

    Later checks in the same request reuse the cached context instead of
    resolving identity again.
    """
    ctx = g.get("actor_context")
    if ctx is None:
        ctx = resolve_actor(bearer_token())
        g.actor_context = ctx
    return ctx
