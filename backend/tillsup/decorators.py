# Overview: Request decorators establishing the resolved actor for API routes.

from functools import wraps

from flask import g

from .errors import RolePolicyDenied
from .permissions import Role, is_known_permission, role_has_permission, roles_with_permission
from .services.identity_service import current_actor
from .services.security_service import log_security_event


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.actor_context: The resolved ActorContext (cached for the request)
    - g.business_id: The tenant the caller belongs to
    - g.branch_id: The caller's branch (None for owners)

    SECURITY: Resolution failures propagate as typed errors and are rendered
    by the app's AccessControlError handler:
    - 401 missing/invalid/expired token, deactivated account
    - 404 IDENTITY_NOT_FOUND when the account has no profile yet
    - 409 OWNERSHIP_UNREPAIRABLE, 503 AUTHORIZATION_TIMEOUT
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = current_actor()
        g.business_id = ctx.business_id
        g.branch_id = ctx.branch_id
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a role permission before the route body runs.

    Coarse gate only; per-resource rules still run in the services.
    Unknown codes raise at decoration time.
    """
    if not is_known_permission(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            ctx = current_actor()
            if not role_has_permission(ctx.role, permission_code):
                log_security_event(
                    actor_id=ctx.actor_id,
                    event_type="POLICY_DENIED",
                    success=False,
                    action=permission_code,
                    reason=f"{ctx.role.value} lacks {permission_code}",
                    business_id=ctx.business_id,
                    branch_id=ctx.branch_id,
                )
                roles = roles_with_permission(permission_code)
                required = roles[-1] if roles else Role.OWNER
                raise RolePolicyDenied(
                    f"Permission denied; requires {required.label} role",
                    required_role=required.value,
                )
            return f(*args, **kwargs)

        return decorated_function
    return decorator
