# Overview: Access-control error taxonomy shared by services, routes and CLI.

"""
Typed failures for the tenant access control engine.

Every denial is an exception with a stable code and an HTTP status so that
routes, the CLI and library callers can tell a credential problem apart from
an orphaned account, a cross-tenant attempt or a data inconsistency.

PROPAGATION RULES:
- Authentication and identity errors surface to the caller immediately
- Tenant/branch/role denials are never downgraded to placeholder data
- OwnershipUnrepairable means operator action is required
"""

from __future__ import annotations


class AccessControlError(Exception):
    """Base class for every typed access-control failure."""

    status_code = 403
    code = "ACCESS_DENIED"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code).strip()

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class AuthenticationError(AccessControlError):
    """Credential missing, invalid, expired or revoked."""
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"


class IdentityNotFoundError(AccessControlError):
    """Valid credential but no profile exists for it."""
    status_code = 404
    code = "IDENTITY_NOT_FOUND"


class TenantMismatchError(AccessControlError):
    """Resource belongs to a different business."""
    code = "TENANT_MISMATCH"


class BranchScopeError(AccessControlError):
    """Resource is outside the actor's branch scope."""
    code = "BRANCH_SCOPE"


class BranchInactiveError(BranchScopeError):
    """The actor's assigned branch is deactivated."""
    code = "BRANCH_INACTIVE"


class RolePolicyDenied(AccessControlError):
    """Operation is not permitted for the actor's role."""
    code = "ROLE_POLICY_DENIED"

    def __init__(self, message: str | None = None, required_role: str | None = None):
        super().__init__(message)
        self.required_role = required_role

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.required_role:
            payload["required_role"] = self.required_role
        return payload


class OwnershipUnrepairable(AccessControlError):
    """Business ownership linkage is broken and needs operator action."""
    status_code = 409
    code = "OWNERSHIP_UNREPAIRABLE"

    def __init__(self, message: str | None = None, business_id: int | None = None):
        super().__init__(message)
        self.business_id = business_id


class ConcurrencyConflict(AccessControlError):
    """Resource changed since it was read; retry with fresh data."""
    status_code = 409
    code = "CONCURRENCY_CONFLICT"


class AuthorizationTimeout(AccessControlError):
    """Authorization did not complete within its time budget."""
    status_code = 503
    code = "AUTHORIZATION_TIMEOUT"


class ProvisioningError(AccessControlError):
    """Tenant could not be provisioned."""
    status_code = 400
    code = "PROVISIONING_FAILED"


class ValidationError(AccessControlError):
    """Request data is invalid."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AccessControlError):
    """Requested record does not exist in the caller's tenant."""
    status_code = 404
    code = "NOT_FOUND"
